"""Persistence for cluster expand/collapse state and a transient graph cache.

Both services are constructed explicitly and passed to the pipeline, so a
test (or a second workspace) can run with its own isolated instances.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config
from .clustering import ClusterState
from .models import NormalizedGraph

logger = logging.getLogger(__name__)

STATE_KEY_PREFIX = "cluster-state-"

_GITHUB_RE = re.compile(r"github\.com[/:]([^/]+/[^/]+?)(?:\.git)?/?$")


def extract_repo_id(repo_url: str) -> str:
    """Reduce a repository URL to ``owner/repo``.

    ``https://github.com/owner/repo.git`` -> ``owner/repo``. Anything that
    is not a GitHub URL is returned unchanged.
    """
    match = _GITHUB_RE.search(repo_url.strip())
    if match:
        return match.group(1)
    return repo_url


def state_key(repo_id: str) -> str:
    return f"{STATE_KEY_PREFIX}{repo_id}"


# ===================================================================
# ClusterStateStore  (small JSON key-value store)
# ===================================================================

class ClusterStateStore:
    """Durable key-value store of ``ClusterState`` per repository.

    The whole store is one flat JSON object on disk:
    ``{"cluster-state-<repo_id>": {"cluster-src": false, ...}, ...}``.
    """

    def __init__(self, state_file: Optional[Path] = None) -> None:
        self.state_file = state_file or config.STATE_FILE

    def _read_all(self) -> Dict[str, Any]:
        if not self.state_file.exists():
            return {}
        try:
            payload = json.loads(self.state_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Discarding unreadable state store %s: %s", self.state_file, exc)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Discarding state store %s: expected a JSON object", self.state_file)
            return {}
        return payload

    def _write_all(self, payload: Dict[str, Any]) -> None:
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        self.state_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def load(self, repo_id: str) -> ClusterState:
        """Return the persisted state, or an empty (all-expanded) state.

        Entries are returned verbatim; ids of clusters that no longer exist
        are harmless because lookups ignore them.
        """
        stored = self._read_all().get(state_key(repo_id))
        if stored is None:
            return {}
        if isinstance(stored, str):
            # localStorage-style string value
            try:
                stored = json.loads(stored)
            except json.JSONDecodeError as exc:
                logger.warning("Failed to parse cluster state for %s: %s", repo_id, exc)
                return {}
        if not isinstance(stored, dict):
            logger.warning("Discarding malformed cluster state for %s", repo_id)
            return {}
        return dict(stored)

    def save(self, repo_id: str, state: ClusterState) -> None:
        payload = self._read_all()
        payload[state_key(repo_id)] = dict(state)
        self._write_all(payload)

    def clear(self, repo_id: str) -> bool:
        payload = self._read_all()
        if payload.pop(state_key(repo_id), None) is None:
            return False
        self._write_all(payload)
        return True

    def list_repos(self) -> List[str]:
        return sorted(
            key[len(STATE_KEY_PREFIX):]
            for key in self._read_all()
            if key.startswith(STATE_KEY_PREFIX)
        )


# ===================================================================
# GraphCache  (in-memory, per process)
# ===================================================================

@dataclass
class CacheEntry:
    graph: NormalizedGraph
    timestamp: float


class GraphCache:
    """Latest normalized graph per repository, held in memory only."""

    def __init__(self, max_entries: int = 8) -> None:
        self.max_entries = max_entries
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, repo_id: str) -> Optional[NormalizedGraph]:
        entry = self._entries.get(repo_id)
        return entry.graph if entry else None

    def put(self, repo_id: str, graph: NormalizedGraph) -> None:
        self._entries.pop(repo_id, None)
        self._entries[repo_id] = CacheEntry(graph=graph, timestamp=time.time())
        while len(self._entries) > self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

    def invalidate(self, repo_id: str) -> None:
        self._entries.pop(repo_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, repo_id: object) -> bool:
        return repo_id in self._entries
