"""Identifier normalization for raw graph payloads.

Upstream sources disagree on identifiers: the analysis backend reports
absolute paths inside ephemeral checkouts (``/tmp/<job>/src/a.ts``) and
refers to symbols by bare name, while the local scanner uses absolute
workspace paths. This module maps every raw node onto one canonical id
space and resolves edge endpoints against it:

- function/class nodes become ``"<filePath>::<name>"``
- file/directory/module nodes become their relative, forward-slash path
- edges whose endpoints cannot be resolved are dropped (the only data
  loss in this stage)

Ambiguous name lookups take the first node registered under that name,
in raw input order.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence, Set, Union

from pydantic import ValidationError

from .models import NODE_STATUSES, Edge, GraphStats, Node, NormalizedGraph
from .raw_models import RawEdge, RawNode

logger = logging.getLogger(__name__)

# Backend type vocabulary -> canonical type (looked up case-insensitively)
NODE_TYPE_MAP: Dict[str, str] = {
    "file": "file",
    "directory": "directory",
    "function": "function",
    "method": "function",
    "class": "class",
    "module": "module",
}

EDGE_TYPE_MAP: Dict[str, str] = {
    "CONTAINS": "contains",
    "IMPORTS": "imports",
    "CALLS": "calls",
    "INHERITS": "inherits",
    "DEFINES": "contains",
}

# Fixed depth for backend node types; takes precedence over explicit depth
DEPTH_BY_TYPE: Dict[str, int] = {
    "Module": 0,
    "File": 1,
    "Class": 2,
    "Function": 3,
}

DEFAULT_DEPTH: Dict[str, int] = {
    "module": 0,
    "directory": 0,
    "file": 1,
    "class": 2,
    "function": 3,
}

# Roots of ephemeral analysis checkouts
TEMP_PREFIX_PATTERNS: List[str] = [
    r"^/tmp/[^/]+/",
    r"^/private/var/folders/[^/]+/[^/]+/T/[^/]+/",
    r"^/var/folders/[^/]+/[^/]+/T/[^/]+/",
    r"^[A-Za-z]:\\Users\\[^\\]+\\AppData\\Local\\Temp\\[^\\]+\\",
]

LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "py": "python",
    "rs": "rust",
    "go": "go",
    "java": "java",
    "json": "json",
    "md": "markdown",
    "css": "css",
    "scss": "css",
    "html": "html",
}

RawNodeLike = Union[RawNode, dict]
RawEdgeLike = Union[RawEdge, dict]


def map_node_type(raw_type: Optional[str]) -> str:
    """Map a backend or scanner node type onto the canonical vocabulary."""
    return NODE_TYPE_MAP.get((raw_type or "").strip().lower(), "module")


def map_edge_type(raw_type: Optional[str]) -> str:
    """``DEFINES`` becomes ``contains``; everything else is lowercased."""
    value = (raw_type or "").strip()
    if not value:
        return "imports"
    return EDGE_TYPE_MAP.get(value.upper(), value.lower())


def infer_language(extension: Optional[str]) -> Optional[str]:
    if not extension:
        return None
    return LANGUAGE_BY_EXTENSION.get(extension.lower().lstrip("."))


def _coerce(items: Iterable[Any], model: Any) -> List[Any]:
    """Validate dict payloads into *model*, skipping entries that cannot be parsed."""
    out: List[Any] = []
    for item in items:
        if isinstance(item, model):
            out.append(item)
            continue
        try:
            out.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed raw %s %r: %s", model.__name__, item, exc)
    return out


def _as_int(value: object) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number


class IdentifierNormalizer:
    """Resolve heterogeneous raw identifiers into one canonical id space."""

    def __init__(
        self,
        temp_prefixes: Optional[Sequence[str]] = None,
        root_prefix: Optional[str] = None,
    ) -> None:
        self._prefix_res: List[Pattern[str]] = [re.compile(p) for p in TEMP_PREFIX_PATTERNS]
        # Extra prefixes are literal paths, e.g. a known checkout root
        for prefix in temp_prefixes or []:
            if prefix:
                self._prefix_res.append(re.compile("^" + re.escape(prefix)))
        self.root_prefix = self._clean_root(root_prefix)

    @staticmethod
    def _clean_root(root_prefix: Optional[str]) -> str:
        if not root_prefix:
            return ""
        root = root_prefix.replace("\\", "/")
        return root if root.endswith("/") else root + "/"

    # ------------------------------------------------------------------
    # Paths and ids
    # ------------------------------------------------------------------

    def normalize_path(self, path: str) -> str:
        """Strip temp checkout roots and the workspace root; use forward slashes."""
        normalized = path
        for prefix_re in self._prefix_res:
            stripped = prefix_re.sub("", normalized, count=1)
            if stripped != normalized:
                normalized = stripped
                break
        normalized = normalized.replace("\\", "/")
        if self.root_prefix and normalized.startswith(self.root_prefix):
            normalized = normalized[len(self.root_prefix):]
        normalized = re.sub(r"/{2,}", "/", normalized)
        while normalized.startswith("./"):
            normalized = normalized[2:]
        if len(normalized) > 1:
            normalized = normalized.rstrip("/")
        return normalized

    def canonical_id(self, raw: RawNode) -> str:
        node_type = map_node_type(raw.type)
        file_path = raw.prop("file_path", "path", "file")
        name = str(raw.prop("name") or raw.label or "")

        if node_type in ("function", "class"):
            if name and file_path:
                return f"{self.normalize_path(str(file_path))}::{name}"
            return name or raw.id

        if file_path:
            return self.normalize_path(str(file_path))
        return raw.id

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def normalize(
        self,
        raw_nodes: Iterable[RawNodeLike],
        raw_edges: Iterable[RawEdgeLike],
    ) -> NormalizedGraph:
        """Produce canonical nodes and fully resolved edges.

        Never raises on malformed metadata: nodes fall back to their raw
        identifier, and only unresolvable edges are discarded.
        """
        nodes_in = _coerce(raw_nodes, RawNode)
        edges_in = _coerce(raw_edges, RawEdge)

        id_map: Dict[str, str] = {}
        name_map: Dict[str, List[str]] = {}

        # First pass: canonical ids and lookup tables
        for raw in nodes_in:
            canonical = self.canonical_id(raw)
            id_map.setdefault(raw.id, canonical)
            name = str(raw.prop("name") or raw.label or "")
            if name:
                bucket = name_map.setdefault(name, [])
                if canonical not in bucket:
                    bucket.append(canonical)

        # Second pass: canonical nodes
        nodes: List[Node] = []
        seen: Set[str] = set()
        for raw in nodes_in:
            node = self._build_node(raw, id_map)
            if node.id in seen:
                logger.info("Duplicate canonical id %s (raw %s); keeping first", node.id, raw.id)
                continue
            seen.add(node.id)
            nodes.append(node)

        # Third pass: resolve edges, drop dangling ones
        edges: List[Edge] = []
        dropped = 0
        for index, raw_edge in enumerate(edges_in):
            source = self._resolve(raw_edge.source, id_map, name_map)
            target = self._resolve(raw_edge.target, id_map, name_map)
            if source not in seen or target not in seen:
                dropped += 1
                logger.debug(
                    "Dropping unresolved edge %s -> %s (%s)",
                    raw_edge.source, raw_edge.target, raw_edge.type,
                )
                continue
            edges.append(Edge(
                id=f"e-{source}-{target}-{index}",
                source=source,
                target=target,
                type=map_edge_type(raw_edge.type),
            ))

        if dropped:
            logger.info("Dropped %d of %d edges with unresolved endpoints", dropped, len(edges_in))

        return NormalizedGraph(
            nodes=nodes,
            edges=edges,
            dropped_edges=dropped,
            stats=GraphStats.from_nodes(nodes),
        )

    @staticmethod
    def _resolve(ref: str, id_map: Dict[str, str], name_map: Dict[str, List[str]]) -> str:
        if ref in id_map:
            return id_map[ref]
        matches = name_map.get(ref)
        if matches:
            # First match in raw input order wins
            return matches[0]
        return ref

    def _build_node(self, raw: RawNode, id_map: Dict[str, str]) -> Node:
        node_type = map_node_type(raw.type)
        canonical = id_map.get(raw.id, raw.id)

        depth = DEPTH_BY_TYPE.get(raw.type)
        if depth is None:
            explicit = _as_int(raw.prop("depth"))
            depth = explicit if explicit is not None and explicit >= 0 else DEFAULT_DEPTH[node_type]

        raw_parent = raw.prop("parent_id")
        parent_id = None
        if raw_parent is not None:
            parent_id = id_map.get(str(raw_parent), str(raw_parent))

        raw_path = raw.prop("file_path", "path", "file")
        file_path = self.normalize_path(str(raw_path)) if raw_path else None

        extension = raw.prop("extension")
        if extension:
            extension = str(extension).lstrip(".").lower()
        elif node_type == "file" and file_path and "." in file_path.rsplit("/", 1)[-1]:
            extension = file_path.rsplit(".", 1)[-1].lower()

        language = raw.prop("language") or infer_language(extension)
        status = raw.prop("status")

        metadata = {"rawId": raw.id} if raw.id != canonical else {}

        return Node(
            id=canonical,
            label=raw.label or str(raw.prop("name") or "") or canonical,
            type=node_type,
            depth=depth,
            parent_id=parent_id,
            file_path=file_path,
            extension=extension or None,
            language=str(language) if language else None,
            line_number=_as_int(raw.prop("start_line", "line_number")),
            end_line_number=_as_int(raw.prop("end_line", "end_line_number")),
            status=status if status in NODE_STATUSES else None,
            metadata=metadata,
        )


def normalize_graph(
    raw_nodes: Iterable[RawNodeLike],
    raw_edges: Iterable[RawEdgeLike],
    temp_prefixes: Optional[Sequence[str]] = None,
    root_prefix: Optional[str] = None,
) -> NormalizedGraph:
    """Convenience wrapper around :class:`IdentifierNormalizer`."""
    normalizer = IdentifierNormalizer(temp_prefixes=temp_prefixes, root_prefix=root_prefix)
    return normalizer.normalize(raw_nodes, raw_edges)
