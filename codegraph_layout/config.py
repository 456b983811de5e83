"""Configuration paths and defaults for CodeGraph Layout."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("CODEGRAPH_LAYOUT_HOME", str(Path.home() / ".codegraph-layout"))).expanduser()
STATE_FILE = BASE_DIR / "state.json"
CONFIG_FILE = BASE_DIR / "config.toml"

# Clustering defaults
MIN_CLUSTER_SIZE = 5
MAX_CLUSTER_DEPTH = 3
AUTO_CLUSTER_THRESHOLD = 50

# Layout defaults (pixels)
DEFAULT_LAYOUT = "layered-tb"
NODE_WIDTH = 180
NODE_HEIGHT = 40
NODE_SEP = 50
RANK_SEP = 80
EDGE_SEP = 20
ADVANCED_LAYOUT_TIMEOUT = 10.0


def ensure_base_dirs() -> None:
    """Create the base directory for local state if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
