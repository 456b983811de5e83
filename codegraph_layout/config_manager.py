"""Configuration manager for CodeGraph Layout using TOML files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import toml

from . import config

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "clustering": {
        "min_cluster_size": config.MIN_CLUSTER_SIZE,
        "max_depth": config.MAX_CLUSTER_DEPTH,
        "auto_cluster_threshold": config.AUTO_CLUSTER_THRESHOLD,
    },
    "layout": {
        "default": config.DEFAULT_LAYOUT,
        "node_width": config.NODE_WIDTH,
        "node_height": config.NODE_HEIGHT,
        "node_sep": config.NODE_SEP,
        "rank_sep": config.RANK_SEP,
        "edge_sep": config.EDGE_SEP,
        "advanced_timeout": config.ADVANCED_LAYOUT_TIMEOUT,
    },
    "normalizer": {
        "temp_prefixes": [],
    },
}


@dataclass
class PipelineSettings:
    """Resolved settings consumed by :class:`~codegraph_layout.pipeline.GraphPipeline`."""

    min_cluster_size: int = config.MIN_CLUSTER_SIZE
    max_depth: int = config.MAX_CLUSTER_DEPTH
    auto_cluster_threshold: int = config.AUTO_CLUSTER_THRESHOLD
    default_layout: str = config.DEFAULT_LAYOUT
    node_width: float = config.NODE_WIDTH
    node_height: float = config.NODE_HEIGHT
    node_sep: float = config.NODE_SEP
    rank_sep: float = config.RANK_SEP
    edge_sep: float = config.EDGE_SEP
    advanced_timeout: float = config.ADVANCED_LAYOUT_TIMEOUT
    temp_prefixes: List[str] = field(default_factory=list)


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    Returns an empty dict when the file is missing or unreadable.
    """
    if not config.CONFIG_FILE.exists():
        return {}
    try:
        with open(config.CONFIG_FILE, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config.CONFIG_FILE, exc)
        return {}


def load_config() -> Dict[str, Dict[str, Any]]:
    """Return the configuration with every known section filled from defaults."""
    loaded = load_full_config()
    merged: Dict[str, Dict[str, Any]] = {}
    for section, defaults in DEFAULT_CONFIG.items():
        values = loaded.get(section)
        merged[section] = {**defaults, **(values if isinstance(values, dict) else {})}
    return merged


def save_section(section: str, values: Dict[str, Any]) -> bool:
    """Merge *values* into *section* of the config file.

    Preserves other sections in the file.

    Returns:
        True if saved successfully, False otherwise
    """
    full = load_full_config()
    current = full.get(section)
    full[section] = {**(current if isinstance(current, dict) else {}), **values}
    config.ensure_base_dirs()
    try:
        with open(config.CONFIG_FILE, "w", encoding="utf-8") as f:
            toml.dump(full, f)
        return True
    except OSError as exc:
        logger.warning("Failed to write config %s: %s", config.CONFIG_FILE, exc)
        return False


def load_settings() -> PipelineSettings:
    """Build :class:`PipelineSettings` from ``config.toml``, falling back to defaults."""
    cfg = load_config()
    clustering = cfg["clustering"]
    layout = cfg["layout"]
    normalizer = cfg["normalizer"]
    defaults = PipelineSettings()

    def _num(section: Dict[str, Any], key: str, fallback: Any, cast: Any) -> Any:
        try:
            return cast(section.get(key, fallback))
        except (TypeError, ValueError):
            logger.warning("Invalid value for %s in config, using %r", key, fallback)
            return fallback

    prefixes = normalizer.get("temp_prefixes") or []
    if not isinstance(prefixes, list):
        prefixes = []

    return PipelineSettings(
        min_cluster_size=_num(clustering, "min_cluster_size", defaults.min_cluster_size, int),
        max_depth=_num(clustering, "max_depth", defaults.max_depth, int),
        auto_cluster_threshold=_num(
            clustering, "auto_cluster_threshold", defaults.auto_cluster_threshold, int,
        ),
        default_layout=str(layout.get("default", defaults.default_layout)),
        node_width=_num(layout, "node_width", defaults.node_width, float),
        node_height=_num(layout, "node_height", defaults.node_height, float),
        node_sep=_num(layout, "node_sep", defaults.node_sep, float),
        rank_sep=_num(layout, "rank_sep", defaults.rank_sep, float),
        edge_sep=_num(layout, "edge_sep", defaults.edge_sep, float),
        advanced_timeout=_num(layout, "advanced_timeout", defaults.advanced_timeout, float),
        temp_prefixes=[str(p) for p in prefixes],
    )
