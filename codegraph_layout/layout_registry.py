"""Named layout algorithms.

Maps user-facing layout names (``layered-tb``, ``advanced-force`` ...)
to strategy callables. Synchronous names can be computed directly;
``advanced-*`` names need an event loop and go through
:func:`compute_layout_async` (or :func:`compute_layout`, which runs one).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from .force_layout import force_directed_layout
from .graphviz_layout import advanced_layout
from .layout import (
    LayoutOptions,
    by_file_layout,
    by_module_layout,
    dependency_layout,
    hierarchical_layout,
    layered_layout,
)
from .models import LayoutEdge, LayoutNode, LayoutResult

logger = logging.getLogger(__name__)

SyncStrategy = Callable[[List[LayoutNode], List[LayoutEdge], LayoutOptions], LayoutResult]

LAYOUT_OPTIONS: List[Dict[str, str]] = [
    {"value": "hierarchical", "label": "Hierarchical", "description": "Rows by file depth"},
    {"value": "layered-tb", "label": "Layered (Top-Bottom)", "description": "Sugiyama layering, top to bottom"},
    {"value": "layered-lr", "label": "Layered (Left-Right)", "description": "Sugiyama layering, left to right"},
    {"value": "advanced-layered", "label": "Advanced Layered", "description": "Graphviz dot, falls back to layered"},
    {"value": "advanced-force", "label": "Advanced Force", "description": "Graphviz fdp, falls back to layered"},
    {"value": "by-file", "label": "By File", "description": "Files stacked with their symbols beneath"},
    {"value": "by-module", "label": "By Module", "description": "Grouped and indented by module path"},
    {"value": "dependency", "label": "Dependency", "description": "Call and import relationships, left to right"},
    {"value": "force", "label": "Force-Directed", "description": "Physics simulation (in process)"},
]

SYNC_LAYOUTS: Dict[str, SyncStrategy] = {
    "hierarchical": lambda n, e, o: hierarchical_layout(n, e, node_sep=o.node_sep, rank_sep=o.rank_sep),
    "layered-tb": lambda n, e, o: layered_layout(
        n, e, direction="TB", node_sep=o.node_sep, rank_sep=o.rank_sep, edge_sep=o.edge_sep,
    ),
    "layered-lr": lambda n, e, o: layered_layout(
        n, e, direction="LR", node_sep=o.node_sep, rank_sep=o.rank_sep, edge_sep=o.edge_sep,
    ),
    "by-file": lambda n, e, o: by_file_layout(n, e),
    "by-module": lambda n, e, o: by_module_layout(n, e),
    "dependency": lambda n, e, o: dependency_layout(
        n, e, node_sep=o.node_sep, rank_sep=o.rank_sep, edge_sep=o.edge_sep,
    ),
    "force": lambda n, e, o: force_directed_layout(n, e, iterations=o.iterations, seed=o.seed),
}

ADVANCED_LAYOUTS: Dict[str, str] = {
    "advanced-layered": "layered",
    "advanced-force": "force",
}


def layout_names() -> List[str]:
    return [option["value"] for option in LAYOUT_OPTIONS]


def is_async_layout(name: str) -> bool:
    return name in ADVANCED_LAYOUTS


def _check_name(name: str) -> None:
    if name not in SYNC_LAYOUTS and name not in ADVANCED_LAYOUTS:
        raise ValueError(
            f"Unknown layout '{name}'. Available: {', '.join(layout_names())}"
        )


async def compute_layout_async(
    name: str,
    nodes: List[LayoutNode],
    edges: List[LayoutEdge],
    options: Optional[LayoutOptions] = None,
) -> LayoutResult:
    """Compute layout *name*; advanced layouts await the external engine."""
    _check_name(name)
    opts = options or LayoutOptions()
    if name in ADVANCED_LAYOUTS:
        return await advanced_layout(
            nodes,
            edges,
            algorithm=ADVANCED_LAYOUTS[name],
            timeout=opts.timeout,
            node_sep=opts.node_sep,
            rank_sep=opts.rank_sep,
            edge_sep=opts.edge_sep,
        )
    return SYNC_LAYOUTS[name](nodes, edges, opts)


def compute_layout(
    name: str,
    nodes: List[LayoutNode],
    edges: List[LayoutEdge],
    options: Optional[LayoutOptions] = None,
) -> LayoutResult:
    """Compute layout *name* from synchronous code.

    Raises:
        ValueError: If *name* is not a registered layout.
    """
    _check_name(name)
    opts = options or LayoutOptions()
    if name in ADVANCED_LAYOUTS:
        logger.debug("Running %s layout in a private event loop", name)
        return asyncio.run(compute_layout_async(name, nodes, edges, opts))
    return SYNC_LAYOUTS[name](nodes, edges, opts)
