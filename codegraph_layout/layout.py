"""Synchronous layout strategies.

Every strategy takes ``LayoutNode``/``LayoutEdge`` lists and returns a
``LayoutResult`` with exactly one top-left coordinate per input node id.
Inputs are never mutated and an empty node list yields an empty result.

Strategies:
  - layered_layout       Sugiyama layering (grandalf), TB or LR
  - hierarchical_layout  rows by depth
  - by_file_layout       files stacked, symbols indented beneath their file
  - by_module_layout     module tree walk from file paths
  - dependency_layout    layered LR over calls/imports edges only
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from grandalf.graphs import Edge as GEdge
from grandalf.graphs import Graph as GGraph
from grandalf.graphs import Vertex
from grandalf.layouts import SugiyamaLayout

from . import config
from .hierarchy import path_segments
from .models import Edge, LayoutEdge, LayoutNode, LayoutResult, Node, Point

logger = logging.getLogger(__name__)

LAYERED_MARGIN = 20.0

# By-file layout
FILE_SPACING = 100.0
SYMBOL_SPACING = 50.0
SYMBOL_INDENT = 60.0

# By-module layout
MODULE_INDENT = 40.0
MODULE_ROW_SPACING = 60.0
MODULE_GAP = 60.0

DEPENDENCY_EDGE_TYPES = frozenset({"calls", "imports"})
SYMBOL_TYPES = frozenset({"function", "class"})


@dataclass
class LayoutOptions:
    """Tunable spacing shared by the strategies (pixels)."""

    node_sep: float = config.NODE_SEP
    rank_sep: float = config.RANK_SEP
    edge_sep: float = config.EDGE_SEP
    timeout: float = config.ADVANCED_LAYOUT_TIMEOUT
    iterations: int = 300
    seed: Optional[int] = None


# ===================================================================
# Projection helpers
# ===================================================================

def to_layout_nodes(
    nodes: Iterable[Node],
    width: float = config.NODE_WIDTH,
    height: float = config.NODE_HEIGHT,
) -> List[LayoutNode]:
    return [
        LayoutNode(
            id=n.id,
            width=width,
            height=height,
            depth=n.depth,
            type=n.type,
            file_path=n.file_path,
            parent_id=n.parent_id,
        )
        for n in nodes
    ]


def to_layout_edges(edges: Iterable[Edge]) -> List[LayoutEdge]:
    return [LayoutEdge(id=e.id, source=e.source, target=e.target, type=e.type) for e in edges]


def _size(node: LayoutNode) -> Tuple[float, float]:
    return (node.width or config.NODE_WIDTH, node.height or config.NODE_HEIGHT)


def complete_result(result: LayoutResult, nodes: List[LayoutNode]) -> LayoutResult:
    """Give every node an entry, parking unplaced ones in a row below the rest."""
    missing = [n for n in nodes if n.id not in result]
    if not missing:
        return result
    bottom = max((p.y for p in result.values()), default=0.0)
    y = bottom + config.NODE_HEIGHT + config.RANK_SEP if result else 0.0
    x = 0.0
    for node in missing:
        if node.id in result:
            continue
        result[node.id] = Point(x, y)
        x += _size(node)[0] + config.NODE_SEP
    logger.debug("Placed %d nodes at fallback coordinates", len(missing))
    return result


# ===================================================================
# Layered (Sugiyama) layout
# ===================================================================

class _VertexView:
    """Size holder read by grandalf; ``xy`` is set to the center by the layout."""

    def __init__(self, w: float, h: float) -> None:
        self.w = w
        self.h = h
        self.xy = (0.0, 0.0)


def layered_layout(
    nodes: List[LayoutNode],
    edges: List[LayoutEdge],
    direction: str = "TB",
    node_sep: float = config.NODE_SEP,
    rank_sep: float = config.RANK_SEP,
    edge_sep: float = config.EDGE_SEP,
) -> LayoutResult:
    """Rank-by-rank layout along ``TB`` (top-bottom) or ``LR`` (left-right).

    Each connected component is laid out separately and components are
    placed side by side across the rank axis. Coordinates are converted
    from grandalf's center convention to top-left.
    """
    if not nodes:
        return {}
    horizontal = direction.upper() == "LR"

    vertices: Dict[str, Vertex] = {}
    sizes: Dict[str, Tuple[float, float]] = {}
    for node in nodes:
        w, h = _size(node)
        sizes[node.id] = (w, h)
        vertex = Vertex(node.id)
        # grandalf always ranks along y; swap sizes when ranking along x
        vertex.view = _VertexView(h, w) if horizontal else _VertexView(w, h)
        vertices[node.id] = vertex

    g_edges: List[GEdge] = []
    seen: Set[Tuple[str, str]] = set()
    for edge in edges:
        pair = (edge.source, edge.target)
        if edge.source == edge.target or pair in seen:
            continue
        if edge.source not in vertices or edge.target not in vertices:
            continue
        seen.add(pair)
        g_edges.append(GEdge(vertices[edge.source], vertices[edge.target]))

    graph = GGraph(list(vertices.values()), g_edges)

    centers: Dict[str, Tuple[float, float]] = {}
    offset = 0.0
    for component in graph.C:
        members = list(component.sV)
        if len(members) == 1:
            only = members[0]
            only.view.xy = (only.view.w / 2.0, only.view.h / 2.0)
        else:
            sug = SugiyamaLayout(component)
            sug.xspace = node_sep
            sug.yspace = rank_sep
            sug.dw = edge_sep
            sug.init_all()
            sug.draw()

        min_x = min(v.view.xy[0] - v.view.w / 2.0 for v in members)
        max_x = max(v.view.xy[0] + v.view.w / 2.0 for v in members)
        min_y = min(v.view.xy[1] - v.view.h / 2.0 for v in members)
        for v in members:
            centers[v.data] = (v.view.xy[0] - min_x + offset, v.view.xy[1] - min_y)
        offset += (max_x - min_x) + node_sep

    result: LayoutResult = {}
    for node_id, (gx, gy) in centers.items():
        w, h = sizes[node_id]
        cx, cy = (gy, gx) if horizontal else (gx, gy)
        result[node_id] = Point(cx - w / 2.0 + LAYERED_MARGIN, cy - h / 2.0 + LAYERED_MARGIN)

    return complete_result(result, nodes)


def dependency_layout(
    nodes: List[LayoutNode],
    edges: List[LayoutEdge],
    node_sep: float = config.NODE_SEP,
    rank_sep: float = config.RANK_SEP,
    edge_sep: float = config.EDGE_SEP,
) -> LayoutResult:
    """Layered left-to-right layout over call/import relationships only."""
    dependency_edges = [e for e in edges if (e.type or "") in DEPENDENCY_EDGE_TYPES]
    return layered_layout(
        nodes,
        dependency_edges,
        direction="LR",
        node_sep=node_sep,
        rank_sep=rank_sep,
        edge_sep=edge_sep,
    )


# ===================================================================
# Hierarchical (depth rows) layout
# ===================================================================

def hierarchical_layout(
    nodes: List[LayoutNode],
    edges: List[LayoutEdge],
    node_sep: float = config.NODE_SEP,
    rank_sep: float = config.RANK_SEP,
) -> LayoutResult:
    """One row per depth, nodes left to right in input order."""
    rows: Dict[int, List[LayoutNode]] = {}
    for node in nodes:
        rows.setdefault(node.depth or 0, []).append(node)

    result: LayoutResult = {}
    y = 0.0
    for depth in sorted(rows):
        x = 0.0
        row_height = 0.0
        for node in rows[depth]:
            w, h = _size(node)
            result[node.id] = Point(x, y)
            x += w + node_sep
            row_height = max(row_height, h)
        y += row_height + rank_sep
    return result


# ===================================================================
# By-file layout
# ===================================================================

def _owning_file(
    node: LayoutNode,
    by_id: Dict[str, LayoutNode],
    top_ids: Set[str],
    file_by_path: Dict[str, str],
) -> Optional[str]:
    current: Optional[LayoutNode] = node
    visited: Set[str] = set()
    while current is not None and current.id not in visited:
        visited.add(current.id)
        if current.parent_id in top_ids:
            return current.parent_id
        if current.file_path and current.file_path in file_by_path:
            return file_by_path[current.file_path]
        if "::" in current.id:
            owner = current.id.split("::", 1)[0]
            if owner in top_ids:
                return owner
        current = by_id.get(current.parent_id) if current.parent_id else None
    return None


def by_file_layout(nodes: List[LayoutNode], edges: List[LayoutEdge]) -> LayoutResult:
    """Stack files vertically with their functions and classes indented below."""
    by_id = {n.id: n for n in nodes}
    tops = [n for n in nodes if n.type not in SYMBOL_TYPES]
    top_ids = {n.id for n in tops}
    file_by_path: Dict[str, str] = {}
    for node in tops:
        if node.type == "file" and node.file_path:
            file_by_path.setdefault(node.file_path, node.id)

    children: Dict[str, List[LayoutNode]] = {}
    orphans: List[LayoutNode] = []
    for node in nodes:
        if node.type not in SYMBOL_TYPES:
            continue
        owner = _owning_file(node, by_id, top_ids, file_by_path)
        if owner is None:
            orphans.append(node)
        else:
            children.setdefault(owner, []).append(node)

    result: LayoutResult = {}
    y = 0.0
    for top in tops:
        result[top.id] = Point(0.0, y)
        for child in children.get(top.id, []):
            y += SYMBOL_SPACING
            result[child.id] = Point(SYMBOL_INDENT, y)
        y += FILE_SPACING

    for orphan in orphans:
        result[orphan.id] = Point(SYMBOL_INDENT, y)
        y += SYMBOL_SPACING
    return result


# ===================================================================
# By-module layout
# ===================================================================

@dataclass
class _Module:
    name: str
    children: Dict[str, "_Module"] = field(default_factory=dict)
    headers: List[str] = field(default_factory=list)
    members: List[str] = field(default_factory=list)


def build_module_tree(nodes: List[LayoutNode]) -> _Module:
    """Nest every node under the module path of its file."""
    root = _Module(name="")
    for node in nodes:
        path = node.file_path or node.id.split("::", 1)[0]
        segments = path_segments(path)
        is_module = node.type in ("directory", "module") and bool(segments)
        module_path = segments if is_module else segments[:-1]

        module = root
        for segment in module_path:
            module = module.children.setdefault(segment, _Module(name=segment))
        (module.headers if is_module else module.members).append(node.id)
    return root


def by_module_layout(nodes: List[LayoutNode], edges: List[LayoutEdge]) -> LayoutResult:
    """Depth-first module walk: indent per nesting level, one row per file."""
    root = build_module_tree(nodes)
    result: LayoutResult = {}
    y = 0.0
    first_module = True

    # Explicit stack; children pushed in reverse so they pop in name order
    stack: List[Tuple[_Module, int]] = [(root, 0)]
    while stack:
        module, level = stack.pop()
        if module is not root:
            if not first_module:
                y += MODULE_GAP
            first_module = False
            for node_id in module.headers:
                result[node_id] = Point((level - 1) * MODULE_INDENT, y)
                y += MODULE_ROW_SPACING
        for node_id in module.members:
            result[node_id] = Point(level * MODULE_INDENT, y)
            y += MODULE_ROW_SPACING
        for name in sorted(module.children, reverse=True):
            stack.append((module.children[name], level + 1))

    return complete_result(result, nodes)
