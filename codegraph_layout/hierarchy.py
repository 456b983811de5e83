"""Reconstruct directory hierarchy for flat graphs.

Backend graphs often contain files without their directory ancestors.
``reconstruct_hierarchy`` synthesizes the missing directory nodes from
file paths and wires ``contains`` edges so every file has an unbroken
path to a root. The stage is additive: it never removes or re-ids a node.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

from .models import Edge, GraphStats, Node, NormalizedGraph

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Forward slashes, no duplicate or trailing separators."""
    cleaned = path.replace("\\", "/")
    absolute = cleaned.startswith("/")
    parts = [p for p in cleaned.split("/") if p and p != "."]
    joined = "/".join(parts)
    return "/" + joined if absolute else joined


def path_segments(path: str) -> List[str]:
    return [p for p in normalize_path(path).split("/") if p]


def ancestor_paths(path: str) -> List[str]:
    """Directory paths above *path*, shallowest first.

    ``"src/app/main.ts"`` -> ``["src", "src/app"]``
    """
    normalized = normalize_path(path)
    prefix = "/" if normalized.startswith("/") else ""
    parts = path_segments(normalized)
    return [prefix + "/".join(parts[:i]) for i in range(1, len(parts))]


def reconstruct_hierarchy(
    nodes: List[Node],
    edges: List[Edge],
) -> Tuple[List[Node], List[Edge]]:
    """Synthesize missing directory ancestors and ``contains`` edges.

    Returns new node and edge lists; the inputs are not mutated. Edge
    identity for de-duplication is the ordered ``(source, target)`` pair.
    Running the function on its own output adds nothing.
    """
    out_nodes: List[Node] = list(nodes)
    out_edges: List[Edge] = list(edges)
    index_by_id: Dict[str, int] = {n.id: i for i, n in enumerate(out_nodes)}
    pairs: Set[Tuple[str, str]] = {(e.source, e.target) for e in out_edges}
    created = 0

    def link(parent: str, child: str) -> None:
        if (parent, child) in pairs:
            return
        pairs.add((parent, child))
        out_edges.append(Edge(id=f"e-{parent}-{child}", source=parent, target=child, type="contains"))

    def ensure_directory(dir_path: str, parent: Optional[str]) -> None:
        nonlocal created
        depth = len(path_segments(dir_path))
        if dir_path in index_by_id:
            existing = out_nodes[index_by_id[dir_path]]
            if parent and not existing.parent_id:
                link(parent, dir_path)
            return
        out_nodes.append(Node(
            id=dir_path,
            label=path_segments(dir_path)[-1],
            type="directory",
            depth=depth,
            parent_id=parent,
            file_path=dir_path,
            status="unchanged",
        ))
        index_by_id[dir_path] = len(out_nodes) - 1
        created += 1
        if parent:
            link(parent, dir_path)

    for position in range(len(nodes)):
        node = out_nodes[position]
        if node.type != "file":
            continue

        file_path = normalize_path(node.file_path or node.id)
        segments = path_segments(file_path)
        ancestors = ancestor_paths(file_path)

        # Ancestors always precede descendants
        parent: Optional[str] = None
        for dir_path in ancestors:
            ensure_directory(dir_path, parent)
            parent = dir_path

        if node.parent_id or not parent:
            continue

        out_nodes[position] = replace(
            node,
            parent_id=parent,
            file_path=node.file_path or file_path,
            depth=max(node.depth, len(segments)),
        )
        link(parent, node.id)

    if created:
        logger.debug("Synthesized %d directory nodes", created)
    return out_nodes, out_edges


def reconstruct_graph(graph: NormalizedGraph) -> NormalizedGraph:
    """Apply :func:`reconstruct_hierarchy` to a normalized graph."""
    nodes, edges = reconstruct_hierarchy(graph.nodes, graph.edges)
    return replace(graph, nodes=nodes, edges=edges, stats=GraphStats.from_nodes(nodes))
