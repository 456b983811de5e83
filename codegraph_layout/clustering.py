"""Directory-based clustering for large graphs.

Nodes are grouped by directory into collapsible clusters; a
``ClusterState`` maps cluster id to ``True`` (expanded) or ``False``
(collapsed). Clusters missing from the state are expanded.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set

from . import config
from .models import Cluster, ClusterMetrics, Edge, Node, VisibleGraph

logger = logging.getLogger(__name__)

ClusterState = Dict[str, bool]

ROOT_PATH = "/"
CLUSTER_PREFIX = "cluster-"


def cluster_id_for(path: str) -> str:
    return f"{CLUSTER_PREFIX}{path}"


def _parent_dir(path: str) -> str:
    parts = path.replace("\\", "/").split("/")
    parts.pop()
    return "/".join(parts) or ROOT_PATH


def directory_path(node: Node) -> str:
    """Directory a node is clustered under.

    Directories map to themselves, files to their containing directory,
    and symbols to the directory of their owning file (``file::symbol``).
    """
    if node.type == "directory":
        return node.id
    if node.file_path:
        return _parent_dir(node.file_path)
    if "::" in node.id:
        return _parent_dir(node.id.split("::", 1)[0])
    return _parent_dir(node.id)


def path_depth(path: str) -> int:
    if path in ("", ROOT_PATH):
        return 0
    return len([p for p in path.split("/") if p])


def calculate_metrics(nodes: List[Node]) -> ClusterMetrics:
    return ClusterMetrics(
        node_count=len(nodes),
        file_count=sum(1 for n in nodes if n.type == "file"),
        function_count=sum(1 for n in nodes if n.type == "function"),
        class_count=sum(1 for n in nodes if n.type == "class"),
    )


def cluster_nodes_by_directory(
    nodes: List[Node],
    min_cluster_size: int = config.MIN_CLUSTER_SIZE,
    max_depth: int = config.MAX_CLUSTER_DEPTH,
) -> List[Cluster]:
    """Group nodes into clusters by directory path.

    Args:
        nodes: All nodes in the graph.
        min_cluster_size: Minimum members required to form a cluster.
        max_depth: Deepest directory (in path segments) that may cluster.

    Returns:
        Clusters sorted shallowest first, then by path.
    """
    groups: Dict[str, List[Node]] = {}
    for node in nodes:
        dir_path = directory_path(node)
        if path_depth(dir_path) > max_depth:
            continue
        groups.setdefault(dir_path, []).append(node)

    clusters: List[Cluster] = []
    for path, members in groups.items():
        if len(members) < min_cluster_size:
            continue
        parts = [p for p in path.split("/") if p]
        clusters.append(Cluster(
            id=cluster_id_for(path),
            label=parts[-1] if parts else "root",
            path=path,
            nodes=members,
            metrics=calculate_metrics(members),
            depth=path_depth(path),
        ))

    clusters.sort(key=lambda c: (c.depth, c.path))
    logger.debug("Built %d clusters from %d nodes", len(clusters), len(nodes))
    return clusters


def filter_by_cluster_state(
    nodes: List[Node],
    edges: List[Edge],
    clusters: List[Cluster],
    state: ClusterState,
) -> VisibleGraph:
    """Return the nodes and edges visible under *state*.

    Members of a collapsed cluster are hidden and the cluster is reported
    once in ``collapsed_clusters``. An edge is visible only when both of
    its endpoints are visible.
    """
    by_id = {c.id: c for c in clusters}
    visible: Set[str] = set()
    collapsed: List[Cluster] = []
    collapsed_ids: Set[str] = set()

    for node in nodes:
        cid = cluster_id_for(directory_path(node))
        cluster = by_id.get(cid)
        if cluster is None or state.get(cid, True) is not False:
            visible.add(node.id)
            continue
        if cid not in collapsed_ids:
            collapsed_ids.add(cid)
            collapsed.append(cluster)

    return VisibleGraph(
        nodes=[n for n in nodes if n.id in visible],
        edges=[e for e in edges if e.source in visible and e.target in visible],
        collapsed_clusters=collapsed,
    )


def cluster_placeholder(cluster: Cluster) -> Node:
    """Single directory node standing in for a collapsed cluster."""
    return Node(
        id=cluster.id,
        label=cluster.label,
        type="directory",
        depth=cluster.depth,
        file_path=cluster.path,
        metadata={
            "cluster": True,
            "nodeCount": cluster.metrics.node_count,
            "fileCount": cluster.metrics.file_count,
            "functionCount": cluster.metrics.function_count,
            "classCount": cluster.metrics.class_count,
        },
    )


def is_expanded(cluster_id: str, state: ClusterState) -> bool:
    return state.get(cluster_id, True) is not False


def toggle_cluster(cluster_id: str, state: ClusterState) -> ClusterState:
    """Flip one cluster; an absent entry counts as expanded and collapses."""
    current: Optional[bool] = state.get(cluster_id)
    return {**state, cluster_id: current is False}


def expand_all_clusters(clusters: List[Cluster]) -> ClusterState:
    return {c.id: True for c in clusters}


def collapse_all_clusters(clusters: List[Cluster]) -> ClusterState:
    return {c.id: False for c in clusters}
