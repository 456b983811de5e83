"""End-to-end orchestration: raw graph in, positioned graph out.

    raw -> normalize -> reconstruct hierarchy -> cluster/filter -> layout

Services (settings, cluster-state store, graph cache) are passed in
explicitly so independent pipelines never share state.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .clustering import (
    ClusterState,
    cluster_nodes_by_directory,
    cluster_placeholder,
    collapse_all_clusters,
    expand_all_clusters,
    filter_by_cluster_state,
    toggle_cluster,
)
from .config_manager import PipelineSettings, load_settings
from .hierarchy import reconstruct_graph
from .layout import LayoutOptions, to_layout_edges, to_layout_nodes
from .layout_registry import compute_layout, compute_layout_async
from .models import Cluster, Edge, LayoutResult, Node, NormalizedGraph, PositionedGraph
from .normalizer import IdentifierNormalizer
from .raw_models import RawGraph
from .storage import ClusterStateStore, GraphCache

logger = logging.getLogger(__name__)


class GraphPipeline:
    """Turn raw graphs into positioned graphs for one or more repositories."""

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        state_store: Optional[ClusterStateStore] = None,
        cache: Optional[GraphCache] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.state_store = state_store or ClusterStateStore()
        self.cache = cache or GraphCache()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def prepare(self, raw: RawGraph, repo_id: str, root_prefix: Optional[str] = None) -> NormalizedGraph:
        """Normalize *raw*, rebuild its hierarchy and cache the result."""
        normalizer = IdentifierNormalizer(
            temp_prefixes=self.settings.temp_prefixes,
            root_prefix=root_prefix,
        )
        graph = reconstruct_graph(normalizer.normalize(raw.nodes, raw.edges))
        self.cache.put(repo_id, graph)
        logger.info(
            "Prepared %s: %d nodes, %d edges (%d dropped)",
            repo_id, len(graph.nodes), len(graph.edges), graph.dropped_edges,
        )
        return graph

    def build_clusters(self, graph: NormalizedGraph) -> List[Cluster]:
        return cluster_nodes_by_directory(
            graph.nodes,
            min_cluster_size=self.settings.min_cluster_size,
            max_depth=self.settings.max_depth,
        )

    def should_cluster(self, graph: NormalizedGraph) -> bool:
        return len(graph.nodes) > self.settings.auto_cluster_threshold

    def visible_graph(
        self,
        graph: NormalizedGraph,
        repo_id: str,
        cluster: Optional[bool] = None,
    ) -> Tuple[List[Node], List[Edge], List[Cluster]]:
        """Nodes and edges to draw under the persisted cluster state.

        Collapsed clusters are replaced by one placeholder node each.
        ``cluster=None`` clusters only graphs above the configured
        threshold.
        """
        use_clusters = self.should_cluster(graph) if cluster is None else cluster
        if not use_clusters:
            return list(graph.nodes), list(graph.edges), []

        clusters = self.build_clusters(graph)
        state = self.state_store.load(repo_id)
        visible = filter_by_cluster_state(graph.nodes, graph.edges, clusters, state)
        placeholders = [cluster_placeholder(c) for c in visible.collapsed_clusters]
        return visible.nodes + placeholders, visible.edges, clusters

    def layout_options(self, seed: Optional[int] = None) -> LayoutOptions:
        return LayoutOptions(
            node_sep=self.settings.node_sep,
            rank_sep=self.settings.rank_sep,
            edge_sep=self.settings.edge_sep,
            timeout=self.settings.advanced_timeout,
            seed=seed,
        )

    def _assemble(
        self,
        graph: NormalizedGraph,
        nodes: List[Node],
        edges: List[Edge],
        clusters: List[Cluster],
        positions: LayoutResult,
        layout_name: str,
    ) -> PositionedGraph:
        return PositionedGraph(
            nodes=nodes,
            edges=edges,
            positions=positions,
            clusters=clusters,
            stats=graph.stats,
            layout=layout_name,
        )

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def run(
        self,
        raw: RawGraph,
        repo_id: str,
        layout: Optional[str] = None,
        cluster: Optional[bool] = None,
        root_prefix: Optional[str] = None,
        seed: Optional[int] = None,
    ) -> PositionedGraph:
        """Run every stage synchronously.

        Raises:
            ValueError: If *layout* is not a registered layout name.
        """
        layout_name = layout or self.settings.default_layout
        graph = self.prepare(raw, repo_id, root_prefix=root_prefix)
        nodes, edges, clusters = self.visible_graph(graph, repo_id, cluster=cluster)
        positions = compute_layout(
            layout_name,
            to_layout_nodes(nodes, self.settings.node_width, self.settings.node_height),
            to_layout_edges(edges),
            self.layout_options(seed),
        )
        return self._assemble(graph, nodes, edges, clusters, positions, layout_name)

    async def run_async(
        self,
        raw: RawGraph,
        repo_id: str,
        layout: Optional[str] = None,
        cluster: Optional[bool] = None,
        root_prefix: Optional[str] = None,
        seed: Optional[int] = None,
    ) -> PositionedGraph:
        """Same as :meth:`run`, awaiting advanced layouts on the running loop."""
        layout_name = layout or self.settings.default_layout
        graph = self.prepare(raw, repo_id, root_prefix=root_prefix)
        nodes, edges, clusters = self.visible_graph(graph, repo_id, cluster=cluster)
        positions = await compute_layout_async(
            layout_name,
            to_layout_nodes(nodes, self.settings.node_width, self.settings.node_height),
            to_layout_edges(edges),
            self.layout_options(seed),
        )
        return self._assemble(graph, nodes, edges, clusters, positions, layout_name)

    # ------------------------------------------------------------------
    # Cluster state actions
    # ------------------------------------------------------------------

    def _known_clusters(self, repo_id: str) -> List[Cluster]:
        graph = self.cache.get(repo_id)
        if graph is None:
            logger.debug("No cached graph for %s; no clusters known", repo_id)
            return []
        return self.build_clusters(graph)

    def cluster_state(self, repo_id: str) -> ClusterState:
        return self.state_store.load(repo_id)

    def toggle_cluster(self, repo_id: str, cluster_id: str) -> ClusterState:
        state = toggle_cluster(cluster_id, self.state_store.load(repo_id))
        self.state_store.save(repo_id, state)
        return state

    def expand_all(self, repo_id: str, clusters: Optional[List[Cluster]] = None) -> ClusterState:
        state = expand_all_clusters(clusters if clusters is not None else self._known_clusters(repo_id))
        self.state_store.save(repo_id, state)
        return state

    def collapse_all(self, repo_id: str, clusters: Optional[List[Cluster]] = None) -> ClusterState:
        state = collapse_all_clusters(clusters if clusters is not None else self._known_clusters(repo_id))
        self.state_store.save(repo_id, state)
        return state
