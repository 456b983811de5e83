"""Core data models shared by normalization, clustering, and layout."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

NODE_TYPES = ("file", "directory", "function", "class", "module")
NODE_STATUSES = ("unchanged", "modified", "added", "deleted")


@dataclass
class Node:
    id: str
    label: str
    type: str
    depth: int = 0
    parent_id: Optional[str] = None
    file_path: Optional[str] = None
    extension: Optional[str] = None
    language: Optional[str] = None
    line_number: Optional[int] = None
    end_line_number: Optional[int] = None
    status: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase shape the renderer expects."""
        payload = {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "depth": self.depth,
            "parentId": self.parent_id,
            "filePath": self.file_path,
            "extension": self.extension,
            "language": self.language,
            "lineNumber": self.line_number,
            "endLineNumber": self.end_line_number,
            "status": self.status,
        }
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        return {k: v for k, v in payload.items() if v is not None}


@dataclass
class Edge:
    id: str
    source: str
    target: str
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ClusterMetrics:
    node_count: int = 0
    file_count: int = 0
    function_count: int = 0
    class_count: int = 0


@dataclass
class Cluster:
    """A directory-scoped group of nodes that can collapse to one placeholder."""

    id: str
    label: str
    path: str
    nodes: List[Node]
    metrics: ClusterMetrics
    depth: int

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "path": self.path,
            "depth": self.depth,
            "nodeIds": self.node_ids,
            "metrics": asdict(self.metrics),
        }


@dataclass
class LayoutNode:
    """Reduced node projection consumed by every layout strategy."""

    id: str
    width: float
    height: float
    depth: Optional[int] = None
    type: Optional[str] = None
    file_path: Optional[str] = None
    parent_id: Optional[str] = None


@dataclass
class LayoutEdge:
    id: str
    source: str
    target: str
    type: Optional[str] = None


@dataclass(frozen=True)
class Point:
    x: float
    y: float


# Node id -> top-left coordinate. Every strategy returns one entry per input node.
LayoutResult = Dict[str, Point]


@dataclass
class GraphStats:
    total_files: int = 0
    total_directories: int = 0
    total_functions: int = 0
    total_classes: int = 0
    files_by_language: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_nodes(cls, nodes: List[Node]) -> "GraphStats":
        by_language: Dict[str, int] = {}
        for node in nodes:
            if node.type == "file" and node.language:
                by_language[node.language] = by_language.get(node.language, 0) + 1
        return cls(
            total_files=sum(1 for n in nodes if n.type == "file"),
            total_directories=sum(1 for n in nodes if n.type == "directory"),
            total_functions=sum(1 for n in nodes if n.type == "function"),
            total_classes=sum(1 for n in nodes if n.type == "class"),
            files_by_language=by_language,
        )


@dataclass
class NormalizedGraph:
    nodes: List[Node]
    edges: List[Edge]
    dropped_edges: int = 0
    stats: GraphStats = field(default_factory=GraphStats)


@dataclass
class VisibleGraph:
    """Result of filtering a graph by cluster expand/collapse state."""

    nodes: List[Node]
    edges: List[Edge]
    collapsed_clusters: List[Cluster]


@dataclass
class PositionedGraph:
    """Final pipeline output handed to the rendering layer."""

    nodes: List[Node]
    edges: List[Edge]
    positions: LayoutResult
    clusters: List[Cluster] = field(default_factory=list)
    stats: GraphStats = field(default_factory=GraphStats)
    layout: str = ""

    def to_dict(self) -> Dict[str, Any]:
        nodes_out = []
        for node in self.nodes:
            payload = node.to_dict()
            point = self.positions.get(node.id)
            if point is not None:
                payload["x"] = point.x
                payload["y"] = point.y
            nodes_out.append(payload)
        return {
            "layout": self.layout,
            "nodes": nodes_out,
            "edges": [e.to_dict() for e in self.edges],
            "clusters": [c.to_dict() for c in self.clusters],
            "stats": asdict(self.stats),
        }
