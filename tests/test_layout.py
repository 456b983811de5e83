"""Tests for the synchronous layout strategies."""

import pytest

from codegraph_layout.layout import (
    FILE_SPACING,
    SYMBOL_INDENT,
    build_module_tree,
    by_file_layout,
    by_module_layout,
    dependency_layout,
    hierarchical_layout,
    layered_layout,
    to_layout_edges,
    to_layout_nodes,
)
from codegraph_layout.models import Edge, LayoutEdge, LayoutNode, Node

ALL_STRATEGIES = [
    layered_layout,
    hierarchical_layout,
    by_file_layout,
    by_module_layout,
    dependency_layout,
]


def _box(node_id: str, **kwargs) -> LayoutNode:
    return LayoutNode(id=node_id, width=180, height=40, **kwargs)


def _overlaps(result, nodes) -> bool:
    boxes = [(result[n.id], n.width, n.height) for n in nodes]
    for i, (p, w, h) in enumerate(boxes):
        for q, w2, h2 in boxes[i + 1:]:
            if p.x < q.x + w2 and q.x < p.x + w and p.y < q.y + h2 and q.y < p.y + h:
                return True
    return False


class TestCommonContract:
    """Properties every strategy must satisfy."""

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_empty_input(self, strategy):
        assert strategy([], []) == {}

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_single_node(self, strategy):
        result = strategy([_box("only", type="file", file_path="only.ts", depth=1)], [])
        assert list(result) == ["only"]

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_one_position_per_node(self, strategy, chain_layout_graph):
        nodes, edges = chain_layout_graph
        result = strategy(nodes, edges)
        assert set(result) == {n.id for n in nodes}

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_inputs_not_mutated(self, strategy, chain_layout_graph):
        nodes, edges = chain_layout_graph
        before = (list(nodes), list(edges))
        strategy(nodes, edges)
        assert (nodes, edges) == before


class TestLayeredLayout:
    """Tests for the Sugiyama layered layout."""

    def test_top_bottom_ranks(self, chain_layout_graph):
        nodes, edges = chain_layout_graph
        result = layered_layout(nodes, edges, direction="TB")
        assert result["a"].y < result["b"].y < result["c"].y

    def test_left_right_ranks(self, chain_layout_graph):
        nodes, edges = chain_layout_graph
        result = layered_layout(nodes, edges, direction="LR")
        assert result["a"].x < result["b"].x < result["c"].x

    def test_no_overlap(self):
        nodes = [_box(i) for i in ("root", "l", "r", "leaf", "solo")]
        edges = [
            LayoutEdge(id="1", source="root", target="l"),
            LayoutEdge(id="2", source="root", target="r"),
            LayoutEdge(id="3", source="l", target="leaf"),
            LayoutEdge(id="4", source="r", target="leaf"),
        ]
        result = layered_layout(nodes, edges)
        assert not _overlaps(result, nodes)

    def test_single_node_at_margin(self):
        result = layered_layout([_box("x")], [])
        assert (result["x"].x, result["x"].y) == (20.0, 20.0)

    def test_self_loops_duplicates_and_unknown_endpoints(self):
        nodes = [_box("a"), _box("b")]
        edges = [
            LayoutEdge(id="1", source="a", target="a"),
            LayoutEdge(id="2", source="a", target="b"),
            LayoutEdge(id="3", source="a", target="b"),
            LayoutEdge(id="4", source="a", target="missing"),
        ]
        result = layered_layout(nodes, edges)
        assert set(result) == {"a", "b"}
        assert result["a"].y < result["b"].y

    def test_cycle(self):
        nodes = [_box("a"), _box("b"), _box("c")]
        edges = [
            LayoutEdge(id="1", source="a", target="b"),
            LayoutEdge(id="2", source="b", target="c"),
            LayoutEdge(id="3", source="c", target="a"),
        ]
        result = layered_layout(nodes, edges)
        assert set(result) == {"a", "b", "c"}
        assert not _overlaps(result, nodes)


class TestDependencyLayout:
    """Tests for the dependency-only layout."""

    def test_ignores_contains_edges(self):
        nodes = [_box("dir"), _box("a"), _box("b")]
        edges = [
            LayoutEdge(id="1", source="dir", target="a", type="contains"),
            LayoutEdge(id="2", source="a", target="b", type="calls"),
        ]
        result = dependency_layout(nodes, edges)
        assert result["a"].x < result["b"].x
        assert not _overlaps(result, nodes)


class TestHierarchicalLayout:
    """Tests for depth rows."""

    def test_rows_by_depth(self, chain_layout_graph):
        nodes, edges = chain_layout_graph
        result = hierarchical_layout(nodes, edges)

        assert result["a"].y == result["b"].y == 0.0
        assert result["c"].y == result["d"].y > 0.0
        assert result["a"].x < result["b"].x
        assert result["c"].x < result["d"].x


class TestByFileLayout:
    """Tests for the by-file layout."""

    def test_symbols_indented_below_file(self):
        nodes = [
            _box("src/a.ts", type="file", file_path="src/a.ts"),
            _box("src/b.ts", type="file", file_path="src/b.ts"),
            _box("src/a.ts::run", type="function", file_path="src/a.ts"),
            _box("src/a.ts::App", type="class", parent_id="src/a.ts"),
            _box("src/a.ts::App.render", type="function", parent_id="src/a.ts::App"),
        ]
        result = by_file_layout(nodes, [])

        a, b = result["src/a.ts"], result["src/b.ts"]
        assert a.x == b.x == 0.0
        for symbol in ("src/a.ts::run", "src/a.ts::App", "src/a.ts::App.render"):
            assert result[symbol].x == SYMBOL_INDENT
            assert a.y < result[symbol].y < b.y

    def test_files_spaced_evenly_without_symbols(self):
        nodes = [_box(f"f{i}.ts", type="file", file_path=f"f{i}.ts") for i in range(3)]
        result = by_file_layout(nodes, [])
        assert [result[n.id].y for n in nodes] == [0.0, FILE_SPACING, 2 * FILE_SPACING]

    def test_orphan_symbols_placed_last(self):
        nodes = [
            _box("a.ts", type="file", file_path="a.ts"),
            _box("lonely", type="function"),
        ]
        result = by_file_layout(nodes, [])
        assert result["lonely"].y > result["a.ts"].y


class TestByModuleLayout:
    """Tests for the by-module layout."""

    def test_module_tree(self):
        nodes = [
            _box("src", type="directory", file_path="src"),
            _box("src/a.ts", type="file", file_path="src/a.ts"),
            _box("src/ui/b.ts", type="file", file_path="src/ui/b.ts"),
            _box("README.md", type="file", file_path="README.md"),
        ]
        root = build_module_tree(nodes)

        assert root.members == ["README.md"]
        assert root.children["src"].headers == ["src"]
        assert root.children["src"].members == ["src/a.ts"]
        assert root.children["src"].children["ui"].members == ["src/ui/b.ts"]

    def test_indent_by_nesting_level(self):
        nodes = [
            _box("README.md", type="file", file_path="README.md"),
            _box("src/a.ts", type="file", file_path="src/a.ts"),
            _box("src/ui/b.ts", type="file", file_path="src/ui/b.ts"),
        ]
        result = by_module_layout(nodes, [])

        assert result["README.md"].x < result["src/a.ts"].x < result["src/ui/b.ts"].x
        assert result["README.md"].y < result["src/a.ts"].y < result["src/ui/b.ts"].y

    def test_sibling_modules_in_name_order(self):
        nodes = [
            _box("zeta/z.py", type="file", file_path="zeta/z.py"),
            _box("alpha/a.py", type="file", file_path="alpha/a.py"),
        ]
        result = by_module_layout(nodes, [])
        assert result["alpha/a.py"].y < result["zeta/z.py"].y

    def test_rows_distinct(self):
        nodes = [_box(f"pkg/m{i}.py", type="file", file_path=f"pkg/m{i}.py") for i in range(4)]
        result = by_module_layout(nodes, [])
        assert len({result[n.id].y for n in nodes}) == 4


class TestProjection:
    """Tests for Node/Edge -> LayoutNode/LayoutEdge projection."""

    def test_to_layout_nodes_and_edges(self):
        nodes = [Node(id="src/a.ts", label="a.ts", type="file", depth=2, file_path="src/a.ts", parent_id="src")]
        edges = [Edge(id="e", source="src", target="src/a.ts", type="contains")]

        layout_nodes = to_layout_nodes(nodes, width=100, height=30)
        assert layout_nodes[0].width == 100
        assert layout_nodes[0].depth == 2
        assert layout_nodes[0].parent_id == "src"
        assert to_layout_edges(edges)[0].type == "contains"
