"""Pytest configuration and fixtures for CodeGraph Layout tests."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator, List

import pytest

from codegraph_layout.config_manager import PipelineSettings
from codegraph_layout.models import LayoutEdge, LayoutNode
from codegraph_layout.pipeline import GraphPipeline
from codegraph_layout.storage import ClusterStateStore, GraphCache


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_config(temp_dir: Path, monkeypatch) -> Path:
    """Point config and state files at a temporary directory."""
    base = temp_dir / "home"
    monkeypatch.setattr("codegraph_layout.config.BASE_DIR", base)
    monkeypatch.setattr("codegraph_layout.config.STATE_FILE", base / "state.json")
    monkeypatch.setattr("codegraph_layout.config.CONFIG_FILE", base / "config.toml")
    return base


@pytest.fixture
def state_store(temp_dir: Path) -> ClusterStateStore:
    return ClusterStateStore(temp_dir / "cluster-state.json")


@pytest.fixture
def pipeline(state_store: ClusterStateStore) -> GraphPipeline:
    """Pipeline with default settings and isolated services."""
    return GraphPipeline(settings=PipelineSettings(), state_store=state_store, cache=GraphCache())


@pytest.fixture
def backend_payload() -> Dict[str, Any]:
    """Raw graph as the analysis backend reports it (temp checkout paths, bare names)."""
    return {
        "repoUrl": "https://github.com/acme/widgets.git",
        "nodes": [
            {"id": "1", "type": "File", "properties": {"file_path": "/tmp/x1/src/a.ts", "name": "a.ts"}},
            {"id": "2", "type": "File", "properties": {"file_path": "/tmp/x1/src/b.ts", "name": "b.ts"}},
            {
                "id": "3",
                "type": "Function",
                "properties": {"file_path": "/tmp/x1/src/a.ts", "name": "render", "start_line": 3, "end_line": 9},
            },
            {
                "id": "4",
                "type": "Class",
                "properties": {"file_path": "/tmp/x1/src/b.ts", "name": "Widget", "start_line": 1},
            },
            {"id": "5", "type": "File", "properties": {"file_path": "/tmp/x1/README.md", "name": "README.md"}},
        ],
        "edges": [
            {"source": "1", "target": "2", "type": "IMPORTS"},
            {"source": "render", "target": "Widget", "type": "CALLS"},
            {"source": "1", "target": "3", "type": "DEFINES"},
            {"source": "1", "target": "ghost", "type": "IMPORTS"},
        ],
    }


@pytest.fixture
def local_payload() -> Dict[str, Any]:
    """Raw graph from the local scanner (absolute workspace paths, camelCase keys)."""
    return {
        "nodes": [
            {"id": "/work/app/src", "type": "directory", "label": "src", "filePath": "/work/app/src", "depth": 1},
            {
                "id": "/work/app/src/main.py",
                "type": "file",
                "label": "main.py",
                "filePath": "/work/app/src/main.py",
                "parentId": "/work/app/src",
                "extension": "py",
            },
            {
                "id": "/work/app/src/main.py::run",
                "type": "function",
                "label": "run",
                "filePath": "/work/app/src/main.py",
                "parentId": "/work/app/src/main.py",
                "lineNumber": 10,
            },
        ],
        "edges": [
            {"source": "/work/app/src", "target": "/work/app/src/main.py", "type": "contains"},
        ],
    }


def make_big_payload(directories: int = 4, files_per_dir: int = 15) -> Dict[str, Any]:
    nodes: List[Dict[str, Any]] = []
    edges: List[Dict[str, Any]] = []
    for d in range(directories):
        for f in range(files_per_dir):
            path = f"/tmp/job/pkg{d}/mod{f}.py"
            nodes.append({"id": f"{d}-{f}", "type": "File", "properties": {"file_path": path}})
            if f:
                edges.append({"source": f"{d}-{f - 1}", "target": f"{d}-{f}", "type": "IMPORTS"})
    return {"nodes": nodes, "edges": edges}


@pytest.fixture
def big_payload() -> Dict[str, Any]:
    """Sixty files in four directories, above the auto-cluster threshold."""
    return make_big_payload()


@pytest.fixture
def graph_file(temp_dir: Path, backend_payload: Dict[str, Any]) -> Path:
    path = temp_dir / "graph.json"
    path.write_text(json.dumps(backend_payload), encoding="utf-8")
    return path


@pytest.fixture
def big_graph_file(temp_dir: Path, big_payload: Dict[str, Any]) -> Path:
    path = temp_dir / "big.json"
    path.write_text(json.dumps(big_payload), encoding="utf-8")
    return path


@pytest.fixture
def chain_layout_graph():
    """Three nodes a -> b -> c plus an isolated node d."""
    nodes = [
        LayoutNode(id=i, width=180, height=40, depth=d, type="file", file_path=f"src/{i}.ts")
        for i, d in (("a", 1), ("b", 1), ("c", 2), ("d", 2))
    ]
    edges = [
        LayoutEdge(id="e1", source="a", target="b", type="imports"),
        LayoutEdge(id="e2", source="b", target="c", type="calls"),
    ]
    return nodes, edges
