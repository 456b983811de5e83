"""Integration tests for CLI commands."""

import json
from pathlib import Path

import toml
from typer.testing import CliRunner

from codegraph_layout import __version__, config
from codegraph_layout.cli import app
from codegraph_layout.storage import ClusterStateStore

runner = CliRunner()


class TestVersion:
    """Tests for global options."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestLayoutCommand:
    """Tests for 'cgl layout'."""

    def test_writes_positioned_graph(self, graph_file: Path, temp_dir: Path):
        out = temp_dir / "out" / "positioned.json"
        result = runner.invoke(app, ["layout", str(graph_file), "--layout", "by-file", "-o", str(out)])

        assert result.exit_code == 0
        assert "Laid out" in result.stdout
        assert "Files: 3" in result.stdout

        payload = json.loads(out.read_text(encoding="utf-8"))
        assert payload["layout"] == "by-file"
        ids = {n["id"] for n in payload["nodes"]}
        assert "src/a.ts" in ids
        assert all("x" in n and "y" in n for n in payload["nodes"])

    def test_prints_json_without_output(self, graph_file: Path):
        result = runner.invoke(app, ["layout", str(graph_file), "-l", "hierarchical"])
        assert result.exit_code == 0
        assert '"layout": "hierarchical"' in result.stdout

    def test_unknown_layout_is_bad_parameter(self, graph_file: Path):
        result = runner.invoke(app, ["layout", str(graph_file), "--layout", "spiral"])
        assert result.exit_code != 0

    def test_invalid_json(self, temp_dir: Path):
        bad = temp_dir / "bad.json"
        bad.write_text("{nope", encoding="utf-8")
        result = runner.invoke(app, ["layout", str(bad)])
        assert result.exit_code != 0

    def test_missing_file(self):
        result = runner.invoke(app, ["layout", "/nonexistent/graph.json"])
        assert result.exit_code != 0


class TestClusterCommands:
    """Tests for cluster inspection and state commands."""

    def test_clusters_table(self, big_graph_file: Path):
        result = runner.invoke(app, ["clusters", str(big_graph_file), "--repo", "acme/big"])
        assert result.exit_code == 0
        assert "cluster-pkg0" in result.stdout
        assert "expanded" in result.stdout

    def test_no_clusters(self, graph_file: Path, isolated_config: Path):
        save = {"clustering": {"min_cluster_size": 50}}
        isolated_config.mkdir(parents=True, exist_ok=True)
        config.CONFIG_FILE.write_text(toml.dumps(save), encoding="utf-8")

        result = runner.invoke(app, ["clusters", str(graph_file)])
        assert result.exit_code == 0
        assert "No clusters" in result.stdout

    def test_toggle_persists(self):
        result = runner.invoke(app, ["toggle", "cluster-src", "--repo", "https://github.com/acme/widgets"])
        assert result.exit_code == 0
        assert "collapsed" in result.stdout
        assert ClusterStateStore().load("acme/widgets") == {"cluster-src": False}

        result = runner.invoke(app, ["toggle", "cluster-src", "--repo", "acme/widgets"])
        assert "expanded" in result.stdout

    def test_collapse_and_expand_all(self, big_graph_file: Path):
        result = runner.invoke(app, ["collapse-all", str(big_graph_file), "--repo", "acme/big"])
        assert result.exit_code == 0
        assert "Collapsed 4 clusters" in result.stdout
        assert set(ClusterStateStore().load("acme/big").values()) == {False}

        table = runner.invoke(app, ["clusters", str(big_graph_file), "--repo", "acme/big"])
        assert "collapsed" in table.stdout

        result = runner.invoke(app, ["expand-all", str(big_graph_file), "--repo", "acme/big"])
        assert "Expanded 4 clusters" in result.stdout

    def test_repo_defaults_from_payload(self, graph_file: Path):
        result = runner.invoke(app, ["collapse-all", str(graph_file)])
        assert result.exit_code == 0
        assert "acme/widgets" in result.stdout


class TestConfigCommands:
    """Tests for layouts/show-config/set-config."""

    def test_layouts(self):
        result = runner.invoke(app, ["layouts"])
        assert result.exit_code == 0
        assert "advanced-force" in result.stdout
        assert "by-module" in result.stdout

    def test_show_config(self):
        result = runner.invoke(app, ["show-config"])
        assert result.exit_code == 0
        assert "[clustering]" in result.stdout
        assert "min_cluster_size = 5" in result.stdout

    def test_set_config(self):
        result = runner.invoke(app, ["set-config", "clustering", "min_cluster_size", "7"])
        assert result.exit_code == 0
        assert toml.load(config.CONFIG_FILE)["clustering"]["min_cluster_size"] == 7

    def test_set_temp_prefixes(self):
        result = runner.invoke(app, ["set-config", "normalizer", "temp_prefixes", "/srv/a/, /srv/b/"])
        assert result.exit_code == 0
        assert toml.load(config.CONFIG_FILE)["normalizer"]["temp_prefixes"] == ["/srv/a/", "/srv/b/"]

    def test_set_config_rejects_unknown(self):
        assert runner.invoke(app, ["set-config", "nope", "x", "1"]).exit_code != 0
        assert runner.invoke(app, ["set-config", "layout", "colour", "1"]).exit_code != 0
        assert runner.invoke(app, ["set-config", "layout", "default", "spiral"]).exit_code != 0
