"""Typer-based CLI for CodeGraph Layout."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, config, config_manager
from .clustering import is_expanded
from .layout_registry import LAYOUT_OPTIONS, layout_names
from .pipeline import GraphPipeline
from .raw_models import RawGraph
from .storage import extract_repo_id

app = typer.Typer(
    help="CodeGraph Layout: normalize, cluster and lay out code graphs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"CodeGraph Layout v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
):
    """CodeGraph Layout: turn raw code graphs into positioned graphs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_graph_file(graph_file: Path, local: bool) -> Tuple[RawGraph, Dict[str, Any]]:
    try:
        payload = json.loads(graph_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"Cannot read graph file '{graph_file}': {exc}")
    if not isinstance(payload, dict):
        raise typer.BadParameter("Graph file must contain a JSON object with 'nodes' and 'edges'.")
    return RawGraph.from_payload(payload, local=local), payload


def _resolve_repo(repo: Optional[str], payload: Dict[str, Any], graph_file: Path) -> str:
    candidate = repo or payload.get("repoId") or payload.get("repoUrl") or graph_file.stem
    return extract_repo_id(str(candidate))


def _prepare(graph_file: Path, repo: Optional[str], local: bool, root: Optional[str]):
    raw, payload = _load_graph_file(graph_file, local)
    repo_id = _resolve_repo(repo, payload, graph_file)
    pipeline = GraphPipeline()
    graph = pipeline.prepare(raw, repo_id, root_prefix=root)
    return pipeline, graph, repo_id


@app.command("layout")
def layout_command(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Raw graph JSON file."),
    layout_name: Optional[str] = typer.Option(None, "--layout", "-l", help="Layout algorithm (see 'cgl layouts')."),
    repo: Optional[str] = typer.Option(None, "--repo", "-r", help="Repository id or URL for cluster state."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write positioned graph JSON here."),
    local: bool = typer.Option(False, "--local", help="Input comes from the local scanner."),
    root: Optional[str] = typer.Option(None, "--root", help="Workspace root stripped from local paths."),
    cluster: Optional[bool] = typer.Option(None, "--cluster/--no-cluster", help="Force clustering on or off."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the force layout."),
):
    """Normalize a raw graph and compute node positions."""
    raw, payload = _load_graph_file(graph_file, local)
    repo_id = _resolve_repo(repo, payload, graph_file)
    pipeline = GraphPipeline()

    try:
        positioned = pipeline.run(
            raw, repo_id, layout=layout_name, cluster=cluster, root_prefix=root, seed=seed,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc))

    text = json.dumps(positioned.to_dict(), indent=2)
    if output is None:
        typer.echo(text)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    stats = positioned.stats
    typer.echo(f"Laid out {len(positioned.nodes)} nodes with '{positioned.layout}' -> {output}")
    typer.echo(
        f"Files: {stats.total_files} | Directories: {stats.total_directories} | "
        f"Functions: {stats.total_functions} | Classes: {stats.total_classes}"
    )


@app.command("clusters")
def clusters_command(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Raw graph JSON file."),
    repo: Optional[str] = typer.Option(None, "--repo", "-r", help="Repository id or URL."),
    local: bool = typer.Option(False, "--local", help="Input comes from the local scanner."),
    root: Optional[str] = typer.Option(None, "--root", help="Workspace root stripped from local paths."),
):
    """Show directory clusters with metrics and expand/collapse state."""
    pipeline, graph, repo_id = _prepare(graph_file, repo, local, root)
    clusters = pipeline.build_clusters(graph)
    if not clusters:
        typer.echo("No clusters (no directory reaches the minimum cluster size).")
        raise typer.Exit(code=0)

    state = pipeline.cluster_state(repo_id)
    table = Table(title=f"Clusters for {repo_id}", show_header=True, show_lines=False)
    table.add_column("Cluster", style="cyan")
    table.add_column("Nodes", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Functions", justify="right")
    table.add_column("Classes", justify="right")
    table.add_column("State")
    for c in clusters:
        table.add_row(
            c.id,
            str(c.metrics.node_count),
            str(c.metrics.file_count),
            str(c.metrics.function_count),
            str(c.metrics.class_count),
            "expanded" if is_expanded(c.id, state) else "collapsed",
        )
    console.print(table)


@app.command("toggle")
def toggle_command(
    cluster_id: str = typer.Argument(..., help="Cluster id, e.g. cluster-src/app."),
    repo: str = typer.Option(..., "--repo", "-r", help="Repository id or URL."),
):
    """Flip one cluster between expanded and collapsed."""
    repo_id = extract_repo_id(repo)
    state = GraphPipeline().toggle_cluster(repo_id, cluster_id)
    label = "expanded" if is_expanded(cluster_id, state) else "collapsed"
    typer.echo(f"{cluster_id} is now {label}.")


@app.command("expand-all")
def expand_all_command(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Raw graph JSON file."),
    repo: Optional[str] = typer.Option(None, "--repo", "-r", help="Repository id or URL."),
    local: bool = typer.Option(False, "--local", help="Input comes from the local scanner."),
    root: Optional[str] = typer.Option(None, "--root", help="Workspace root stripped from local paths."),
):
    """Expand every cluster of a graph."""
    pipeline, _graph, repo_id = _prepare(graph_file, repo, local, root)
    state = pipeline.expand_all(repo_id)
    typer.echo(f"Expanded {len(state)} clusters for {repo_id}.")


@app.command("collapse-all")
def collapse_all_command(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Raw graph JSON file."),
    repo: Optional[str] = typer.Option(None, "--repo", "-r", help="Repository id or URL."),
    local: bool = typer.Option(False, "--local", help="Input comes from the local scanner."),
    root: Optional[str] = typer.Option(None, "--root", help="Workspace root stripped from local paths."),
):
    """Collapse every cluster of a graph."""
    pipeline, _graph, repo_id = _prepare(graph_file, repo, local, root)
    state = pipeline.collapse_all(repo_id)
    typer.echo(f"Collapsed {len(state)} clusters for {repo_id}.")


@app.command("layouts")
def layouts_command():
    """List available layout algorithms."""
    default = config_manager.load_settings().default_layout
    table = Table(show_header=True, show_lines=False)
    table.add_column("Name", style="cyan")
    table.add_column("Label")
    table.add_column("Description")
    for option in LAYOUT_OPTIONS:
        name = option["value"]
        marker = " *" if name == default else ""
        table.add_row(name + marker, option["label"], option["description"])
    console.print(table)


@app.command("show-config")
def show_config():
    """Show the effective configuration."""
    cfg = config_manager.load_config()
    for section, values in cfg.items():
        typer.echo(typer.style(f"[{section}]", bold=True))
        for key, value in values.items():
            typer.echo(f"  {key} = {value!r}")
    typer.echo(f"Config file: {config.CONFIG_FILE}")


def _parse_value(value: str) -> Any:
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value


@app.command("set-config")
def set_config(
    section: str = typer.Argument(..., help="Config section: clustering, layout or normalizer."),
    key: str = typer.Argument(..., help="Key inside the section."),
    value: str = typer.Argument(..., help="New value."),
):
    """Persist one configuration value."""
    if section not in config_manager.DEFAULT_CONFIG:
        raise typer.BadParameter(
            f"Unknown section '{section}'. Choose from: {', '.join(config_manager.DEFAULT_CONFIG)}"
        )
    if key not in config_manager.DEFAULT_CONFIG[section]:
        raise typer.BadParameter(f"Unknown key '{key}' for section '{section}'.")
    if section == "layout" and key == "default" and value not in layout_names():
        raise typer.BadParameter(f"Unknown layout '{value}'.")

    parsed: Any = [p.strip() for p in value.split(",") if p.strip()] if key == "temp_prefixes" else _parse_value(value)
    if not config_manager.save_section(section, {key: parsed}):
        typer.echo("Failed to save configuration.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Set {section}.{key} = {parsed!r}")


if __name__ == "__main__":
    app()
