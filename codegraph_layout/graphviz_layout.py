"""Advanced layouts computed by an external Graphviz process.

The graph is written as DOT on stdin and positions are read back in
Graphviz's ``plain`` output format. ``dot`` handles the layered
algorithm and ``fdp`` the force algorithm. The engine runs off the
calling thread, is bounded by a timeout, and is killed when the awaiting
task is cancelled.

Any engine failure raises :class:`LayoutEngineError`; callers that want
a result regardless use :func:`advanced_layout`, which falls back to the
synchronous layered layout.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
import shutil
from typing import Dict, List, Optional

from . import config
from .layout import complete_result, layered_layout
from .models import LayoutEdge, LayoutNode, LayoutResult, Point

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0
FORCE_MAX_ITERATIONS = 300

ENGINE_BY_ALGORITHM: Dict[str, str] = {
    "layered": "dot",
    "force": "fdp",
}


class LayoutEngineError(RuntimeError):
    """The external layout engine could not produce positions."""


def _esc(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _inches(pixels: float) -> str:
    return f"{pixels / POINTS_PER_INCH:.4f}"


def build_dot(
    nodes: List[LayoutNode],
    edges: List[LayoutEdge],
    algorithm: str = "layered",
    node_sep: float = config.NODE_SEP,
    rank_sep: float = config.RANK_SEP,
) -> str:
    """Render nodes and edges as a DOT digraph with fixed node sizes."""
    known = {n.id for n in nodes}
    lines = ["digraph CodeGraph {"]
    if algorithm == "force":
        lines.append(f'  graph [overlap="false", maxiter="{FORCE_MAX_ITERATIONS}", sep="+{int(node_sep / 2)}"];')
    else:
        lines.append(
            f'  graph [rankdir="TB", nodesep="{_inches(node_sep)}", ranksep="{_inches(rank_sep)}"];'
        )
    lines.append('  node [shape="box", fixedsize="true"];')

    for node in nodes:
        width = node.width or config.NODE_WIDTH
        height = node.height or config.NODE_HEIGHT
        lines.append(
            f'  "{_esc(node.id)}" [width="{_inches(width)}", height="{_inches(height)}"];'
        )

    for edge in edges:
        if edge.source not in known or edge.target not in known:
            continue
        lines.append(f'  "{_esc(edge.source)}" -> "{_esc(edge.target)}";')

    lines.append("}")
    return "\n".join(lines)


def parse_plain_output(text: str) -> Dict[str, Point]:
    """Parse ``-Tplain`` output into top-left positions in points.

    Graphviz reports node centers in inches with the origin at the bottom
    left; the result uses a top-left origin with y growing downwards.
    Non-numeric geometry raises :class:`LayoutEngineError`.
    """
    graph_height = 0.0
    positions: Dict[str, Point] = {}
    for line in text.splitlines():
        try:
            fields = shlex.split(line)
        except ValueError:
            logger.debug("Skipping unparseable plain output line: %r", line)
            continue
        if not fields:
            continue
        try:
            numbers = [float(v) for v in fields[2:6]] if fields[0] in ("graph", "node") else []
        except ValueError as exc:
            raise LayoutEngineError(f"Malformed plain output line {line!r}: {exc}") from exc
        if fields[0] == "graph" and len(fields) >= 4:
            graph_height = numbers[1]
        elif fields[0] == "node" and len(fields) >= 6:
            name = fields[1]
            cx, cy, width, height = numbers
            positions[name] = Point(
                (cx - width / 2.0) * POINTS_PER_INCH,
                (graph_height - cy - height / 2.0) * POINTS_PER_INCH,
            )
        elif fields[0] == "stop":
            break
    return positions


def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass


async def run_graphviz(
    dot_source: str,
    engine: str,
    timeout: float = config.ADVANCED_LAYOUT_TIMEOUT,
    executable: Optional[str] = None,
) -> str:
    """Run Graphviz with layout *engine* and return its plain output."""
    exe = executable or shutil.which("dot")
    if not exe:
        raise LayoutEngineError("Graphviz 'dot' executable not found on PATH")

    try:
        proc = await asyncio.create_subprocess_exec(
            exe,
            f"-K{engine}",
            "-Tplain",
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise LayoutEngineError(f"Failed to start {exe}: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(dot_source.encode("utf-8")), timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        _kill(proc)
        await proc.wait()
        raise LayoutEngineError(f"{engine} layout timed out after {timeout:g}s") from exc
    except asyncio.CancelledError:
        _kill(proc)
        await asyncio.shield(proc.wait())
        raise

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        raise LayoutEngineError(f"{engine} exited with {proc.returncode}: {message}")
    return stdout.decode("utf-8", errors="replace")


async def graphviz_layout(
    nodes: List[LayoutNode],
    edges: List[LayoutEdge],
    algorithm: str = "layered",
    timeout: float = config.ADVANCED_LAYOUT_TIMEOUT,
    node_sep: float = config.NODE_SEP,
    rank_sep: float = config.RANK_SEP,
    executable: Optional[str] = None,
) -> LayoutResult:
    """Lay out with Graphviz; raises :class:`LayoutEngineError` on failure."""
    if not nodes:
        return {}
    engine = ENGINE_BY_ALGORITHM.get(algorithm)
    if engine is None:
        raise ValueError(f"Unknown advanced algorithm: {algorithm}")

    dot_source = build_dot(nodes, edges, algorithm, node_sep=node_sep, rank_sep=rank_sep)
    output = await run_graphviz(dot_source, engine, timeout=timeout, executable=executable)
    parsed = parse_plain_output(output)
    if not parsed:
        raise LayoutEngineError(f"{engine} returned no node positions")

    result: LayoutResult = {n.id: parsed[n.id] for n in nodes if n.id in parsed}
    return complete_result(result, nodes)


async def advanced_layout(
    nodes: List[LayoutNode],
    edges: List[LayoutEdge],
    algorithm: str = "layered",
    timeout: float = config.ADVANCED_LAYOUT_TIMEOUT,
    node_sep: float = config.NODE_SEP,
    rank_sep: float = config.RANK_SEP,
    edge_sep: float = config.EDGE_SEP,
    executable: Optional[str] = None,
) -> LayoutResult:
    """Graphviz layout, falling back to the synchronous layered layout.

    Engine errors never reach the caller. Cancellation does: the engine
    process is killed and ``CancelledError`` propagates.
    """
    try:
        return await graphviz_layout(
            nodes,
            edges,
            algorithm=algorithm,
            timeout=timeout,
            node_sep=node_sep,
            rank_sep=rank_sep,
            executable=executable,
        )
    except LayoutEngineError as exc:
        logger.warning("Advanced %s layout failed (%s); using layered layout", algorithm, exc)
        return layered_layout(
            nodes, edges, direction="TB", node_sep=node_sep, rank_sep=rank_sep, edge_sep=edge_sep,
        )
