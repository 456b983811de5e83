"""Force-directed layout simulated with numpy.

Every pair of nodes closer than ``cutoff`` repels with magnitude
``repulsion / d**2``; every edge pulls its endpoints together with
magnitude ``attraction * d``. Velocities are damped and capped each
step. The pairwise matrix is O(n^2) in memory, which is fine for the
graph sizes a single repository produces.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from .models import LayoutEdge, LayoutNode, LayoutResult, Point

logger = logging.getLogger(__name__)

REPULSION = 10000.0
ATTRACTION = 0.01
DAMPING = 0.85
CUTOFF = 600.0
MAX_STEP = 50.0
MIN_DISTANCE = 1.0
DEFAULT_ITERATIONS = 300
INITIAL_SPREAD = 1000.0


def force_directed_layout(
    nodes: List[LayoutNode],
    edges: List[LayoutEdge],
    iterations: int = DEFAULT_ITERATIONS,
    seed: Optional[int] = None,
    repulsion: float = REPULSION,
    attraction: float = ATTRACTION,
    damping: float = DAMPING,
    cutoff: float = CUTOFF,
) -> LayoutResult:
    """Run the simulation and return the final positions.

    Args:
        nodes: Nodes to place.
        edges: Edges pulling nodes together; unknown endpoints and self
            loops are ignored.
        iterations: Number of simulation steps.
        seed: Seed for the random initial placement. Pass a value for
            reproducible output.
        repulsion: Pairwise repulsion constant.
        attraction: Edge spring constant.
        damping: Velocity multiplier applied each step (0..1).
        cutoff: Pairs farther apart than this do not repel.
    """
    if not nodes:
        return {}

    ids = list(dict.fromkeys(n.id for n in nodes))
    index = {node_id: i for i, node_id in enumerate(ids)}
    count = len(ids)

    rng = np.random.default_rng(seed)
    pos = rng.uniform(0.0, INITIAL_SPREAD, size=(count, 2))
    vel = np.zeros((count, 2))

    pairs = np.array(
        [
            (index[e.source], index[e.target])
            for e in edges
            if e.source in index and e.target in index and e.source != e.target
        ],
        dtype=int,
    ).reshape(-1, 2)

    for _ in range(iterations):
        forces = np.zeros((count, 2))

        if count > 1:
            delta = pos[:, None, :] - pos[None, :, :]
            dist = np.sqrt((delta ** 2).sum(axis=-1))
            np.fill_diagonal(dist, np.inf)
            safe = np.maximum(dist, MIN_DISTANCE)
            magnitude = np.where(dist < cutoff, repulsion / safe ** 2, 0.0)
            # Coincident nodes have no direction and push nothing
            with np.errstate(divide="ignore", invalid="ignore"):
                unit = np.where(dist[..., None] > 0, delta / dist[..., None], 0.0)
            forces += (magnitude[..., None] * unit).sum(axis=1)

        if len(pairs):
            src, dst = pairs[:, 0], pairs[:, 1]
            pull = attraction * (pos[dst] - pos[src])
            np.add.at(forces, src, pull)
            np.add.at(forces, dst, -pull)

        vel = (vel + forces) * damping
        speed = np.linalg.norm(vel, axis=1, keepdims=True)
        vel = np.where(speed > MAX_STEP, vel * (MAX_STEP / np.maximum(speed, MIN_DISTANCE)), vel)
        pos = pos + vel

    if not np.all(np.isfinite(pos)):
        logger.warning("Force simulation diverged; resetting non-finite positions")
        pos = np.nan_to_num(pos, nan=0.0, posinf=INITIAL_SPREAD, neginf=0.0)

    return {node_id: Point(float(pos[i, 0]), float(pos[i, 1])) for node_id, i in index.items()}
