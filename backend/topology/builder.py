"""
Adjacency and self-admittance from the branch list.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from network.model import NetworkModel
from resilience.errors import NetworkValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Topology:
    """Unweighted bus adjacency plus per-bus self-admittance, both by bus position."""
    adjacency: np.ndarray         # bool (n_bus, n_bus), symmetric
    self_admittance: np.ndarray   # float (n_bus,)
    bus_ids: tuple[int, ...]

    @property
    def bus_count(self) -> int:
        return len(self.bus_ids)

    @property
    def edge_count(self) -> int:
        """Distinct connected bus pairs (parallel branches count once)."""
        off_diag = np.triu(self.adjacency, k=1)
        return int(off_diag.sum()) + int(np.trace(self.adjacency))


def build_topology(model: NetworkModel) -> Topology:
    """
    Mark both directions of every branch as adjacent and add the branch
    susceptance ``1 / reactance`` to both endpoint buses. Parallel
    branches add admittance but leave adjacency unchanged.
    """
    positions = model.bus_positions()
    n_bus = len(positions)
    adjacency = np.zeros((n_bus, n_bus), dtype=bool)
    self_admittance = np.zeros(n_bus, dtype=float)

    for idx, branch in enumerate(model.branches):
        try:
            i = positions[branch.from_bus]
            j = positions[branch.to_bus]
        except KeyError as e:
            raise NetworkValidationError(
                f"Branch {idx} references unknown bus id {e.args[0]}"
            ) from e
        if branch.reactance == 0:
            raise NetworkValidationError(
                f"Branch {idx} ({branch.from_bus}-{branch.to_bus}) has zero reactance"
            )
        if i == j:
            logger.warning("Branch %d is a self-loop on bus %d", idx, branch.from_bus)

        adjacency[i, j] = True
        adjacency[j, i] = True
        susceptance = 1.0 / branch.reactance
        self_admittance[i] += susceptance
        self_admittance[j] += susceptance

    logger.debug("Topology: %d buses, %d branches", n_bus, model.branch_count)
    return Topology(
        adjacency=adjacency,
        self_admittance=self_admittance,
        bus_ids=tuple(model.bus_ids),
    )
