"""
Network model shared by every stage of the assessment.

The model is an ordered bus list and an ordered branch list. Those two
orderings define the index of every per-bus and per-branch output, so
the model is immutable once built. The originating pandapower network
is carried along untouched in ``case`` for the cascade simulator.
"""
from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable

import numpy as np
import pandapower as pp

from resilience.errors import NetworkValidationError

logger = logging.getLogger(__name__)


# ── Data classes ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Bus:
    """A network node (substation)."""
    bus_id: int
    name: str = ""


@dataclass(frozen=True)
class Branch:
    """A transmission line or transformer between two buses."""
    from_bus: int
    to_bus: int
    reactance: float                  # per-unit series reactance
    element: str = "line"             # "line" or "trafo" in the source case
    element_index: int | None = None  # row label in the source case table


@dataclass(frozen=True)
class NetworkModel:
    """Immutable bus/branch view of a power network."""
    name: str
    buses: tuple[Bus, ...]
    branches: tuple[Branch, ...]
    case: Any = field(default=None, compare=False, repr=False)

    @property
    def bus_count(self) -> int:
        return len(self.buses)

    @property
    def branch_count(self) -> int:
        return len(self.branches)

    @property
    def bus_ids(self) -> list[int]:
        return [b.bus_id for b in self.buses]

    def bus_positions(self) -> dict[int, int]:
        """Map each bus id to its position in the bus sequence."""
        return {bus.bus_id: pos for pos, bus in enumerate(self.buses)}

    def bus_position(self, bus_id: int) -> int:
        positions = self.bus_positions()
        if bus_id not in positions:
            raise NetworkValidationError(f"Unknown bus id: {bus_id}")
        return positions[bus_id]

    def validate(self) -> None:
        """
        Reject malformed models before any simulation work starts.

        Raises:
            NetworkValidationError: on duplicate bus ids, branch endpoints
                that are not in the bus list, or zero/non-finite reactance.
        """
        positions: dict[int, int] = {}
        for pos, bus in enumerate(self.buses):
            if bus.bus_id in positions:
                raise NetworkValidationError(
                    f"Duplicate bus id {bus.bus_id} at positions {positions[bus.bus_id]} and {pos}"
                )
            positions[bus.bus_id] = pos

        for idx, branch in enumerate(self.branches):
            for end in (branch.from_bus, branch.to_bus):
                if end not in positions:
                    raise NetworkValidationError(
                        f"Branch {idx} references unknown bus id {end}"
                    )
            if branch.reactance == 0:
                raise NetworkValidationError(
                    f"Branch {idx} ({branch.from_bus}-{branch.to_bus}) has zero reactance"
                )
            if not math.isfinite(branch.reactance):
                raise NetworkValidationError(
                    f"Branch {idx} ({branch.from_bus}-{branch.to_bus}) has non-finite "
                    f"reactance {branch.reactance!r}"
                )

    def without_branches(self, indices: Iterable[int]) -> NetworkModel:
        """
        Return a copy with the given branch positions removed.

        Positions refer to the current branch order, so removing several
        branches at once is unaffected by the shift that sequential
        removal would cause. Matching elements are also taken out of
        service in a copy of ``case``.
        """
        drop = set(indices)
        for idx in drop:
            if not 0 <= idx < self.branch_count:
                raise NetworkValidationError(
                    f"Cannot remove branch {idx}: network has {self.branch_count} branches"
                )

        case = self.case
        if case is not None and drop:
            case = copy.deepcopy(case)
            for idx in drop:
                branch = self.branches[idx]
                if branch.element_index is not None:
                    case[branch.element].at[branch.element_index, "in_service"] = False

        kept = tuple(b for i, b in enumerate(self.branches) if i not in drop)
        logger.info("Removed %d branch(es) from %s: %s", len(drop), self.name, sorted(drop))
        return NetworkModel(name=self.name, buses=self.buses, branches=kept, case=case)

    # ── Construction ───────────────────────────────────────────────

    @classmethod
    def from_pandapower(cls, net: pp.pandapowerNet, name: str | None = None) -> NetworkModel:
        """
        Build the model from a pandapower network.

        Branches are the in-service lines followed by the in-service
        two-winding transformers, each with its series reactance in
        per-unit on ``net.sn_mva``.
        """
        if name is None:
            name = net.name if getattr(net, "name", "") else "unnamed"

        buses = tuple(
            Bus(bus_id=int(idx), name=_bus_name(row.get("name")))
            for idx, row in net.bus.iterrows()
        )
        branches = tuple(_line_branches(net)) + tuple(_trafo_branches(net))
        logger.debug("Built model %s: %d buses, %d branches", name, len(buses), len(branches))
        return cls(name=name, buses=buses, branches=branches, case=net)


# ── Per-unit conversion ────────────────────────────────────────────

def _bus_name(value: Any) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return ""
    return str(value)


def _line_branches(net: pp.pandapowerNet) -> list[Branch]:
    branches = []
    lines = net.line[net.line["in_service"]]
    for idx, row in lines.iterrows():
        vn_kv = float(net.bus.at[row["from_bus"], "vn_kv"])
        z_base = vn_kv ** 2 / float(net.sn_mva)
        parallel = float(row.get("parallel", 1) or 1)
        x_ohm = float(row["x_ohm_per_km"]) * float(row["length_km"]) / parallel
        branches.append(Branch(
            from_bus=int(row["from_bus"]),
            to_bus=int(row["to_bus"]),
            reactance=x_ohm / z_base,
            element="line",
            element_index=int(idx),
        ))
    return branches


def _trafo_branches(net: pp.pandapowerNet) -> list[Branch]:
    branches = []
    if len(net.trafo) == 0:
        return branches
    trafos = net.trafo[net.trafo["in_service"]]
    for idx, row in trafos.iterrows():
        vk = float(row["vk_percent"])
        vkr = float(row["vkr_percent"])
        parallel = float(row.get("parallel", 1) or 1)
        x_pu = np.sqrt(max(vk ** 2 - vkr ** 2, 0.0)) / 100.0
        x_pu *= float(net.sn_mva) / float(row["sn_mva"]) / parallel
        branches.append(Branch(
            from_bus=int(row["hv_bus"]),
            to_bus=int(row["lv_bus"]),
            reactance=float(x_pu),
            element="trafo",
            element_index=int(idx),
        ))
    return branches
