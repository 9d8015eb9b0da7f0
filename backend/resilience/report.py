"""
Resilience report: the joined per-bus, per-branch and run-level results
of one assessment.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from .errors import AlignmentError

if TYPE_CHECKING:
    from cascade.aggregator import BranchTally
    from network.model import NetworkModel
    from scenarios.population import ScenarioPopulation
    from topology.builder import Topology
    from topology.metrics import EdgeMetrics, NodeMetrics

logger = logging.getLogger(__name__)


# ── Data classes ───────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class ResilienceReport:
    """Network theory resilience metrics for one network and scenario population."""

    network_name: str

    # ── Buses (bus order) ──────────────────────────────────────────
    bus_ids: np.ndarray
    degree_centrality: np.ndarray
    eigenvector_centrality: np.ndarray
    betweenness_centrality: np.ndarray
    closeness_centrality: np.ndarray
    clustering_coefficient: np.ndarray
    self_admittance: np.ndarray

    # ── Branches (branch order) ────────────────────────────────────
    branch_from_bus: np.ndarray
    branch_to_bus: np.ndarray
    endpoint_degree_product: np.ndarray
    edge_betweenness_centrality: np.ndarray     # unordered pairs, half the BCT count
    total_cascades: np.ndarray
    total_shedding: np.ndarray

    # ── Run counters ───────────────────────────────────────────────
    scenario_count: int
    valid_cascade_samples: int
    failed_samples: int
    no_cascade_samples: int

    # ── Provenance ─────────────────────────────────────────────────
    scenarios: tuple[frozenset[int], ...]
    sampling_mode: str = ""
    notes: tuple[str, ...] = field(default_factory=tuple)

    BUS_FIELDS = (
        "degree_centrality",
        "eigenvector_centrality",
        "betweenness_centrality",
        "closeness_centrality",
        "clustering_coefficient",
        "self_admittance",
    )
    BRANCH_FIELDS = (
        "branch_from_bus",
        "branch_to_bus",
        "endpoint_degree_product",
        "edge_betweenness_centrality",
        "total_cascades",
        "total_shedding",
    )

    @property
    def bus_count(self) -> int:
        return int(self.bus_ids.shape[0])

    @property
    def branch_count(self) -> int:
        return int(self.branch_from_bus.shape[0])

    def bus_frame(self) -> pd.DataFrame:
        """One row per bus."""
        data = {"bus": self.bus_ids}
        data.update({name: getattr(self, name) for name in self.BUS_FIELDS})
        return pd.DataFrame(data)

    def branch_frame(self) -> pd.DataFrame:
        """One row per branch, indexed by branch position."""
        data = {name: getattr(self, name) for name in self.BRANCH_FIELDS}
        frame = pd.DataFrame(data)
        frame.index.name = "branch"
        return frame

    def counters(self) -> dict[str, int]:
        return {
            "scenario_count": self.scenario_count,
            "valid_cascade_samples": self.valid_cascade_samples,
            "failed_samples": self.failed_samples,
            "no_cascade_samples": self.no_cascade_samples,
        }

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-serialisable dict; undefined metrics become None."""
        return {
            "network": self.network_name,
            "buses": {
                "bus_list": _to_list(self.bus_ids),
                **{name: _to_list(getattr(self, name)) for name in self.BUS_FIELDS},
            },
            "branches": {name: _to_list(getattr(self, name)) for name in self.BRANCH_FIELDS},
            "counters": self.counters(),
            "sampling_mode": self.sampling_mode,
            "scenarios": [sorted(int(b) for b in s) for s in self.scenarios],
            "notes": list(self.notes),
        }

    def to_json(self, path: str | Path) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2))

    def to_excel(self, path: str | Path) -> None:
        """Write bus, branch and counter sheets to an .xlsx workbook."""
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            self.bus_frame().to_excel(writer, sheet_name="buses", index=False)
            self.branch_frame().to_excel(writer, sheet_name="branches")
            pd.DataFrame([self.counters()]).to_excel(writer, sheet_name="counters", index=False)

    def to_csv(self, directory: str | Path) -> None:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        self.bus_frame().to_csv(directory / "buses.csv", index=False)
        self.branch_frame().to_csv(directory / "branches.csv")
        pd.DataFrame([self.counters()]).to_csv(directory / "counters.csv", index=False)

    def to_text(self, top: int = 10) -> str:
        """Human-readable summary."""
        lines = ["=" * 60, f"NETWORK THEORY RESILIENCE METRIC: {self.network_name}", "=" * 60]

        lines.append(f"\nBuses: {self.bus_count} | Branches: {self.branch_count}")
        lines.append(f"Sampling: {self.sampling_mode or 'n/a'}")

        lines.append("\n── Scenarios ──")
        lines.append(f"  Total:            {self.scenario_count}")
        lines.append(f"  Cascading:        {self.valid_cascade_samples}")
        lines.append(f"  No cascade:       {self.no_cascade_samples}")
        lines.append(f"  Not converged:    {self.failed_samples}")

        if self.branch_count:
            branches = self.branch_frame()
            worst = branches[branches["total_shedding"] > 0].sort_values(
                "total_shedding", ascending=False
            ).head(top)
            lines.append(f"\n── Branches by total load shedding (top {top}) ──")
            if worst.empty:
                lines.append("  No branch took part in a cascade.")
            for idx, row in worst.iterrows():
                lines.append(
                    f"  Branch {idx} ({int(row['branch_from_bus'])}-{int(row['branch_to_bus'])}): "
                    f"{row['total_shedding']:.1f} MW over {int(row['total_cascades'])} cascade(s), "
                    f"EBC={row['edge_betweenness_centrality']:.2f}, "
                    f"deg*deg={row['endpoint_degree_product']:.0f}"
                )

        if self.bus_count:
            buses = self.bus_frame().sort_values("betweenness_centrality", ascending=False).head(top)
            lines.append(f"\n── Buses by betweenness centrality (top {top}) ──")
            for _, row in buses.iterrows():
                lines.append(
                    f"  Bus {int(row['bus'])}: betweenness={row['betweenness_centrality']:.2f}, "
                    f"degree={row['degree_centrality']:.0f}, "
                    f"closeness={row['closeness_centrality']:.3f}, "
                    f"self-admittance={row['self_admittance']:.2f}"
                )

        if self.notes:
            lines.append("\n── Notes ──")
            lines.extend(f"  {note}" for note in self.notes)

        lines.append("=" * 60)
        return "\n".join(lines)


def _to_list(values: np.ndarray) -> list:
    out = []
    for v in np.asarray(values).tolist():
        if isinstance(v, float) and not np.isfinite(v):
            out.append(None)
        else:
            out.append(v)
    return out


def _frozen(values, dtype=None) -> np.ndarray:
    array = np.array(values, dtype=dtype, copy=True)
    array.setflags(write=False)
    return array


# ── Assembly ───────────────────────────────────────────────────────

def assemble_report(
    model: NetworkModel,
    topology: Topology,
    node_metrics: NodeMetrics,
    edge_metrics: EdgeMetrics,
    tally: BranchTally,
    population: ScenarioPopulation,
) -> ResilienceReport:
    """
    Join topology, metrics, tallies and scenarios into one report.

    Raises:
        AlignmentError: if any per-bus or per-branch array does not match
            the model, or the counters do not add up to the population.
    """
    n_bus = model.bus_count
    n_branch = model.branch_count

    bus_arrays = {
        "self_admittance": topology.self_admittance,
        "degree_centrality": node_metrics.degree,
        "eigenvector_centrality": node_metrics.eigenvector,
        "betweenness_centrality": node_metrics.betweenness,
        "closeness_centrality": node_metrics.closeness,
        "clustering_coefficient": node_metrics.clustering,
    }
    branch_arrays = {
        "endpoint_degree_product": edge_metrics.endpoint_degree_product,
        "edge_betweenness_centrality": edge_metrics.edge_betweenness,
        "total_cascades": tally.cascade_count,
        "total_shedding": tally.total_shed,
    }
    for name, values in bus_arrays.items():
        if np.shape(values) != (n_bus,):
            raise AlignmentError(f"{name} has shape {np.shape(values)}, expected ({n_bus},)")
    for name, values in branch_arrays.items():
        if np.shape(values) != (n_branch,):
            raise AlignmentError(f"{name} has shape {np.shape(values)}, expected ({n_branch},)")
    if tuple(topology.bus_ids) != tuple(model.bus_ids):
        raise AlignmentError("Topology bus order differs from the network model")
    if tally.scenario_count != len(population):
        raise AlignmentError(
            f"Counters cover {tally.scenario_count} scenario(s), population has {len(population)}"
        )

    notes = list(getattr(node_metrics, "notes", ()))
    if tally.failed_samples:
        notes.append(f"{tally.failed_samples} scenario(s) did not converge and were excluded from tallies")

    report = ResilienceReport(
        network_name=model.name,
        bus_ids=_frozen(model.bus_ids, dtype=np.int64),
        branch_from_bus=_frozen([b.from_bus for b in model.branches], dtype=np.int64),
        branch_to_bus=_frozen([b.to_bus for b in model.branches], dtype=np.int64),
        total_cascades=_frozen(tally.cascade_count, dtype=np.int64),
        total_shedding=_frozen(tally.total_shed, dtype=float),
        endpoint_degree_product=_frozen(edge_metrics.endpoint_degree_product, dtype=float),
        edge_betweenness_centrality=_frozen(edge_metrics.edge_betweenness, dtype=float),
        degree_centrality=_frozen(node_metrics.degree, dtype=float),
        eigenvector_centrality=_frozen(node_metrics.eigenvector, dtype=float),
        betweenness_centrality=_frozen(node_metrics.betweenness, dtype=float),
        closeness_centrality=_frozen(node_metrics.closeness, dtype=float),
        clustering_coefficient=_frozen(node_metrics.clustering, dtype=float),
        self_admittance=_frozen(topology.self_admittance, dtype=float),
        scenario_count=len(population),
        valid_cascade_samples=tally.valid_cascade_samples,
        failed_samples=tally.failed_samples,
        no_cascade_samples=tally.no_cascade_samples,
        scenarios=tuple(population.scenarios),
        sampling_mode=population.mode,
        notes=tuple(notes),
    )
    logger.debug("Assembled report for %s", model.name)
    return report
