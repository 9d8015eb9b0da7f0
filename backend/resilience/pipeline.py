"""
End-to-end resilience assessment.

Samples initial-contingency scenarios, runs them through a cascade
simulator, tallies which branches took part in cascades and how much
load they shed, and joins that with network science metrics of the
topology into a single ResilienceReport.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import pandapower as pp

import config
from cascade.aggregator import aggregate_outcomes
from cascade.ac_cascade import ACCascadeSimulator
from cascade.simulator import CascadeSettings, CascadeSimulator, get_default_settings, run_cascades
from network.loaders import NETWORK_LOADERS, load_case_file, load_model
from network.model import NetworkModel
from scenarios.generator import ScenarioGenerator
from scenarios.progress import ProgressCallback
from topology.builder import build_topology
from topology.metrics import GraphMetrics, MetricsEngine

from .report import ResilienceReport, assemble_report

logger = logging.getLogger(__name__)


class ResilienceAssessment:
    """
    Orchestrates the full pipeline:
      1. Validate the network model
      2. Build the topology and compute node and edge metrics
      3. Generate the scenario population
      4. Run the cascade simulator over all scenarios
      5. Classify outcomes and tally them per branch
      6. Assemble the ResilienceReport
    """

    def __init__(
        self,
        simulator: CascadeSimulator | None = None,
        metrics: GraphMetrics | None = None,
        settings: CascadeSettings | None = None,
        generator: ScenarioGenerator | None = None,
        progress: ProgressCallback | None = None,
        aggregation_workers: int = 1,
    ):
        self.simulator = simulator or ACCascadeSimulator()
        self.engine = MetricsEngine(metrics)
        self.settings = settings or get_default_settings()
        self.generator = generator or ScenarioGenerator()
        self.progress = progress
        self.aggregation_workers = aggregation_workers

    def run(
        self,
        model: NetworkModel,
        fail_min: int | None = None,
        sample_size: int | None = None,
        seed: int | None = None,
    ) -> ResilienceReport:
        fail_min = config.DEFAULT_FAIL_MIN if fail_min is None else fail_min
        logger.info(
            "Assessing %s: %d buses, %d branches, fail_min=%d, sample_size=%s",
            model.name, model.bus_count, model.branch_count, fail_min, sample_size,
        )

        # Step 1: Validate before any simulation work
        model.validate()

        # Step 2: Topology and metrics
        topology = build_topology(model)
        node_metrics = self.engine.node_metrics(topology)
        edge_metrics = self.engine.edge_metrics(model, topology, node_metrics)

        # Step 3: Scenarios
        population = self.generator.generate(
            model.branch_count, fail_min, sample_size=sample_size, seed=seed,
            progress=self.progress,
        )
        logger.info("Scenario list generated (%s, %d scenarios)", population.mode, len(population))

        # Step 4: Cascades
        if len(population):
            outcomes = run_cascades(self.simulator, model, population, self.settings)
        else:
            outcomes = []

        # Step 5: Tallies
        tally = aggregate_outcomes(
            population.scenarios, outcomes, model.branch_count,
            workers=self.aggregation_workers,
        )

        # Step 6: Report
        return assemble_report(model, topology, node_metrics, edge_metrics, tally, population)


def resolve_model(source: NetworkModel | pp.pandapowerNet | str | Path) -> NetworkModel:
    """
    Turn a NetworkModel, pandapower network, bundled case name or case
    file path into a NetworkModel.
    """
    if isinstance(source, NetworkModel):
        return source
    if isinstance(source, pp.pandapowerNet):
        return NetworkModel.from_pandapower(source)
    if isinstance(source, str) and source in NETWORK_LOADERS:
        return load_model(source)
    path = Path(source)
    return NetworkModel.from_pandapower(load_case_file(path), name=path.stem)


def assess_resilience(
    source: NetworkModel | pp.pandapowerNet | str | Path,
    fail_min: int | None = None,
    sample_size: int | None = None,
    seed: int | None = None,
    remove_branches: Iterable[int] = (),
    simulator: CascadeSimulator | None = None,
    metrics: GraphMetrics | None = None,
    settings: CascadeSettings | None = None,
    progress: ProgressCallback | None = None,
) -> ResilienceReport:
    """Convenience wrapper: resolve the network, drop branches, run the assessment."""
    model = resolve_model(source)
    remove_branches = list(remove_branches)
    if remove_branches:
        model = model.without_branches(remove_branches)
    assessment = ResilienceAssessment(
        simulator=simulator, metrics=metrics, settings=settings, progress=progress,
    )
    return assessment.run(model, fail_min=fail_min, sample_size=sample_size, seed=seed)
