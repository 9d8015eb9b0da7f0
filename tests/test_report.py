import json

import numpy as np
import pytest

from cascade.aggregator import BranchTally, tally_partial
from resilience.errors import AlignmentError
from resilience.report import assemble_report
from scenarios import ScenarioGenerator
from topology import MetricsEngine, NodeMetrics, build_topology


def _parts(model, outcomes):
    topo = build_topology(model)
    engine = MetricsEngine()
    nodes = engine.node_metrics(topo)
    edges = engine.edge_metrics(model, topo, nodes)
    population = ScenarioGenerator().generate(model.branch_count, 1)
    tally = tally_partial(population.scenarios, outcomes, model.branch_count)
    return topo, nodes, edges, tally, population


def test_assembled_report_frames(triangle):
    parts = _parts(triangle, [0.0, 5.0, -1.0])
    report = assemble_report(triangle, *parts)

    buses = report.bus_frame()
    branches = report.branch_frame()
    assert list(buses["bus"]) == [1, 2, 3]
    assert len(branches) == 3
    assert branches.loc[1, "total_shedding"] == 5.0
    assert report.counters() == {
        "scenario_count": 3,
        "valid_cascade_samples": 1,
        "failed_samples": 1,
        "no_cascade_samples": 1,
    }


def test_report_arrays_are_read_only(triangle):
    report = assemble_report(triangle, *_parts(triangle, [0.0, 0.0, 0.0]))
    with pytest.raises(ValueError):
        report.total_shedding[0] = 1.0


def test_to_dict_is_json_safe_with_undefined_metrics(triangle):
    topo, nodes, edges, tally, population = _parts(triangle, [0.0, 0.0, 0.0])
    nodes = NodeMetrics(
        degree=nodes.degree,
        eigenvector=np.full(3, np.nan),
        betweenness=nodes.betweenness,
        closeness=nodes.closeness,
        clustering=nodes.clustering,
        self_admittance=nodes.self_admittance,
        notes=("eigenvector: 3 of 3 value(s) undefined (non-finite)",),
    )
    report = assemble_report(triangle, topo, nodes, edges, tally, population)
    data = json.loads(json.dumps(report.to_dict()))

    assert data["buses"]["eigenvector_centrality"] == [None, None, None]
    assert data["scenarios"] == [[0], [1], [2]]
    assert data["notes"]


def test_misaligned_tally_is_rejected(triangle):
    topo, nodes, edges, _, population = _parts(triangle, [0.0, 0.0, 0.0])
    with pytest.raises(AlignmentError):
        assemble_report(triangle, topo, nodes, edges, BranchTally.empty(2), population)


def test_counter_mismatch_is_rejected(triangle):
    topo, nodes, edges, tally, population = _parts(triangle, [0.0, 0.0, 0.0])
    short = tally_partial(population.scenarios[:2], [0.0, 0.0], triangle.branch_count)
    with pytest.raises(AlignmentError):
        assemble_report(triangle, topo, nodes, edges, short, population)


def test_text_and_file_outputs(triangle, tmp_path):
    report = assemble_report(triangle, *_parts(triangle, [0.0, 5.0, 0.0]))

    text = report.to_text()
    assert "triangle" in text
    assert "Branch 1 (2-3): 5.0 MW" in text

    report.to_json(tmp_path / "report.json")
    assert json.loads((tmp_path / "report.json").read_text())["counters"]["scenario_count"] == 3

    report.to_csv(tmp_path / "csv")
    assert (tmp_path / "csv" / "branches.csv").exists()

    report.to_excel(tmp_path / "report.xlsx")
    assert (tmp_path / "report.xlsx").exists()
