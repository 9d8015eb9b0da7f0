import numpy as np
import pytest

from network.model import Branch, Bus, NetworkModel
from resilience.errors import AlignmentError, NetworkValidationError
from topology import MetricsEngine, NetworkxGraphMetrics, build_topology


# ── Topology builder ───────────────────────────────────────────────

def test_triangle_adjacency_and_self_admittance(triangle):
    topo = build_topology(triangle)

    np.testing.assert_array_equal(topo.adjacency, topo.adjacency.T)
    assert not topo.adjacency.diagonal().any()
    assert topo.adjacency.sum() == 6
    np.testing.assert_allclose(topo.self_admittance, [2.0, 2.0, 2.0])
    assert topo.edge_count == 3


def test_self_admittance_sums_inverse_reactance(path3):
    topo = build_topology(path3)
    np.testing.assert_allclose(topo.self_admittance, [2.0, 2.0 + 4.0, 4.0])


def test_isolated_bus_has_zero_self_admittance(two_islands):
    topo = build_topology(two_islands)
    assert topo.self_admittance[4] == 0.0
    assert not topo.adjacency[4].any()


def test_parallel_branches_add_admittance_but_not_adjacency():
    model = NetworkModel(
        name="parallel",
        buses=(Bus(1), Bus(2)),
        branches=(Branch(1, 2, 0.5), Branch(2, 1, 0.5)),
    )
    topo = build_topology(model)
    np.testing.assert_allclose(topo.self_admittance, [4.0, 4.0])
    assert topo.adjacency.sum() == 2
    assert topo.edge_count == 1


def test_non_contiguous_bus_ids_are_mapped_by_position():
    model = NetworkModel(
        name="ids",
        buses=(Bus(101), Bus(7), Bus(55)),
        branches=(Branch(7, 55, 0.1),),
    )
    topo = build_topology(model)
    assert topo.adjacency[1, 2] and topo.adjacency[2, 1]
    np.testing.assert_allclose(topo.self_admittance, [0.0, 10.0, 10.0])


def test_zero_reactance_raises_validation_error():
    model = NetworkModel(name="bad", buses=(Bus(1), Bus(2)), branches=(Branch(1, 2, 0.0),))
    with pytest.raises(NetworkValidationError):
        build_topology(model)


def test_unknown_endpoint_raises_validation_error():
    model = NetworkModel(name="bad", buses=(Bus(1), Bus(2)), branches=(Branch(1, 9, 0.1),))
    with pytest.raises(NetworkValidationError):
        build_topology(model)


def test_no_branches_gives_empty_adjacency(no_branches):
    topo = build_topology(no_branches)
    assert topo.adjacency.shape == (3, 3)
    assert not topo.adjacency.any()
    np.testing.assert_array_equal(topo.self_admittance, [0.0, 0.0, 0.0])


# ── Metrics engine ─────────────────────────────────────────────────

def test_triangle_node_and_edge_metrics(triangle):
    topo = build_topology(triangle)
    engine = MetricsEngine()
    nodes = engine.node_metrics(topo)
    edges = engine.edge_metrics(triangle, topo, nodes)

    np.testing.assert_allclose(nodes.degree, [2, 2, 2])
    np.testing.assert_allclose(nodes.betweenness, [0, 0, 0])
    np.testing.assert_allclose(nodes.closeness, [1, 1, 1])
    np.testing.assert_allclose(nodes.clustering, [1, 1, 1])
    np.testing.assert_allclose(nodes.eigenvector, [1 / np.sqrt(3)] * 3, rtol=1e-4)
    np.testing.assert_allclose(nodes.self_admittance, topo.self_admittance)
    assert nodes.notes == ()

    np.testing.assert_allclose(edges.endpoint_degree_product, [4, 4, 4])
    np.testing.assert_allclose(edges.edge_betweenness, [1, 1, 1])


def test_path_metrics_follow_branch_order(path3):
    topo = build_topology(path3)
    engine = MetricsEngine()
    nodes = engine.node_metrics(topo)
    edges = engine.edge_metrics(path3, topo, nodes)

    np.testing.assert_allclose(nodes.degree, [1, 2, 1])
    np.testing.assert_allclose(nodes.betweenness, [0, 1, 0])
    np.testing.assert_allclose(nodes.clustering, [0, 0, 0])
    np.testing.assert_allclose(edges.endpoint_degree_product, [2, 2])
    np.testing.assert_allclose(edges.edge_betweenness, [2, 2])


def test_disconnected_graph_is_reported_not_masked(two_islands):
    topo = build_topology(two_islands)
    nodes = MetricsEngine().node_metrics(topo)

    assert nodes.closeness[4] == 0.0
    assert any("disconnected" in note for note in nodes.notes)


def test_nan_from_graph_library_is_propagated(triangle):
    class NanEigenvector(NetworkxGraphMetrics):
        def eigenvector(self, adjacency):
            return np.full(adjacency.shape[0], np.nan)

    nodes = MetricsEngine(NanEigenvector()).node_metrics(build_topology(triangle))
    assert np.isnan(nodes.eigenvector).all()
    assert any(note.startswith("eigenvector") for note in nodes.notes)


def test_wrong_length_from_graph_library_is_an_alignment_error(triangle):
    class ShortDegree(NetworkxGraphMetrics):
        def degree(self, adjacency):
            return np.zeros(adjacency.shape[0] - 1)

    with pytest.raises(AlignmentError):
        MetricsEngine(ShortDegree()).node_metrics(build_topology(triangle))


def test_metrics_without_branches_are_zero(no_branches):
    topo = build_topology(no_branches)
    engine = MetricsEngine()
    nodes = engine.node_metrics(topo)
    edges = engine.edge_metrics(no_branches, topo, nodes)

    for vector in (nodes.degree, nodes.eigenvector, nodes.betweenness, nodes.closeness, nodes.clustering):
        np.testing.assert_array_equal(vector, [0.0, 0.0, 0.0])
    assert edges.endpoint_degree_product.shape == (0,)
    assert edges.edge_betweenness.shape == (0,)


def test_metrics_on_empty_network():
    model = NetworkModel(name="void", buses=(), branches=())
    topo = build_topology(model)
    nodes = MetricsEngine().node_metrics(topo)
    assert nodes.degree.shape == (0,)


def test_self_loop_marks_diagonal_and_doubles_admittance(caplog):
    model = NetworkModel(
        name="loop",
        buses=(Bus(1), Bus(2), Bus(3)),
        branches=(Branch(1, 2, 1.0), Branch(2, 3, 1.0), Branch(2, 2, 0.5)),
    )
    with caplog.at_level("WARNING", logger="topology.builder"):
        topo = build_topology(model)

    assert topo.adjacency[1, 1]
    np.testing.assert_allclose(topo.self_admittance, [1.0, 1.0 + 1.0 + 2 / 0.5, 1.0])
    assert "self-loop" in caplog.text

    engine = MetricsEngine()
    nodes = engine.node_metrics(topo)
    edges = engine.edge_metrics(model, topo, nodes)
    np.testing.assert_allclose(nodes.degree, [1, 4, 1])
    np.testing.assert_allclose(edges.edge_betweenness, [2, 2, 0])


def test_eigenvector_non_convergence_becomes_nan_with_note():
    adjacency = np.array([[False, True], [True, False]])
    assert np.isnan(NetworkxGraphMetrics(eigenvector_max_iter=1).eigenvector(adjacency)).all()

    model = NetworkModel(name="pair", buses=(Bus(1), Bus(2)), branches=(Branch(1, 2, 1.0),))
    nodes = MetricsEngine(NetworkxGraphMetrics(eigenvector_max_iter=1)).node_metrics(build_topology(model))
    assert np.isnan(nodes.eigenvector).all()
    assert any(note.startswith("eigenvector: 2 of 2") for note in nodes.notes)


def test_disconnected_note_describes_global_eigenvector_iteration(two_islands):
    nodes = MetricsEngine().node_metrics(build_topology(two_islands))
    note = next(n for n in nodes.notes if "disconnected" in n)
    assert "whole graph" in note
    assert "per reachable component" not in note
