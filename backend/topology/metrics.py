"""
Network science metrics for buses and branches.

The centrality math lives in a GraphMetrics implementation (networkx by
default). MetricsEngine only feeds it the adjacency matrix, keeps every
result aligned with the bus and branch order, and derives the branch
metrics from the node metrics.

Sentinels from the graph library are passed through unchanged: an
eigenvector centrality that fails to converge on a disconnected graph
comes back as NaN, and closeness of an isolated bus is 0. A graph with
no edges at all has zero eigenvector centrality everywhere.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import networkx as nx
import numpy as np

from network.model import NetworkModel
from resilience.errors import AlignmentError

from .builder import Topology

logger = logging.getLogger(__name__)


# ── Graph library interface ────────────────────────────────────────

class GraphMetrics(ABC):
    """Per-node and per-edge graph measures over a boolean adjacency matrix."""

    @abstractmethod
    def degree(self, adjacency: np.ndarray) -> np.ndarray: ...

    @abstractmethod
    def eigenvector(self, adjacency: np.ndarray) -> np.ndarray: ...

    @abstractmethod
    def betweenness(self, adjacency: np.ndarray) -> np.ndarray: ...

    @abstractmethod
    def closeness(self, adjacency: np.ndarray) -> np.ndarray: ...

    @abstractmethod
    def clustering(self, adjacency: np.ndarray) -> np.ndarray: ...

    @abstractmethod
    def edge_betweenness(self, adjacency: np.ndarray) -> np.ndarray:
        """Edge betweenness as an (n, n) matrix indexed by bus position."""
        ...


class NetworkxGraphMetrics(GraphMetrics):
    """
    networkx-backed measures.

    Degree is the neighbour count and betweenness measures are
    unnormalised path counts, so products and sums stay in graph units.
    Each unordered bus pair is counted once: edge betweenness is half of
    the ordered-pair count used by the Brain Connectivity Toolbox
    ``edge_betweenness_bin`` (a triangle edge scores 1, not 2).
    """

    def __init__(self, eigenvector_max_iter: int = 1000, eigenvector_tol: float = 1e-6):
        self.eigenvector_max_iter = eigenvector_max_iter
        self.eigenvector_tol = eigenvector_tol

    @staticmethod
    def _graph(adjacency: np.ndarray) -> nx.Graph:
        graph = nx.Graph()
        graph.add_nodes_from(range(adjacency.shape[0]))
        rows, cols = np.nonzero(np.triu(adjacency))
        graph.add_edges_from(zip(rows.tolist(), cols.tolist()))
        return graph

    @staticmethod
    def _vector(values: dict, n: int) -> np.ndarray:
        return np.array([values[i] for i in range(n)], dtype=float)

    def degree(self, adjacency: np.ndarray) -> np.ndarray:
        graph = self._graph(adjacency)
        return np.array([graph.degree(i) for i in range(graph.number_of_nodes())], dtype=float)

    def eigenvector(self, adjacency: np.ndarray) -> np.ndarray:
        graph = self._graph(adjacency)
        n = graph.number_of_nodes()
        if graph.number_of_edges() == 0:
            # no dominant eigenvector without edges
            return np.zeros(n)
        try:
            values = nx.eigenvector_centrality(
                graph, max_iter=self.eigenvector_max_iter, tol=self.eigenvector_tol
            )
        except nx.PowerIterationFailedConvergence:
            logger.warning("Eigenvector centrality did not converge on %d nodes", n)
            return np.full(n, np.nan)
        return self._vector(values, n)

    def betweenness(self, adjacency: np.ndarray) -> np.ndarray:
        graph = self._graph(adjacency)
        return self._vector(nx.betweenness_centrality(graph, normalized=False), graph.number_of_nodes())

    def closeness(self, adjacency: np.ndarray) -> np.ndarray:
        graph = self._graph(adjacency)
        return self._vector(nx.closeness_centrality(graph), graph.number_of_nodes())

    def clustering(self, adjacency: np.ndarray) -> np.ndarray:
        graph = self._graph(adjacency)
        return self._vector(nx.clustering(graph), graph.number_of_nodes())

    def edge_betweenness(self, adjacency: np.ndarray) -> np.ndarray:
        graph = self._graph(adjacency)
        n = graph.number_of_nodes()
        matrix = np.zeros((n, n), dtype=float)
        for (u, v), value in nx.edge_betweenness_centrality(graph, normalized=False).items():
            matrix[u, v] = value
            matrix[v, u] = value
        return matrix


# ── Results ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class NodeMetrics:
    """Per-bus metrics in bus order."""
    degree: np.ndarray
    eigenvector: np.ndarray
    betweenness: np.ndarray
    closeness: np.ndarray
    clustering: np.ndarray
    self_admittance: np.ndarray
    notes: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EdgeMetrics:
    """Per-branch metrics in branch order."""
    endpoint_degree_product: np.ndarray
    edge_betweenness: np.ndarray


# ── Engine ─────────────────────────────────────────────────────────

NODE_METRICS = ("degree", "eigenvector", "betweenness", "closeness", "clustering")


class MetricsEngine:
    """Computes node and edge metrics from a Topology."""

    def __init__(self, metrics: GraphMetrics | None = None):
        self.metrics = metrics or NetworkxGraphMetrics()

    def node_metrics(self, topology: Topology) -> NodeMetrics:
        n_bus = topology.bus_count
        if n_bus == 0:
            empty = np.zeros(0, dtype=float)
            return NodeMetrics(empty, empty, empty, empty, empty, empty)

        values = {}
        notes = []
        for name in NODE_METRICS:
            vector = np.asarray(getattr(self.metrics, name)(topology.adjacency), dtype=float)
            if vector.shape != (n_bus,):
                raise AlignmentError(
                    f"{name} centrality returned shape {vector.shape} for {n_bus} buses"
                )
            non_finite = int(np.count_nonzero(~np.isfinite(vector)))
            if non_finite:
                notes.append(f"{name}: {non_finite} of {n_bus} value(s) undefined (non-finite)")
            values[name] = vector

        if not nx.is_connected(NetworkxGraphMetrics._graph(topology.adjacency)):
            notes.append(
                "graph is disconnected: closeness is computed within each bus's "
                "reachable component, eigenvector centrality by one power iteration "
                "over the whole graph (smaller islands tend toward zero)"
            )
        for note in notes:
            logger.warning("Node metrics: %s", note)

        return NodeMetrics(
            self_admittance=topology.self_admittance.copy(),
            notes=tuple(notes),
            **values,
        )

    def edge_metrics(
        self,
        model: NetworkModel,
        topology: Topology,
        node_metrics: NodeMetrics,
    ) -> EdgeMetrics:
        n_branch = model.branch_count
        if node_metrics.degree.shape != (topology.bus_count,):
            raise AlignmentError(
                f"degree vector has shape {node_metrics.degree.shape} "
                f"for {topology.bus_count} buses"
            )
        if n_branch == 0:
            empty = np.zeros(0, dtype=float)
            return EdgeMetrics(empty, empty)

        ebc = np.asarray(self.metrics.edge_betweenness(topology.adjacency), dtype=float)
        if ebc.shape != (topology.bus_count, topology.bus_count):
            raise AlignmentError(
                f"edge betweenness matrix has shape {ebc.shape} "
                f"for {topology.bus_count} buses"
            )

        positions = model.bus_positions()
        product = np.zeros(n_branch, dtype=float)
        edge_betweenness = np.zeros(n_branch, dtype=float)
        for idx, branch in enumerate(model.branches):
            i = positions[branch.from_bus]
            j = positions[branch.to_bus]
            product[idx] = node_metrics.degree[i] * node_metrics.degree[j]
            edge_betweenness[idx] = ebc[i, j]
        return EdgeMetrics(endpoint_degree_product=product, edge_betweenness=edge_betweenness)
