"""Network topology and graph metrics."""
from .builder import Topology, build_topology
from .metrics import EdgeMetrics, GraphMetrics, MetricsEngine, NetworkxGraphMetrics, NodeMetrics
