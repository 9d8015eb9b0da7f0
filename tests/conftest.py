"""Shared fixtures: small hand-built networks and deterministic simulators."""
from __future__ import annotations

from typing import Callable, Sequence

import pytest

from cascade.simulator import CascadeSettings, CascadeSimulator
from network.model import Branch, Bus, NetworkModel


class StubSimulator(CascadeSimulator):
    """Returns ``outcome_fn(scenario)`` for every scenario and records calls."""

    def __init__(self, outcome_fn: Callable[[frozenset], float]):
        self.outcome_fn = outcome_fn
        self.calls: list[tuple] = []

    def simulate(self, model, scenarios: Sequence[frozenset], settings: CascadeSettings):
        self.calls.append((model, tuple(scenarios), settings))
        return [self.outcome_fn(s) for s in scenarios]


class ShortSimulator(CascadeSimulator):
    """Drops the last outcome, which breaks index alignment."""

    def simulate(self, model, scenarios, settings):
        return [0.0] * (len(scenarios) - 1)


@pytest.fixture
def triangle() -> NetworkModel:
    """3 buses, 3 unit-reactance branches: 1-2, 2-3, 1-3."""
    return NetworkModel(
        name="triangle",
        buses=(Bus(1), Bus(2), Bus(3)),
        branches=(Branch(1, 2, 1.0), Branch(2, 3, 1.0), Branch(1, 3, 1.0)),
    )


@pytest.fixture
def path3() -> NetworkModel:
    """3 buses in a line: 1-2-3."""
    return NetworkModel(
        name="path3",
        buses=(Bus(1), Bus(2), Bus(3)),
        branches=(Branch(1, 2, 0.5), Branch(2, 3, 0.25)),
    )


@pytest.fixture
def two_islands() -> NetworkModel:
    """Two disconnected pairs plus an isolated bus 5."""
    return NetworkModel(
        name="islands",
        buses=(Bus(1), Bus(2), Bus(3), Bus(4), Bus(5)),
        branches=(Branch(1, 2, 0.1), Branch(3, 4, 0.2)),
    )


@pytest.fixture
def no_branches() -> NetworkModel:
    return NetworkModel(name="empty", buses=(Bus(10), Bus(20), Bus(30)), branches=())


@pytest.fixture
def quiet_settings() -> CascadeSettings:
    return CascadeSettings(verbose=False, workers=1)
