"""
Initial-contingency scenarios.

A scenario is the set of branch positions that fail together at the
start of a cascade. The population keeps the generated scenarios in a
fixed order because simulator outcomes are matched to them by index.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

import numpy as np

EXHAUSTIVE = "exhaustive"
RANDOM = "random"


@dataclass(frozen=True)
class ScenarioPopulation:
    """Ordered, read-only sequence of scenarios generated for one run."""
    scenarios: tuple[frozenset[int], ...]
    branch_count: int
    fail_min: int
    mode: str                              # "exhaustive" or "random"
    requested_size: int | None = None      # sample size asked for, None = full enumeration
    seed: int | None = None

    def __len__(self) -> int:
        return len(self.scenarios)

    def __iter__(self) -> Iterator[frozenset[int]]:
        return iter(self.scenarios)

    def __getitem__(self, index: int) -> frozenset[int]:
        return self.scenarios[index]

    def as_lists(self) -> list[list[int]]:
        """Sorted branch positions per scenario, e.g. for JSON output."""
        return [sorted(s) for s in self.scenarios]

    def as_matrix(self) -> np.ndarray:
        """0/1 matrix with one row per scenario and one column per branch."""
        matrix = np.zeros((len(self.scenarios), self.branch_count), dtype=np.int8)
        for row, scenario in enumerate(self.scenarios):
            if scenario:
                matrix[row, sorted(scenario)] = 1
        return matrix

    def cardinality_counts(self) -> dict[int, int]:
        counts: dict[int, int] = {}
        for scenario in self.scenarios:
            counts[len(scenario)] = counts.get(len(scenario), 0) + 1
        return dict(sorted(counts.items()))
