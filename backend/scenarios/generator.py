"""
Scenario generation.

Builds the population of initial-contingency sets for a run, either by
enumerating every combination of up to ``fail_min`` branches or, when
that population is larger than the requested sample size, by drawing
the same number of random scenarios for each failure cardinality.
"""
from __future__ import annotations

import itertools
import logging
import math

import numpy as np

import config
from resilience.errors import ScenarioBudgetError

from .population import EXHAUSTIVE, RANDOM, ScenarioPopulation
from .progress import ProgressCallback

logger = logging.getLogger(__name__)

PHASE = "Scenario generation"


def total_combinations(branch_count: int, fail_min: int) -> int:
    """Number of scenarios with 1..fail_min simultaneous branch failures."""
    return sum(math.comb(branch_count, k) for k in range(1, fail_min + 1))


class ScenarioGenerator:
    """
    Produces a ScenarioPopulation for a given branch count.

    Exhaustive mode is used when ``sample_size`` is None or at least the
    full combinatorial total; random mode otherwise.
    """

    def __init__(self, max_exhaustive: int | None = None):
        self.max_exhaustive = (
            max_exhaustive if max_exhaustive is not None else config.MAX_EXHAUSTIVE_SCENARIOS
        )

    def generate(
        self,
        branch_count: int,
        fail_min: int,
        sample_size: int | None = None,
        seed: int | None = None,
        progress: ProgressCallback | None = None,
    ) -> ScenarioPopulation:
        if branch_count < 0:
            raise ValueError(f"branch_count must be non-negative, got {branch_count}")
        if fail_min < 0:
            raise ValueError(f"fail_min must be non-negative, got {fail_min}")
        if sample_size is not None and sample_size < 0:
            raise ValueError(f"sample_size must be non-negative, got {sample_size}")

        total = total_combinations(branch_count, fail_min)
        if sample_size is None or sample_size >= total:
            return self.exhaustive(branch_count, fail_min, sample_size, progress)
        return self.random(branch_count, fail_min, sample_size, seed, progress)

    def exhaustive(
        self,
        branch_count: int,
        fail_min: int,
        sample_size: int | None = None,
        progress: ProgressCallback | None = None,
    ) -> ScenarioPopulation:
        """Every k-combination of branch positions for k = 1..fail_min."""
        total = total_combinations(branch_count, fail_min)
        if total > self.max_exhaustive:
            raise ScenarioBudgetError(
                f"Exhaustive enumeration needs {total} scenarios "
                f"(limit {self.max_exhaustive}); pass a smaller sample_size or fail_min"
            )

        logger.info(
            "Working out scenario list: %d branches, up to %d failures, %d scenarios",
            branch_count, fail_min, total,
        )
        scenarios: list[frozenset[int]] = []
        report_every = max(1, total // 100)
        for k in range(1, fail_min + 1):
            for combo in itertools.combinations(range(branch_count), k):
                scenarios.append(frozenset(combo))
                if progress and len(scenarios) % report_every == 0:
                    progress(len(scenarios), total, PHASE)
        if progress and (not scenarios or len(scenarios) % report_every):
            progress(len(scenarios), total, PHASE)

        return ScenarioPopulation(
            scenarios=tuple(scenarios),
            branch_count=branch_count,
            fail_min=fail_min,
            mode=EXHAUSTIVE,
            requested_size=sample_size,
        )

    def random(
        self,
        branch_count: int,
        fail_min: int,
        sample_size: int,
        seed: int | None = None,
        progress: ProgressCallback | None = None,
    ) -> ScenarioPopulation:
        """
        ``sample_size // fail_min`` scenarios per cardinality k. Each draws
        k branch positions uniformly with replacement, so a scenario may
        hold fewer than k distinct branches.
        """
        if fail_min == 0 or branch_count == 0:
            per_k = 0
        else:
            per_k = sample_size // fail_min
        total = per_k * fail_min
        rng = np.random.default_rng(seed)

        logger.info(
            "Sampling %d random scenarios (%d per cardinality, requested %d)",
            total, per_k, sample_size,
        )
        scenarios: list[frozenset[int]] = []
        for k in range(1, fail_min + 1):
            if per_k == 0:
                break
            draws = rng.integers(0, branch_count, size=(per_k, k))
            scenarios.extend(frozenset(int(i) for i in row) for row in draws)
            if progress:
                progress(len(scenarios), total, PHASE)

        return ScenarioPopulation(
            scenarios=tuple(scenarios),
            branch_count=branch_count,
            fail_min=fail_min,
            mode=RANDOM,
            requested_size=sample_size,
            seed=seed,
        )
