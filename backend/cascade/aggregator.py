"""
Outcome classification and per-branch tallies.

Each scenario outcome is classified as a valid cascade, no cascade, or
a non-converged run. Valid cascades credit their shed load and one
cascade count to every branch in the scenario. Tallies are computed per
chunk of scenarios and merged afterwards, so chunks never share state.
"""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

from resilience.errors import AlignmentError, ScenarioIndexError

logger = logging.getLogger(__name__)


class OutcomeClass(str, Enum):
    VALID_CASCADE = "valid_cascade"
    NO_CASCADE = "no_cascade"
    FAILED = "failed"


def classify_outcome(value: float) -> OutcomeClass:
    """Positive = cascade, zero = no cascade, negative or NaN = not converged."""
    if math.isnan(value) or value < 0:
        return OutcomeClass.FAILED
    if value > 0:
        return OutcomeClass.VALID_CASCADE
    return OutcomeClass.NO_CASCADE


@dataclass
class BranchTally:
    """Per-branch accumulators plus run-level counters."""
    cascade_count: np.ndarray     # int, scenarios with a cascade that included the branch
    total_shed: np.ndarray        # float, summed shed load over those scenarios
    valid_cascade_samples: int = 0
    failed_samples: int = 0
    no_cascade_samples: int = 0

    @classmethod
    def empty(cls, branch_count: int) -> BranchTally:
        return cls(
            cascade_count=np.zeros(branch_count, dtype=np.int64),
            total_shed=np.zeros(branch_count, dtype=float),
        )

    @property
    def branch_count(self) -> int:
        return int(self.cascade_count.shape[0])

    @property
    def scenario_count(self) -> int:
        return self.valid_cascade_samples + self.failed_samples + self.no_cascade_samples

    def merge(self, other: BranchTally) -> BranchTally:
        """Sum two partial tallies into a new one."""
        if other.branch_count != self.branch_count:
            raise AlignmentError(
                f"Cannot merge tallies over {self.branch_count} and {other.branch_count} branches"
            )
        return BranchTally(
            cascade_count=self.cascade_count + other.cascade_count,
            total_shed=self.total_shed + other.total_shed,
            valid_cascade_samples=self.valid_cascade_samples + other.valid_cascade_samples,
            failed_samples=self.failed_samples + other.failed_samples,
            no_cascade_samples=self.no_cascade_samples + other.no_cascade_samples,
        )


def check_scenarios(scenarios: Sequence[frozenset[int]], branch_count: int) -> None:
    """Reject scenarios that name branches outside [0, branch_count)."""
    for i, scenario in enumerate(scenarios):
        bad = [b for b in scenario if not 0 <= b < branch_count]
        if bad:
            raise ScenarioIndexError(
                f"Scenario {i} references unknown branch index(es) {sorted(bad)}; "
                f"network has {branch_count} branches"
            )


def tally_partial(
    scenarios: Sequence[frozenset[int]],
    outcomes: Sequence[float],
    branch_count: int,
) -> BranchTally:
    """Tally one chunk of scenarios into a fresh BranchTally."""
    if len(scenarios) != len(outcomes):
        raise AlignmentError(
            f"{len(scenarios)} scenario(s) but {len(outcomes)} outcome(s)"
        )
    check_scenarios(scenarios, branch_count)

    tally = BranchTally.empty(branch_count)
    for scenario, value in zip(scenarios, outcomes):
        value = float(value)
        kind = classify_outcome(value)
        if kind is OutcomeClass.VALID_CASCADE:
            tally.valid_cascade_samples += 1
            members = np.fromiter(scenario, dtype=np.intp, count=len(scenario))
            tally.cascade_count[members] += 1
            tally.total_shed[members] += value
        elif kind is OutcomeClass.FAILED:
            tally.failed_samples += 1
        else:
            tally.no_cascade_samples += 1
    return tally


def aggregate_outcomes(
    scenarios: Sequence[frozenset[int]],
    outcomes: Sequence[float],
    branch_count: int,
    workers: int = 1,
    chunk_size: int | None = None,
) -> BranchTally:
    """
    Tally all scenarios: split into chunks, tally each chunk on its own
    (in a thread pool when ``workers > 1``), then merge the partials in
    order.
    """
    scenarios = list(scenarios)
    outcomes = np.asarray(outcomes, dtype=float)
    if len(scenarios) != outcomes.shape[0]:
        raise AlignmentError(
            f"{len(scenarios)} scenario(s) but {outcomes.shape[0]} outcome(s)"
        )
    check_scenarios(scenarios, branch_count)

    if chunk_size is None:
        chunk_size = max(1, math.ceil(len(scenarios) / max(1, workers)))
    bounds = [(lo, min(lo + chunk_size, len(scenarios))) for lo in range(0, len(scenarios), chunk_size)]

    def _map(bound: tuple[int, int]) -> BranchTally:
        lo, hi = bound
        return tally_partial(scenarios[lo:hi], outcomes[lo:hi], branch_count)

    if workers > 1 and len(bounds) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            partials = list(executor.map(_map, bounds))
    else:
        partials = [_map(b) for b in bounds]

    tally = BranchTally.empty(branch_count)
    for partial in partials:
        tally = tally.merge(partial)

    logger.info(
        "Classified %d scenario(s): %d cascade, %d no cascade, %d non-converged",
        tally.scenario_count, tally.valid_cascade_samples,
        tally.no_cascade_samples, tally.failed_samples,
    )
    return tally
