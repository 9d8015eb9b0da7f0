"""
Cascade simulator interface and the orchestration call around it.

The simulator receives the whole scenario population in one call and
returns one signed outcome per scenario:

    > 0   converged, that much load (MW) was shed by the cascade
    = 0   converged, no cascade
    < 0   power flow did not converge (canonically NON_CONVERGED)
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np

import config
from network.model import NetworkModel
from resilience.errors import AlignmentError
from scenarios.population import ScenarioPopulation

logger = logging.getLogger(__name__)

NON_CONVERGED = -1.0


@dataclass
class CascadeSettings:
    """Tuning knobs handed to the cascade simulator."""
    verbose: bool = False
    max_loading_percent: float = 100.0      # trip threshold for lines and trafos
    max_cascade_steps: int = 10             # power flow / trip rounds per scenario
    workers: int = 1                        # simulator-side parallelism
    pf_options: dict[str, Any] = field(default_factory=dict)   # extra pp.runpp kwargs


def get_default_settings() -> CascadeSettings:
    """Settings populated from the runtime configuration."""
    return CascadeSettings(
        verbose=False,
        max_loading_percent=config.MAX_LOADING_PERCENT,
        max_cascade_steps=config.MAX_CASCADE_STEPS,
        workers=config.CASCADE_WORKERS,
    )


class CascadeSimulator(ABC):
    """Base class for cascade simulators."""

    @abstractmethod
    def simulate(
        self,
        model: NetworkModel,
        scenarios: Sequence[frozenset[int]],
        settings: CascadeSettings,
    ) -> Sequence[float]:
        """Return one outcome per scenario, in scenario order."""
        ...


def run_cascades(
    simulator: CascadeSimulator,
    model: NetworkModel,
    population: ScenarioPopulation,
    settings: CascadeSettings | None = None,
) -> np.ndarray:
    """
    Run the simulator once over the full population.

    Non-convergence is an ordinary outcome here and is passed through.
    A result whose length does not match the population aborts the run.
    """
    settings = settings or get_default_settings()
    logger.info(
        "Running cascade model on %s for %d scenario(s)", model.name, len(population)
    )
    raw = simulator.simulate(model, population.scenarios, settings)
    outcomes = np.asarray(list(raw), dtype=float)

    if outcomes.ndim != 1 or outcomes.shape[0] != len(population):
        raise AlignmentError(
            f"Cascade simulator returned {outcomes.size} outcome(s) "
            f"for {len(population)} scenario(s)"
        )
    logger.info(
        "Cascade model finished: %d cascading, %d non-converged",
        int(np.sum(outcomes > 0)), int(np.sum(outcomes < 0)),
    )
    return outcomes
