"""Cascade simulation and outcome aggregation."""
from .simulator import (
    NON_CONVERGED,
    CascadeSettings,
    CascadeSimulator,
    get_default_settings,
    run_cascades,
)
from .ac_cascade import ACCascadeSimulator
from .aggregator import (
    BranchTally,
    OutcomeClass,
    aggregate_outcomes,
    classify_outcome,
    tally_partial,
)
