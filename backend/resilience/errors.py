"""Exceptions raised by the resilience assessment pipeline."""
from __future__ import annotations


class ResilienceError(Exception):
    """Base class for all assessment errors."""


class NetworkValidationError(ResilienceError, ValueError):
    """The network model is malformed (unknown bus, zero reactance, ...)."""


class ScenarioIndexError(ResilienceError, ValueError):
    """A scenario references a branch index the network does not have."""


class ScenarioBudgetError(ResilienceError):
    """The exhaustive scenario population is too large to materialise."""


class AlignmentError(ResilienceError):
    """Per-scenario, per-bus or per-branch arrays disagree in length."""
