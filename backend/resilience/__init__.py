"""Resilience report assembly and error types.

The end-to-end pipeline lives in ``resilience.pipeline``.
"""
from .errors import (
    AlignmentError,
    NetworkValidationError,
    ResilienceError,
    ScenarioBudgetError,
    ScenarioIndexError,
)
from .report import ResilienceReport, assemble_report
