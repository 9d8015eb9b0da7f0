"""
Runtime configuration for the resilience assessment.

Values come from the environment (optionally a local ``.env`` file) and
fall back to the defaults used for the IEEE study cases.
"""
from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int | None) -> int | None:
    value = os.getenv(name, "")
    if value.strip() == "":
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name, "")
    if value.strip() == "":
        return default
    return float(value)


# ── Study defaults ─────────────────────────────────────────────────

DEFAULT_NETWORK = os.getenv("RESILIENCE_DEFAULT_NETWORK", "case14")
DEFAULT_FAIL_MIN = _env_int("RESILIENCE_FAIL_MIN", 3)
DEFAULT_SAMPLE_SIZE = _env_int("RESILIENCE_SAMPLE_SIZE", None)   # None = exhaustive

# Exhaustive enumeration refuses populations above this size
MAX_EXHAUSTIVE_SCENARIOS = _env_int("RESILIENCE_MAX_EXHAUSTIVE_SCENARIOS", 1_000_000)

# ── Cascade model ──────────────────────────────────────────────────

MAX_LOADING_PERCENT = _env_float("RESILIENCE_MAX_LOADING_PERCENT", 100.0)
MAX_CASCADE_STEPS = _env_int("RESILIENCE_MAX_CASCADE_STEPS", 10)
CASCADE_WORKERS = _env_int("RESILIENCE_CASCADE_WORKERS", 1)

# ── Logging ────────────────────────────────────────────────────────

LOG_LEVEL = os.getenv("RESILIENCE_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

NOISY_LOGGERS = ("pandapower", "numba", "matplotlib")


def configure_logging(level: str | int | None = None) -> None:
    """Attach a console handler to the root logger and quiet chatty libraries."""
    level = level if level is not None else LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
