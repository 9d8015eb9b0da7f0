"""
Progress reporters.

A reporter is any callable ``(completed, total, phase)``. Reporters only
observe; nothing in the pipeline depends on what they do.
"""
from __future__ import annotations

import logging
import math
from typing import Callable

from tqdm import tqdm

ProgressCallback = Callable[[int, int, str], None]

logger = logging.getLogger(__name__)


class TqdmProgress:
    """Renders one tqdm bar per phase."""

    def __init__(self, **tqdm_kwargs):
        self.tqdm_kwargs = tqdm_kwargs
        self._bars: dict[str, tqdm] = {}

    def __call__(self, completed: int, total: int, phase: str) -> None:
        bar = self._bars.get(phase)
        if bar is None:
            bar = tqdm(total=total, desc=phase, **self.tqdm_kwargs)
            self._bars[phase] = bar
        bar.update(completed - bar.n)
        if completed >= total:
            bar.close()
            del self._bars[phase]

    def close(self) -> None:
        for bar in self._bars.values():
            bar.close()
        self._bars.clear()


class LoggingProgress:
    """Logs roughly ``updates`` progress lines per phase."""

    def __init__(self, updates: int = 10, log: logging.Logger | None = None):
        self.updates = max(1, updates)
        self.log = log or logger

    def __call__(self, completed: int, total: int, phase: str) -> None:
        interval = max(1, math.ceil(total / self.updates)) if total else 1
        if completed % interval == 0 or completed >= total:
            self.log.info("%s progress: %d/%d", phase, completed, total)
