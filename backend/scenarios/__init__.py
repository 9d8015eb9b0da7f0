"""Initial-contingency scenario generation."""
from .population import EXHAUSTIVE, RANDOM, ScenarioPopulation
from .generator import ScenarioGenerator, total_combinations
from .progress import LoggingProgress, ProgressCallback, TqdmProgress
