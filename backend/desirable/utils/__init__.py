"""
Utilities Module
Contains helper functions and algorithms.
"""
from desirable.utils.progression import (
    ProgressionEngine,
    ProgressionResult,
    clamp_level,
    derive_complexity,
    progression_engine,
    resolve_generation_levels
)

__all__ = [
    "ProgressionEngine", "ProgressionResult", "clamp_level",
    "derive_complexity", "progression_engine", "resolve_generation_levels"
]
