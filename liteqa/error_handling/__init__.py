"""
Error taxonomy for the LiteQA flow engine.
"""

from .exceptions import (
    LiteQAError,
    ElementNotFound,
    AmbiguousMatch,
    TimeoutError,
    SelectorQueryError,
    StepExecutionError,
    RunnerInitializationError,
)

__all__ = [
    "LiteQAError",
    "ElementNotFound",
    "AmbiguousMatch",
    "TimeoutError",
    "SelectorQueryError",
    "StepExecutionError",
    "RunnerInitializationError",
]
