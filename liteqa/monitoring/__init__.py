"""
Logging utilities for the LiteQA flow engine.
"""

from .logger import (
    ContextLogAdapter,
    JSONFormatter,
    get_logger,
    log_healed_selector,
    log_performance_metric,
    log_step_event,
    setup_logging,
)

__all__ = [
    "ContextLogAdapter",
    "JSONFormatter",
    "get_logger",
    "log_healed_selector",
    "log_performance_metric",
    "log_step_event",
    "setup_logging",
]
