"""
Exception hierarchy for LiteQA flow execution.

Step-level errors are converted into failed step results by the runners;
session-level errors are recorded on the flow result by the orchestrator.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class LiteQAError(Exception):
    """Base exception for all LiteQA errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class ElementNotFound(LiteQAError):
    """Raised when a selector cannot be resolved, directly or by healing."""

    def __init__(self, message: str, selector: str, healing_attempted: bool = False, **kwargs):
        super().__init__(message, **kwargs)
        self.selector = selector
        self.healing_attempted = healing_attempted
        self.details.update({
            "selector": selector,
            "healing_attempted": healing_attempted
        })


class AmbiguousMatch(LiteQAError):
    """A probe matched a number of elements outside the accepted range.

    Only used inside the healing cascade, where it means the strategy declines.
    """

    def __init__(self, message: str, selector: str, count: int, **kwargs):
        super().__init__(message, **kwargs)
        self.selector = selector
        self.count = count
        self.details.update({
            "selector": selector,
            "count": count
        })


class TimeoutError(LiteQAError):
    """Error raised when a bounded wait is exceeded."""

    def __init__(
        self,
        message: str,
        operation: str,
        timeout_ms: int,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.timeout_ms = timeout_ms
        self.details.update({
            "operation": operation,
            "timeout_ms": timeout_ms
        })


class SelectorQueryError(LiteQAError):
    """The live target rejected or failed to evaluate a selector query."""

    def __init__(self, message: str, selector: str, **kwargs):
        super().__init__(message, **kwargs)
        self.selector = selector
        self.details.update({"selector": selector})


class StepExecutionError(LiteQAError):
    """Unknown action tag or an action-specific assertion failure."""

    def __init__(self, message: str, action: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.action = action
        self.details.update({"action": action})


class RunnerInitializationError(LiteQAError):
    """The live-target session could not be created; fatal to the flow."""

    def __init__(self, message: str, runner_type: str, **kwargs):
        super().__init__(message, **kwargs)
        self.runner_type = runner_type
        self.details.update({"runner_type": runner_type})
