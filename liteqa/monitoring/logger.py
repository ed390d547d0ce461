"""
Logging configuration and utilities for the LiteQA flow engine.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from liteqa.config.settings import get_settings


_CONTEXT_FIELDS = ("flow", "runner", "step_index", "action", "selector")


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add extra fields if present
        for field in _CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ContextLogAdapter(logging.LoggerAdapter):
    """Log adapter that merges bound context into every record."""

    def process(
        self, msg: str, kwargs: Dict[str, Any]
    ) -> tuple[str, Dict[str, Any]]:
        """Add bound context to log records."""
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (defaults to settings)
        log_format: Log format 'json' or 'text' (defaults to settings)
        log_file: Optional log file path (defaults to settings)

    Returns:
        Root logger instance
    """
    settings = get_settings()

    # Use provided values or fall back to settings
    level = log_level or settings.log_level
    format_type = log_format or settings.log_format
    file_path = log_file or settings.log_file

    numeric_level = getattr(logging, level.upper())

    # Remove existing handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if format_type == "json":
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(JSONFormatter())
    else:
        console = Console(stderr=True)
        console_handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
        )

    console_handler.setLevel(numeric_level)
    root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setLevel(numeric_level)

        if format_type == "json":
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                )
            )

        root_logger.addHandler(file_handler)

    root_logger.setLevel(numeric_level)

    # Quiet chatty third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger = logging.getLogger("liteqa")
    logger.debug(
        "LiteQA logging initialized",
        extra={
            "log_level": level,
            "log_format": format_type,
            "log_file": file_path,
        },
    )

    return root_logger


def get_logger(name: str, **context: Any) -> logging.Logger:
    """
    Get a logger instance with optional context.

    Args:
        name: Logger name
        **context: Additional context to include in logs

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if context:
        return ContextLogAdapter(logger, context)

    return logger


def log_step_event(
    event_type: str,
    flow: str,
    step_index: int,
    action: str,
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a step execution event.

    Args:
        event_type: Type of event (started, passed, failed)
        flow: Flow name
        step_index: Declared position of the step within the flow
        action: Step action tag
        data: Additional event data
    """
    logger = logging.getLogger("liteqa.step_events")

    extra = {
        "event_type": event_type,
        "flow": flow,
        "step_index": step_index,
        "action": action,
    }

    if data:
        extra.update(data)

    level = logging.WARNING if event_type == "failed" else logging.DEBUG
    logger.log(level, f"Step event: {event_type} [{step_index}] {action}", extra=extra)


def log_healed_selector(
    original: str,
    healed: str,
    strategy: str,
    confidence: float,
) -> None:
    """
    Log a selector substitution made by the self-healing cascade.

    Args:
        original: Selector written in the flow
        healed: Selector that actually matched
        strategy: Strategy that produced the match
        confidence: Strategy confidence in [0, 1]
    """
    logger = logging.getLogger("liteqa.healing")

    logger.warning(
        f"Self-healed selector: {original} -> {healed} ({strategy}, {confidence:.2f})",
        extra={
            "selector": original,
            "healed": healed,
            "strategy": strategy,
            "confidence": confidence,
        },
    )


def log_performance_metric(
    metric_name: str,
    value: float,
    unit: str = "ms",
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a performance metric.

    Args:
        metric_name: Name of the metric
        value: Metric value
        unit: Unit of measurement
        context: Additional context
    """
    logger = logging.getLogger("liteqa.performance")

    extra = {
        "metric_name": metric_name,
        "value": value,
        "unit": unit,
    }

    if context:
        extra.update(context)

    logger.info(f"Performance metric: {metric_name}={value}{unit}", extra=extra)
