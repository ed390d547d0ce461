"""
Step runners for each live-target type.
"""

from .api import ApiRunner
from .base import BaseRunner
from .desktop import DesktopRunner
from .factory import RUNNER_CLASSES, create_runner
from .mobile import MobileRunner
from .performance import PerformanceRunner
from .web import WebRunner

__all__ = [
    "ApiRunner",
    "BaseRunner",
    "DesktopRunner",
    "MobileRunner",
    "PerformanceRunner",
    "RUNNER_CLASSES",
    "WebRunner",
    "create_runner",
]
