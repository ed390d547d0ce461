"""
Bridges to external automation processes (desktop and mobile).
"""

from .appium import AppiumBridge, element_strategies
from .subprocess_bridge import SubprocessBridge

__all__ = ["AppiumBridge", "SubprocessBridge", "element_strategies"]
