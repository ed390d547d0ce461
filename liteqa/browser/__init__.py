"""
Playwright browser session and element query adapter.
"""

from .driver import PlaywrightDriver
from .query import PlaywrightElementHandle, PlaywrightElementQuery

__all__ = ["PlaywrightDriver", "PlaywrightElementHandle", "PlaywrightElementQuery"]
