"""
Configuration for the LiteQA flow engine.
"""

from .settings import RunConfig, Settings, Viewport, get_settings

__all__ = ["RunConfig", "Settings", "Viewport", "get_settings"]
