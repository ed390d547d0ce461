"""
LiteQA - declarative test flow engine with self-healing locators.
"""

__version__ = "0.1.0"
