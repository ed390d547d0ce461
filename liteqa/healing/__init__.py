"""
Self-healing locator resolution cascade.
"""

from .hints import SelectorHints, extract_identifiers, extract_text_hints, similarity
from .locator import (
    DIRECT_MATCH_TIMEOUT_MS,
    HealingLog,
    Resolution,
    SelfHealingLocator,
)
from .strategies import (
    STRATEGIES,
    css_contains_text,
    make_healed_selector,
    role_name,
    stable_attribute,
    text_similarity,
)

__all__ = [
    "SelectorHints",
    "extract_identifiers",
    "extract_text_hints",
    "similarity",
    "DIRECT_MATCH_TIMEOUT_MS",
    "HealingLog",
    "Resolution",
    "SelfHealingLocator",
    "STRATEGIES",
    "css_contains_text",
    "make_healed_selector",
    "role_name",
    "stable_attribute",
    "text_similarity",
]
