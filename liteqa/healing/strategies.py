"""
Fallback strategies of the self-healing cascade.

Each strategy is a pure async function ``(selector, hints, query, config)``
returning ``(handle, HealedSelector)`` on success or ``None`` to decline.
Strategies never raise: probe failures count as declining.
"""

import math
from typing import Awaitable, Callable, Optional, Tuple

from liteqa.config.settings import RunConfig
from liteqa.core.interfaces import ElementHandle, ElementQuery
from liteqa.core.types import HealedSelector, HealingStrategy
from liteqa.error_handling.exceptions import (
    AmbiguousMatch,
    SelectorQueryError,
    TimeoutError,
)
from liteqa.healing.hints import SelectorHints, best_match, escape_regex, quote
from liteqa.monitoring.logger import get_logger


logger = get_logger("healing.strategies")

StrategyOutcome = Optional[Tuple[ElementHandle, HealedSelector]]
Strategy = Callable[
    [str, SelectorHints, ElementQuery, RunConfig], Awaitable[StrategyOutcome]
]

ROLES = ("button", "link", "textbox", "checkbox", "radio", "combobox", "menuitem")
CONTAINER_TAGS = ("button", "a", "input", "span", "div", "label", "p")

STABLE_TESTID_CONFIDENCE = 0.9
STABLE_ARIA_CONFIDENCE = 0.85
ROLE_EXACT_CONFIDENCE = 0.8
ROLE_PARTIAL_CONFIDENCE = 0.7
CSS_CONTAINS_CONFIDENCE = 0.65
CSS_CONTAINS_MAX_MATCHES = 3


def make_healed_selector(
    original: str, healed: str, strategy: HealingStrategy, confidence: float
) -> HealedSelector:
    """Build the healing record for a substituted selector."""
    return HealedSelector(
        original=original,
        healed=healed,
        strategy=strategy,
        confidence=confidence,
        suggestion=f'Consider updating selector from "{original}" to "{healed}"',
    )


async def probe(
    query: ElementQuery,
    selector: str,
    minimum: int = 1,
    maximum: float = 1,
) -> ElementHandle:
    """
    Locate a selector and require its match count to fall in a range.

    Raises:
        AmbiguousMatch: If the count is outside [minimum, maximum]
        SelectorQueryError: If the target rejected the selector
    """
    handle = query.locate(selector)
    count = await handle.count()
    if count < minimum or count > maximum:
        raise AmbiguousMatch(
            f"{selector} matched {count} element(s)", selector=selector, count=count
        )
    return handle


async def _try_probe(
    query: ElementQuery, selector: str, minimum: int = 1, maximum: float = 1
) -> Optional[ElementHandle]:
    try:
        return await probe(query, selector, minimum, maximum)
    except AmbiguousMatch:
        return None
    except (SelectorQueryError, TimeoutError) as e:
        logger.debug(f"Probe failed for {selector}: {e}")
        return None


async def stable_attribute(
    selector: str, hints: SelectorHints, query: ElementQuery, config: RunConfig
) -> StrategyOutcome:
    """Probe ``data-testid`` then ``aria-label`` for each extracted identifier."""
    for identifier in hints.identifiers:
        for template, confidence in (
            ("[data-testid={}]", STABLE_TESTID_CONFIDENCE),
            ("[aria-label={}]", STABLE_ARIA_CONFIDENCE),
        ):
            candidate = template.format(quote(identifier))
            handle = await _try_probe(query, candidate)
            if handle is not None:
                return handle, make_healed_selector(
                    selector, candidate, HealingStrategy.DATA_TESTID_FUZZY, confidence
                )
    return None


async def text_similarity(
    selector: str, hints: SelectorHints, query: ElementQuery, config: RunConfig
) -> StrategyOutcome:
    """Match text hints against visible interactive element texts."""
    if not hints.text_hints:
        return None

    try:
        candidates = await query.visible_texts(limit=100)
    except (SelectorQueryError, TimeoutError) as e:
        logger.debug(f"Could not collect visible texts: {e}")
        return None

    for hint in hints.text_hints:
        match = best_match(hint, candidates)
        if match is None:
            return None
        index, score = match
        if score < config.self_heal_threshold:
            continue

        candidate = f"text={quote(candidates[index])}"
        handle = await _try_probe(query, candidate, maximum=math.inf)
        if handle is not None:
            return handle.first(), make_healed_selector(
                selector, candidate, HealingStrategy.TEXT_SIMILARITY, score
            )
    return None


async def role_name(
    selector: str, hints: SelectorHints, query: ElementQuery, config: RunConfig
) -> StrategyOutcome:
    """Probe accessible role + name, exact first, then case-insensitive partial."""
    for hint in hints.text_hints:
        for role in ROLES:
            for candidate, confidence in (
                (f"role={role}[name={quote(hint)}s]", ROLE_EXACT_CONFIDENCE),
                (f"role={role}[name=/{escape_regex(hint)}/i]", ROLE_PARTIAL_CONFIDENCE),
            ):
                handle = await _try_probe(query, candidate)
                if handle is not None:
                    return handle, make_healed_selector(
                        selector, candidate, HealingStrategy.ROLE_NAME, confidence
                    )
    return None


async def css_contains_text(
    selector: str, hints: SelectorHints, query: ElementQuery, config: RunConfig
) -> StrategyOutcome:
    """Probe common container tags that contain a hint's text."""
    for hint in hints.text_hints:
        for tag in CONTAINER_TAGS:
            candidate = f"{tag}:has-text({quote(hint)})"
            handle = await _try_probe(query, candidate, maximum=CSS_CONTAINS_MAX_MATCHES)
            if handle is not None:
                return handle.first(), make_healed_selector(
                    selector, candidate, HealingStrategy.CSS_CONTAINS, CSS_CONTAINS_CONFIDENCE
                )
    return None


# Tier order; the first strategy that succeeds wins regardless of confidence.
STRATEGIES: Tuple[Strategy, ...] = (
    stable_attribute,
    text_similarity,
    role_name,
    css_contains_text,
)
