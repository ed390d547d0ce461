"""
Selector hint extraction and fuzzy text scoring for the self-healing cascade.

A broken selector still says something about the element it was written for:
its id, class names, quoted attribute values and text fragments. These helpers
pull those fragments out so the fallback strategies can probe for them.
"""

import json
import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Iterable, List, Optional, Sequence, Tuple


MIN_TOKEN_LENGTH = 3

_ID_PATTERN = re.compile(r"#([\w-]+)")
_CLASS_PATTERN = re.compile(r"\.([\w-]+)")
_ATTR_VALUE_PATTERN = re.compile(r"""\[[\w-]+=['"]([\w\-\s]+)['"]\]""")
_TEXT_PATTERN = re.compile(r"""text=["']([^"']+)["']""", re.IGNORECASE)
_HAS_TEXT_PATTERN = re.compile(r""":has-text\(["']([^"']+)["']\)""", re.IGNORECASE)
_KEYWORD_CLASS_PATTERN = re.compile(
    r"\.(login|submit|cancel|save|delete|edit|add|search|next|prev|close|open|btn-\w+)",
    re.IGNORECASE,
)
_ID_SEPARATOR_PATTERN = re.compile(r"[-_]")
_JS_REGEX_SPECIALS = re.compile(r"[.*+?^${}()|\[\]\\/]")


def _dedupe(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def _id_words(selector: str) -> List[str]:
    match = _ID_PATTERN.search(selector)
    if not match:
        return []
    return [word for word in _ID_SEPARATOR_PATTERN.split(match.group(1)) if word]


def extract_identifiers(selector: str) -> List[str]:
    """
    Extract candidate stable identifiers from a selector.

    Order: the whole ``#id``, the id's word tokens, ``.class`` names, quoted
    attribute values, then a ``text="..."`` value. Tokens of two characters or
    fewer are dropped and duplicates keep their first position.

    Args:
        selector: Selector as written in the flow

    Returns:
        Ordered identifier candidates
    """
    identifiers: List[str] = []

    id_match = _ID_PATTERN.search(selector)
    if id_match:
        identifiers.append(id_match.group(1))
        identifiers.extend(_id_words(selector))

    identifiers.extend(_CLASS_PATTERN.findall(selector))
    identifiers.extend(_ATTR_VALUE_PATTERN.findall(selector))

    text_match = _TEXT_PATTERN.search(selector)
    if text_match:
        identifiers.append(text_match.group(1))

    return _dedupe(token for token in identifiers if len(token) >= MIN_TOKEN_LENGTH)


def extract_text_hints(selector: str) -> List[str]:
    """
    Extract human-readable text hints from a selector.

    Args:
        selector: Selector as written in the flow

    Returns:
        Ordered, de-duplicated text hints
    """
    hints: List[str] = []

    text_match = _TEXT_PATTERN.search(selector)
    if text_match:
        hints.append(text_match.group(1))

    has_text_match = _HAS_TEXT_PATTERN.search(selector)
    if has_text_match:
        hints.append(has_text_match.group(1))

    hints.extend(
        keyword.replace("-", " ") for keyword in _KEYWORD_CLASS_PATTERN.findall(selector)
    )
    hints.extend(word for word in _id_words(selector) if len(word) >= MIN_TOKEN_LENGTH)

    return _dedupe(hints)


@dataclass(frozen=True)
class SelectorHints:
    """Identifiers and text hints extracted once per healing attempt."""

    selector: str
    identifiers: List[str] = field(default_factory=list)
    text_hints: List[str] = field(default_factory=list)

    @classmethod
    def from_selector(cls, selector: str) -> "SelectorHints":
        return cls(
            selector=selector,
            identifiers=extract_identifiers(selector),
            text_hints=extract_text_hints(selector),
        )


def similarity(left: str, right: str) -> float:
    """Case-insensitive similarity ratio in [0, 1]."""
    if not left and not right:
        return 1.0
    if not left or not right:
        return 0.0
    return SequenceMatcher(a=left.lower(), b=right.lower()).ratio()


def best_match(hint: str, candidates: Sequence[str]) -> Optional[Tuple[int, float]]:
    """
    Find the candidate most similar to a hint.

    Ties keep the earliest candidate.

    Returns:
        (index, score) of the best candidate, or None when there are no candidates
    """
    best: Optional[Tuple[int, float]] = None
    for index, candidate in enumerate(candidates):
        score = similarity(hint, candidate)
        if best is None or score > best[1]:
            best = (index, score)
    return best


def quote(value: str) -> str:
    """Double-quote a value for use inside a selector string."""
    return json.dumps(value, ensure_ascii=False)


def escape_regex(value: str) -> str:
    """Escape a value for a ``/.../i`` selector regex."""
    return _JS_REGEX_SPECIALS.sub(lambda match: "\\" + match.group(0), value)
