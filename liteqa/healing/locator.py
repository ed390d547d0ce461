"""
Self-healing locator resolution.

Resolves a selector to an element handle: the literal selector first, then
the fallback strategies in tier order, recording every substitution.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

from liteqa.config.settings import RunConfig
from liteqa.core.interfaces import ElementHandle, ElementQuery
from liteqa.core.types import HealedSelector
from liteqa.error_handling.exceptions import (
    ElementNotFound,
    SelectorQueryError,
    TimeoutError,
)
from liteqa.healing.hints import SelectorHints
from liteqa.healing.strategies import STRATEGIES, Strategy
from liteqa.monitoring.logger import get_logger, log_healed_selector


DIRECT_MATCH_TIMEOUT_MS = 3000
HEALING_LOG_FILENAME = "healed-selectors.json"


@dataclass(frozen=True)
class Resolution:
    """A resolved handle and, when a fallback was used, its healing record."""

    handle: ElementHandle
    healed: Optional[HealedSelector] = None


class HealingLog:
    """Append-only record of selector substitutions made during one run."""

    def __init__(self) -> None:
        self._records: List[HealedSelector] = []
        self.logger = get_logger("healing.log")

    def append(self, record: HealedSelector) -> None:
        self._records.append(record)

    @property
    def records(self) -> List[HealedSelector]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[HealedSelector]:
        return iter(list(self._records))

    def save(self, directory: Union[str, Path]) -> Optional[Path]:
        """
        Write the log as JSON into a directory.

        Args:
            directory: Output directory, created if missing

        Returns:
            Path of the written file, or None when the log is empty
        """
        if not self._records:
            return None

        output_dir = Path(directory)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / HEALING_LOG_FILENAME
        payload = [record.model_dump(mode="json") for record in self._records]
        output_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

        self.logger.info(
            f"Saved {len(self._records)} healed selector(s) to {output_path}"
        )
        return output_path


class SelfHealingLocator:
    """Locator resolution cascade bound to a run configuration and healing log."""

    def __init__(
        self,
        config: RunConfig,
        log: Optional[HealingLog] = None,
        strategies: Sequence[Strategy] = STRATEGIES,
    ) -> None:
        """
        Initialize the locator.

        Args:
            config: Run configuration (self_heal, self_heal_threshold)
            log: Healing log receiving accepted substitutions
            strategies: Fallback strategies in tier order
        """
        self.config = config
        self.log = log if log is not None else HealingLog()
        self.strategies = tuple(strategies)
        self.logger = get_logger("healing.locator")

    async def find_element(self, query: ElementQuery, selector: str) -> Resolution:
        """
        Resolve a selector on a live target.

        Args:
            query: Element query capability of the live target
            selector: Selector as written in the flow

        Returns:
            Resolution with the handle and an optional healing record

        Raises:
            ElementNotFound: If neither the selector nor any fallback matched
        """
        try:
            handle = query.locate(selector)
            await handle.wait_visible(DIRECT_MATCH_TIMEOUT_MS)
            return Resolution(handle=handle)
        except (TimeoutError, SelectorQueryError) as e:
            self.logger.debug(f"Original selector failed: {selector} ({e.message})")

        if not self.config.self_heal:
            raise ElementNotFound(f"Element not found: {selector}", selector=selector)

        hints = SelectorHints.from_selector(selector)
        for strategy in self.strategies:
            outcome = await strategy(selector, hints, query, self.config)
            if outcome is None:
                continue

            handle, record = outcome
            self.log.append(record)
            log_healed_selector(
                record.original, record.healed, record.strategy.value, record.confidence
            )
            return Resolution(handle=handle, healed=record)

        raise ElementNotFound(
            f"Element not found and self-healing failed: {selector}",
            selector=selector,
            healing_attempted=True,
        )
