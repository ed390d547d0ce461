"""
Core interfaces and abstract base classes for the LiteQA flow engine.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class ElementHandle(ABC):
    """A lazily-evaluated reference to zero or more elements on a live target."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of elements currently matching."""
        pass

    @abstractmethod
    async def wait_visible(self, timeout_ms: int) -> None:
        """
        Wait until the first matching element is visible.

        Args:
            timeout_ms: Upper bound for the wait in milliseconds

        Raises:
            TimeoutError: If nothing became visible in time
            SelectorQueryError: If the target rejected the selector
        """
        pass

    @abstractmethod
    def first(self) -> "ElementHandle":
        """Narrow the handle to its first match."""
        pass


class ElementQuery(ABC):
    """Read-only query capability over a live target's element tree."""

    @abstractmethod
    def locate(self, selector: str) -> ElementHandle:
        """Build a handle for a selector without touching the target."""
        pass

    @abstractmethod
    async def visible_texts(self, limit: int = 100) -> List[str]:
        """
        Collect the trimmed texts of visible interactive elements.

        Args:
            limit: Maximum number of texts returned

        Returns:
            Texts in document order
        """
        pass


class CommandBridge(ABC):
    """Request/response channel to an external automation process."""

    @abstractmethod
    async def start(self) -> None:
        """Open the channel."""
        pass

    @abstractmethod
    async def send(self, command: Dict[str, Any], timeout_ms: int) -> Dict[str, Any]:
        """
        Send one command and wait for its reply.

        Args:
            command: JSON-serializable command payload
            timeout_ms: Upper bound for the reply in milliseconds

        Returns:
            Decoded reply payload
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Close the channel and release the process."""
        pass
