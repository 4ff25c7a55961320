from __future__ import annotations

import logging
from typing import Awaitable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestCallGuard(Generic[T]):
    """Keep only the result of the most recent call ("last call wins").

    Each ``run()`` takes a new generation ticket; a result that arrives after a
    newer call has started is dropped and ``run()`` returns ``None`` for it.
    ``latest`` always holds the newest accepted result.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._generation = 0
        self.latest: Optional[T] = None

    def begin(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, ticket: int) -> bool:
        return ticket == self._generation

    def invalidate(self) -> None:
        """Discard whatever is in flight, e.g. when the caller navigates away."""
        self._generation += 1

    async def run(self, call: Awaitable[T]) -> Optional[T]:
        ticket = self.begin()
        result = await call
        if not self.is_current(ticket):
            logger.debug("last_call.stale_dropped", extra={"extra": {"guard": self.name, "ticket": ticket}})
            return None
        self.latest = result
        return result
