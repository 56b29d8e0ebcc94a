import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Tuple

from tutorhub.utils.errors import ActionInFlight

logger = logging.getLogger(__name__)


class ActionLatch:
    """
    Guards one action instance (e.g. "approve session 42").

    Engaging an engaged latch fails immediately instead of queueing, so a
    double submission never reaches the backend.
    """

    def __init__(self, name: str = "action"):
        self.name = name
        self._engaged = False

    @property
    def engaged(self) -> bool:
        return self._engaged

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        if self._engaged:
            logger.info("Rejected duplicate submission of %s", self.name)
            raise ActionInFlight("This action is already in progress")
        self._engaged = True
        try:
            yield
        finally:
            self._engaged = False


class LatchRegistry:
    """Latches keyed by action instance; released latches are forgotten."""

    def __init__(self):
        self._latches: Dict[Tuple[Hashable, ...], ActionLatch] = {}

    def is_engaged(self, *key: Hashable) -> bool:
        latch = self._latches.get(key)
        return latch is not None and latch.engaged

    @asynccontextmanager
    async def hold(self, *key: Hashable) -> AsyncIterator[None]:
        latch = self._latches.setdefault(key, ActionLatch(":".join(str(part) for part in key)))
        try:
            async with latch.hold():
                yield
        finally:
            if not latch.engaged and self._latches.get(key) is latch:
                del self._latches[key]
