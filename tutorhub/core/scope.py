import asyncio
from typing import Any, Awaitable, List, Optional


class ViewScope:
    """
    Lifetime of one view's interest in its queries.

    Queries started in the scope run to completion, but once the scope is
    closed their results are discarded instead of delivered.
    """

    def __init__(self):
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def run(self, awaitable: Awaitable[Any], default: Any = None) -> Any:
        result = await awaitable
        return default if self._closed else result

    async def gather(self, *awaitables: Awaitable[Any]) -> Optional[List[Any]]:
        """Run independent queries concurrently; completion order is irrelevant."""
        results = await asyncio.gather(*awaitables)
        if self._closed:
            return None
        return list(results)

    async def __aenter__(self) -> "ViewScope":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()
