"""
Single-flight guard for guide refreshes
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable


logger = logging.getLogger(__name__)

SKIPPED_RESPONSE = {
    "status": "skipped",
    "message": "EPG refresh already in progress",
}


class FetchCoordinator:
    """Lets one refresh through at a time; overlapping requests are dropped."""

    def __init__(self) -> None:
        self._running = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._running.locked()

    async def run_exclusive(self, refresh: Callable[[], Awaitable[dict[str, Any]]]) -> dict[str, Any]:
        """
        Await `refresh` unless another one holds the guard.

        Returns:
            The refresh result, or a copy of SKIPPED_RESPONSE
        """
        if self.busy:
            logger.info("Refresh requested while another is running, dropping it")
            return dict(SKIPPED_RESPONSE)

        async with self._running:
            return await refresh()
