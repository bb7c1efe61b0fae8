"""
RequestDeduplicator - Prevents duplicate concurrent requests.

When multiple callers request the same resource simultaneously,
only one actual request is made and the outcome is shared.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from portal.services.errors import RequestCancelledError

T = TypeVar("T")


def make_signature(endpoint: str, params: dict[str, Any] | None = None) -> str:
    """Request signature used for in-flight deduplication only."""
    if not params:
        return endpoint
    return f"{endpoint}?{json.dumps(params, sort_keys=True, default=str)}"


class RequestDeduplicator:
    """
    Deduplicates concurrent async requests.

    When multiple coroutines request the same signature while one is in
    flight, only one actual request is made. All callers await the same
    task and observe the same result or the same exception.

    Registration happens synchronously (no await between lookup and
    insert), so there is never more than one task per signature.

    Usage:
        dedup = RequestDeduplicator()

        async def fetch_data(url: str):
            return await dedup.dedupe(
                url,
                lambda: http_client.get(url),
            )
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._debug = debug
        self._stats = DeduplicatorStats()

    async def dedupe(
        self,
        signature: str,
        request_fn: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Execute request with deduplication.

        If a request with the same signature is already in flight,
        wait for and return its result instead of making a new request.

        Args:
            signature: Unique identifier for this request
            request_fn: Async function to execute if no duplicate exists

        Returns:
            Result from request_fn (either fresh or from in-flight request)
        """
        task = self._in_flight.get(signature)
        if task is not None:
            self._stats.deduplicated += 1
            self._log(f"JOIN: Waiting for in-flight request: {signature[:50]}...")
        else:
            self._stats.total += 1
            self._log(f"NEW: Starting request: {signature[:50]}...")
            task = asyncio.create_task(self._execute_and_cleanup(signature, request_fn))
            self._in_flight[signature] = task

        # A cancelled caller must not cancel the operation other callers share
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                # The shared call itself was cancelled (cancel_all), not this caller
                raise RequestCancelledError(
                    f"In-flight request cancelled: {signature[:50]}"
                ) from None
            raise

    async def _execute_and_cleanup(
        self,
        signature: str,
        request_fn: Callable[[], Awaitable[T]],
    ) -> T:
        """Execute request and unregister it when done."""
        try:
            return await request_fn()
        finally:
            if self._in_flight.get(signature) is asyncio.current_task():
                del self._in_flight[signature]
            self._log(f"DONE: Request completed: {signature[:50]}...")

    def is_in_flight(self, signature: str) -> bool:
        return signature in self._in_flight

    async def cancel_all(self) -> int:
        """Cancel all in-flight requests."""
        tasks = list(self._in_flight.values())
        self._in_flight.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            # Let cancellations settle so no task outlives its owner
            await asyncio.gather(*tasks, return_exceptions=True)
            self._log(f"CANCEL_ALL: {len(tasks)} requests cancelled")
        return len(tasks)

    def forget_all(self) -> int:
        """Drop every registration without cancelling the running tasks."""
        count = len(self._in_flight)
        self._in_flight.clear()
        return count

    def reset_stats(self) -> None:
        self._stats = DeduplicatorStats()

    def get_in_flight_count(self) -> int:
        """Get number of in-flight requests."""
        return len(self._in_flight)

    def get_in_flight_keys(self) -> list[str]:
        """Get signatures of all in-flight requests."""
        return list(self._in_flight.keys())

    def get_stats(self) -> "DeduplicatorStats":
        """Get deduplication statistics."""
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")


class DeduplicatorStats:
    """Statistics for request deduplication."""

    def __init__(self):
        self.total: int = 0  # Unique requests started
        self.deduplicated: int = 0  # Callers that joined an in-flight request
        self.in_flight: int = 0

    @property
    def dedup_rate(self) -> float:
        """Calculate deduplication rate."""
        total = self.total + self.deduplicated
        if total == 0:
            return 0.0
        return self.deduplicated / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_requests": self.total,
            "deduplicated": self.deduplicated,
            "in_flight": self.in_flight,
            "dedup_rate": f"{self.dedup_rate:.2%}",
        }
