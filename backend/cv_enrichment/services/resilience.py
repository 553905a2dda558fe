"""
Retry wrapper for source fetches.

Only transient SourceFetchErrors are retried; a missing identifier or a 404
fails immediately. Backoff is linear (initial_delay * attempt).
"""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from ..exceptions import MissingIdentifierError, SourceFetchError, SourceNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    def __init__(self, max_attempts: int = 3, initial_delay: float = 1.0):
        self.max_attempts = max(1, max_attempts)
        self.initial_delay = initial_delay

    @staticmethod
    def is_retryable(error: Exception) -> bool:
        if isinstance(error, (SourceNotFoundError, MissingIdentifierError)):
            return False
        return isinstance(error, SourceFetchError)

    async def run(self, operation_name: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()`` up to max_attempts times and return its result."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except Exception as e:
                if not self.is_retryable(e) or attempt == self.max_attempts:
                    raise
                delay = self.initial_delay * attempt
                logger.warning(
                    f"[RETRY] {operation_name} attempt {attempt}/{self.max_attempts} failed: {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
