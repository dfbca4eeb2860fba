"""
Retry policy for calls to the model provider.

Retryability is decided from error codes and message markers rather than from
exception classes, so the same policy applies whatever transport raised.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, FrozenSet, Optional, TypeVar

from match_engine.utils.exceptions import ProviderExhaustedError
from match_engine.utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RETRYABLE_MARKERS: FrozenSet[str] = frozenset({
    "RATE_LIMIT_EXCEEDED",
    "SERVICE_UNAVAILABLE",
    "TIMEOUT",
    "NETWORK_ERROR",
    "Request timeout",
})


def is_retryable_error(error: BaseException, markers: FrozenSet[str] = RETRYABLE_MARKERS) -> bool:
    code = getattr(error, "code", None)
    if code in markers:
        return True
    message = str(error)
    return any(marker in message for marker in markers)


def linear_backoff(base_delay: float) -> Callable[[int], float]:
    def backoff(retry_number: int) -> float:
        return base_delay * retry_number
    return backoff


@dataclass(frozen=True)
class RetryPolicy:
    """Max retries, backoff and retryable-error predicate as one value.

    ``max_retries`` counts retries after the first attempt, so a policy with
    ``max_retries=3`` invokes the operation at most four times.
    """
    max_retries: int = 3
    base_delay: float = 1.0
    backoff: Optional[Callable[[int], float]] = None
    is_retryable: Callable[[BaseException], bool] = is_retryable_error
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def delay_for(self, retry_number: int) -> float:
        backoff = self.backoff or linear_backoff(self.base_delay)
        return backoff(retry_number)

    async def execute(self, operation: Callable[[], Awaitable[T]], name: str = "provider call") -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as e:
                if not self.is_retryable(e):
                    raise
                if attempt > self.max_retries:
                    logger.error(f"{name} failed after {attempt} attempts: {e}")
                    raise ProviderExhaustedError(
                        f"{name} failed after {attempt} attempts: {e}",
                        operation=name,
                        attempts=attempt,
                        cause=e,
                    ) from e
                delay = self.delay_for(attempt)
                logger.warning(
                    f"Retrying {name} in {delay:.2f}s. Retries left: {self.max_retries - attempt}"
                )
                await self.sleep(delay)
