"""
Circuit breaker guarding calls to the object store.
"""
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional
from sharelink.config import settings

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"  # Requests pass through
    OPEN = "open"  # Requests fail immediately
    HALF_OPEN = "half_open"  # Probing for recovery


class CircuitBreakerOpenException(Exception):
    """Exception raised when circuit breaker is open."""

    def __init__(self, message: str = "Circuit breaker is open"):
        self.message = message
        super().__init__(self.message)


class CircuitBreaker:
    """
    Opens after ``failure_threshold`` consecutive failures, fails fast while
    open, and lets ``half_open_max_calls`` trial calls through once
    ``recovery_timeout`` seconds have passed.

    Usage:
        breaker = CircuitBreaker(name="object_store")
        result = await breaker.call(fetch, path)
    """

    def __init__(
        self,
        name: str = "default",
        failure_threshold: Optional[int] = None,
        recovery_timeout: Optional[int] = None,
        half_open_max_calls: Optional[int] = None,
        excluded_exceptions: tuple = ()
    ):
        self.name = name
        self.failure_threshold = failure_threshold or settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD
        self.recovery_timeout = recovery_timeout or settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT
        self.half_open_max_calls = half_open_max_calls or settings.CIRCUIT_BREAKER_HALF_OPEN_MAX_CALLS
        self.excluded_exceptions = excluded_exceptions
        self.reset()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def reset(self) -> None:
        """Return to the closed state and forget past failures."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0
        self._last_failure_time: Optional[float] = None

    def _before_call(self) -> None:
        if self._state == CircuitState.OPEN:
            elapsed = time.monotonic() - (self._last_failure_time or 0.0)
            if elapsed < self.recovery_timeout:
                raise CircuitBreakerOpenException(
                    f"Circuit breaker '{self.name}' is open. Retry after {self.recovery_timeout}s"
                )
            self._state = CircuitState.HALF_OPEN
            self._success_count = 0
            self._half_open_calls = 0
            logger.info(f"Circuit breaker '{self.name}' entering half-open state")

        if self._state == CircuitState.HALF_OPEN:
            if self._half_open_calls >= self.half_open_max_calls:
                raise CircuitBreakerOpenException(
                    f"Circuit breaker '{self.name}' half-open call limit reached"
                )
            self._half_open_calls += 1

    def _on_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.half_open_max_calls:
                self.reset()
                logger.info(f"Circuit breaker '{self.name}' closed after successful recovery")
        else:
            self._failure_count = 0

    def _on_failure(self, exception: Exception) -> None:
        if isinstance(exception, self.excluded_exceptions):
            return

        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                f"Circuit breaker '{self.name}' opened after {self._failure_count} failures"
            )

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Run ``func`` through the breaker."""
        self._before_call()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            self._on_failure(e)
            raise
        self._on_success()
        return result
