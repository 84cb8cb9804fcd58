"""
Circuit breaker pattern implementation for resilient service calls.

Each breaker owns the health state of one upstream service. All transitions
happen under the breaker's own asyncio lock, so concurrent in-flight requests
to the same service never race on the failure counters.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from shared.logging import get_logger


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, requests blocked
    HALF_OPEN = "half_open"  # Testing if service recovered


class HealthStatus(str, Enum):
    """Service health as seen by the gateway."""
    UP = "UP"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"


@dataclass(frozen=True)
class HealthState:
    """Point-in-time snapshot of a service's health."""
    status: HealthStatus
    last_checked_at: Optional[float]
    consecutive_failures: int


class CircuitBreakerOpenException(Exception):
    """Exception raised when circuit breaker is open."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Circuit breaker '{name}' is OPEN - blocking call")


class CircuitBreaker:
    """Per-service circuit breaker: CLOSED -> OPEN -> HALF_OPEN -> CLOSED."""

    def __init__(self,
                 failure_threshold: int = 3,
                 recovery_timeout: float = 30.0,
                 failure_window: float = 60.0,
                 expected_exception: type = Exception,
                 name: str = "default",
                 clock: Callable[[], float] = time.monotonic,
                 on_state_change: Optional[Callable[[str, CircuitBreakerState], None]] = None):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_window = failure_window
        self.expected_exception = expected_exception
        self.name = name
        self.logger = get_logger(f"gateway.circuit_breaker.{name}")
        self._clock = clock
        self._on_state_change = on_state_change

        self._lock = asyncio.Lock()
        self._state = CircuitBreakerState.CLOSED
        self._failures: Deque[float] = deque()
        self._opened_at = 0.0
        self._last_checked_at: Optional[float] = None
        self._probe_in_flight = False
        self._success_count = 0

    @property
    def state(self) -> CircuitBreakerState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return len(self._failures)

    def _set_state(self, state: CircuitBreakerState) -> None:
        if state == self._state:
            return
        previous = self._state
        self._state = state
        self.logger.info(
            "Circuit breaker state change",
            previous=previous.value,
            current=state.value,
            failure_count=len(self._failures)
        )
        if self._on_state_change is not None:
            self._on_state_change(self.name, state)

    def _can_attempt_reset(self) -> bool:
        """Check if the cool-down has elapsed since the circuit opened."""
        return (self._clock() - self._opened_at) >= self.recovery_timeout

    def _prune(self, now: float) -> None:
        while self._failures and now - self._failures[0] > self.failure_window:
            self._failures.popleft()

    async def acquire(self) -> bool:
        """Decide whether a live call may proceed.

        Returns False when the call must be short-circuited. In HALF_OPEN only
        a single probe is admitted until its outcome is recorded.
        """
        async with self._lock:
            if self._state == CircuitBreakerState.CLOSED:
                return True
            if self._state == CircuitBreakerState.OPEN:
                if not self._can_attempt_reset():
                    return False
                self._set_state(CircuitBreakerState.HALF_OPEN)
                self._probe_in_flight = True
                return True
            # HALF_OPEN
            if self._probe_in_flight:
                return False
            self._probe_in_flight = True
            return True

    async def record_success(self) -> None:
        """Record a successful live call."""
        async with self._lock:
            self._last_checked_at = time.time()
            self._success_count += 1
            self._failures.clear()
            self._probe_in_flight = False
            if self._state != CircuitBreakerState.CLOSED:
                self._set_state(CircuitBreakerState.CLOSED)
                self.logger.info("Circuit breaker reset to CLOSED after successful call")

    async def record_failure(self, reason: str = "") -> None:
        """Record a failed live call."""
        async with self._lock:
            now = self._clock()
            self._last_checked_at = time.time()
            self._success_count = 0
            self._failures.append(now)
            self._prune(now)
            self._probe_in_flight = False

            if self._state == CircuitBreakerState.HALF_OPEN:
                self._opened_at = now
                self._set_state(CircuitBreakerState.OPEN)
                self.logger.warning("Half-open probe failed, circuit re-opened", reason=reason)
            elif self._state == CircuitBreakerState.CLOSED and len(self._failures) >= self.failure_threshold:
                self._opened_at = now
                self._set_state(CircuitBreakerState.OPEN)
                self.logger.warning(
                    "Circuit breaker opened due to failures",
                    failure_count=len(self._failures),
                    threshold=self.failure_threshold,
                    reason=reason
                )

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Execute function with circuit breaker protection."""
        if not await self.acquire():
            raise CircuitBreakerOpenException(self.name)

        try:
            result = await func(*args, **kwargs)
        except asyncio.CancelledError:
            # Account for the abandoned call before the cancellation propagates
            await self.record_failure("cancelled")
            raise
        except self.expected_exception as e:
            await self.record_failure(type(e).__name__)
            raise
        except Exception as e:
            # Unexpected exception - still count as failure
            await self.record_failure(f"unexpected:{type(e).__name__}")
            raise

        await self.record_success()
        return result

    def health_state(self) -> HealthState:
        """Snapshot of this service's health."""
        if self._state == CircuitBreakerState.OPEN:
            status = HealthStatus.DOWN
        elif self._state == CircuitBreakerState.HALF_OPEN or self._failures:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.UP
        return HealthState(
            status=status,
            last_checked_at=self._last_checked_at,
            consecutive_failures=len(self._failures)
        )

    def get_state(self) -> Dict[str, Any]:
        """Get current circuit breaker state."""
        health = self.health_state()
        return {
            "name": self.name,
            "state": self._state.value,
            "status": health.status.value,
            "failure_count": health.consecutive_failures,
            "success_count": self._success_count,
            "last_checked_at": health.last_checked_at,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout
        }


class CircuitBreakerManager:
    """Owns one circuit breaker per upstream service."""

    def __init__(self,
                 failure_threshold: int = 3,
                 recovery_timeout: float = 30.0,
                 failure_window: float = 60.0,
                 clock: Callable[[], float] = time.monotonic,
                 on_state_change: Optional[Callable[[str, CircuitBreakerState], None]] = None):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_window = failure_window
        self._clock = clock
        self._on_state_change = on_state_change
        self.circuit_breakers: Dict[str, CircuitBreaker] = {}
        self.logger = get_logger("gateway.circuit_breaker_manager")

    def get_circuit_breaker(self, name: str, expected_exception: type = Exception) -> CircuitBreaker:
        """Get or create a circuit breaker."""
        if name not in self.circuit_breakers:
            self.circuit_breakers[name] = CircuitBreaker(
                failure_threshold=self.failure_threshold,
                recovery_timeout=self.recovery_timeout,
                failure_window=self.failure_window,
                expected_exception=expected_exception,
                name=name,
                clock=self._clock,
                on_state_change=self._on_state_change
            )
            self.logger.info("Created circuit breaker", name=name)

        return self.circuit_breakers[name]

    def get_all_states(self) -> Dict[str, Dict[str, Any]]:
        """Get states of all circuit breakers."""
        return {
            name: cb.get_state()
            for name, cb in self.circuit_breakers.items()
        }

    def health_states(self) -> Dict[str, HealthState]:
        return {
            name: cb.health_state()
            for name, cb in self.circuit_breakers.items()
        }
