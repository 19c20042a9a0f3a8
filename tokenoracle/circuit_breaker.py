"""Health tracking for RPC endpoints, with quarantine and retry after a cooldown."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

RECENT_WINDOW = 100
DEFAULT_MIN_SUCCESS_RATE = 0.3
RECOVERY_SUCCESS_RATE = 0.7


class EndpointState(Enum):
    """Where an endpoint stands in the circuit breaker."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    COOLING_DOWN = "cooling_down"


@dataclass
class EndpointHealth:
    """Rolling success record of one endpoint."""

    state: EndpointState = EndpointState.HEALTHY
    consecutive_failures: int = 0
    success_rate: float = 1.0
    total_attempts: int = 0
    successful_attempts: int = 0
    last_failure: float | None = None
    cooldown_start: float | None = None
    recent_attempts: deque[bool] = field(
        default_factory=lambda: deque(maxlen=RECENT_WINDOW)
    )

    def record_success(self) -> None:
        self.consecutive_failures = 0
        self.last_failure = None
        self.recent_attempts.append(True)
        self._update_success_rate()

    def record_failure(self) -> None:
        self.consecutive_failures += 1
        self.last_failure = time.monotonic()
        self.recent_attempts.append(False)
        self._update_success_rate()

    def _update_success_rate(self) -> None:
        if not self.recent_attempts:
            self.success_rate = 1.0
            self.total_attempts = 0
            self.successful_attempts = 0
            return
        successes = sum(self.recent_attempts)
        self.successful_attempts = successes
        self.total_attempts = len(self.recent_attempts)
        self.success_rate = successes / self.total_attempts

    def reset(self) -> None:
        self.state = EndpointState.HEALTHY
        self.consecutive_failures = 0
        self.cooldown_start = None
        self.recent_attempts.clear()
        self.total_attempts = 0
        self.successful_attempts = 0
        self.success_rate = 1.0


@dataclass(frozen=True)
class EndpointHealthStats:
    """Health figures of one endpoint for reporting."""

    state: EndpointState
    consecutive_failures: int
    success_rate: float
    total_attempts: int
    successful_attempts: int


class CircuitBreaker:
    """Degrades failing endpoints and cools them down before letting them retry."""

    def __init__(self, failure_threshold: int, cooldown_seconds: float, sample_size: int) -> None:
        if failure_threshold < 0:
            raise ValueError("failure threshold must not be negative")
        if cooldown_seconds < 0:
            raise ValueError("cooldown must not be negative")
        if sample_size < 0:
            raise ValueError("sample size must not be negative")
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = float(cooldown_seconds)
        self.sample_size = sample_size
        self.min_success_rate = DEFAULT_MIN_SUCCESS_RATE
        self._health: dict[str, EndpointHealth] = {}

    def _entry(self, endpoint: str) -> EndpointHealth:
        return self._health.setdefault(endpoint, EndpointHealth())

    def record_success(self, endpoint: str) -> None:
        health = self._entry(endpoint)
        health.record_success()
        self._update_state(endpoint, health)
        logger.debug(
            "Recorded success for endpoint %s: %d failures, %.2f%% success rate",
            endpoint, health.consecutive_failures, health.success_rate * 100.0,
        )

    def record_failure(self, endpoint: str) -> None:
        health = self._entry(endpoint)
        health.record_failure()
        self._update_state(endpoint, health)
        logger.warning(
            "Recorded failure for endpoint %s: %d consecutive failures, %.2f%% success rate",
            endpoint, health.consecutive_failures, health.success_rate * 100.0,
        )

    def is_available(self, endpoint: str) -> bool:
        """Whether the endpoint may be used now; ends an expired cooldown."""
        health = self._entry(endpoint)
        self._update_state(endpoint, health)

        if health.state is not EndpointState.COOLING_DOWN:
            return True
        if health.cooldown_start is None:
            return True
        if time.monotonic() - health.cooldown_start >= self.cooldown_seconds:
            health.state = EndpointState.DEGRADED
            health.cooldown_start = None
            health.consecutive_failures = 0
            logger.debug("Endpoint %s cooldown expired, moving to degraded state", endpoint)
            return True
        return False

    def endpoint_state(self, endpoint: str) -> EndpointState:
        """Current state; endpoints never seen are healthy."""
        health = self._health.get(endpoint)
        return health.state if health is not None else EndpointState.HEALTHY

    def healthy_endpoints(self) -> list[str]:
        return [
            endpoint
            for endpoint in list(self._health)
            if self.is_available(endpoint)
            and self.endpoint_state(endpoint) is EndpointState.HEALTHY
        ]

    def available_endpoints(self) -> list[str]:
        """Healthy and degraded endpoints."""
        return [endpoint for endpoint in list(self._health) if self.is_available(endpoint)]

    def _update_state(self, endpoint: str, health: EndpointHealth) -> None:
        if health.state is EndpointState.HEALTHY:
            if health.consecutive_failures >= self.failure_threshold:
                health.state = EndpointState.DEGRADED
                logger.debug("Endpoint %s degraded: %d consecutive failures",
                             endpoint, health.consecutive_failures)
        elif health.state is EndpointState.DEGRADED:
            failing = health.consecutive_failures >= self.failure_threshold * 2
            poor_rate = (
                health.total_attempts >= self.sample_size
                and health.success_rate < self.min_success_rate
            )
            if failing or poor_rate:
                health.state = EndpointState.COOLING_DOWN
                health.cooldown_start = time.monotonic()
                logger.warning(
                    "Endpoint %s entering cooldown: %d failures, %.2f%% success rate",
                    endpoint, health.consecutive_failures, health.success_rate * 100.0,
                )
            elif health.consecutive_failures == 0 and health.success_rate > RECOVERY_SUCCESS_RATE:
                health.state = EndpointState.HEALTHY
                logger.debug("Endpoint %s recovered to healthy state", endpoint)

    def health_stats(self) -> dict[str, EndpointHealthStats]:
        return {
            endpoint: EndpointHealthStats(
                state=health.state,
                consecutive_failures=health.consecutive_failures,
                success_rate=health.success_rate,
                total_attempts=health.total_attempts,
                successful_attempts=health.successful_attempts,
            )
            for endpoint, health in self._health.items()
        }

    def reset_all(self) -> None:
        for health in self._health.values():
            health.reset()
        logger.debug("Reset all endpoints to healthy state")