"""Correlation IDs, structured JSON event logging and a simple metrics collector."""

from __future__ import annotations

import itertools
import json
import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterable

logger = logging.getLogger(__name__)

_U64_MAX = (1 << 64) - 1

_counter = itertools.count(1)
_counter_lock = threading.Lock()


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


def _to_millis(duration: timedelta | float) -> int:
    if not isinstance(duration, timedelta):
        duration = timedelta(seconds=duration)
    if duration < timedelta(0):
        raise ValueError("duration must not be negative")
    return duration // timedelta(milliseconds=1)


def _to_u64(value: float) -> int:
    """Convert a float to an unsigned 64-bit integer, truncating and saturating."""
    if math.isnan(value) or value <= 0:
        return 0
    if value >= _U64_MAX:
        return _U64_MAX
    return int(value)


@dataclass(frozen=True)
class CorrelationId:
    """Identifier that follows a request through the pipeline."""

    value: str

    @classmethod
    def new(cls) -> CorrelationId:
        """Generate a fresh, process-unique correlation ID."""
        with _counter_lock:
            number = next(_counter)
        return cls(f"sniper-{_now_millis()}-{number}")

    @classmethod
    def from_string(cls, s: str) -> CorrelationId:
        return cls(s)

    def __str__(self) -> str:
        return self.value


def _emit(level: int, correlation_id: CorrelationId, key: str, message: str,
          data: dict[str, Any]) -> dict[str, Any]:
    logger.log(
        level,
        "%s correlation_id=%s %s=%s",
        message,
        correlation_id,
        key,
        json.dumps(data),
        extra={"correlation_id": str(correlation_id), key: data},
    )
    return data


def log_buy_attempt(correlation_id: CorrelationId, mint: str, program: str,
                    nonce_count: int) -> dict[str, Any]:
    """Log a buy attempt; returns the structured event."""
    data = {
        "event": "buy_attempt",
        "correlation_id": correlation_id.value,
        "mint": mint,
        "program": program,
        "nonce_count": nonce_count,
        "timestamp": _now_millis(),
    }
    return _emit(logging.INFO, correlation_id, "buy_attempt", "Buy attempt initiated", data)


def log_buy_success(correlation_id: CorrelationId, mint: str, signature: str,
                    execution_price: float, latency_ms: int) -> dict[str, Any]:
    """Log a successful buy; returns the structured event."""
    data = {
        "event": "buy_success",
        "correlation_id": correlation_id.value,
        "mint": mint,
        "signature": signature,
        "execution_price": execution_price,
        "latency_ms": latency_ms,
        "timestamp": _now_millis(),
    }
    return _emit(logging.INFO, correlation_id, "buy_success", "Buy completed successfully", data)


def log_buy_failure(correlation_id: CorrelationId, mint: str, error: str,
                    latency_ms: int, failure_count: int) -> dict[str, Any]:
    """Log a failed buy; returns the structured event."""
    data = {
        "event": "buy_failure",
        "correlation_id": correlation_id.value,
        "mint": mint,
        "error": error,
        "latency_ms": latency_ms,
        "consecutive_failures": failure_count,
        "timestamp": _now_millis(),
    }
    return _emit(logging.WARNING, correlation_id, "buy_failure", "Buy attempt failed", data)


def log_rpc_broadcast(correlation_id: CorrelationId, broadcast_mode: str,
                      endpoint_count: int, transaction_count: int) -> dict[str, Any]:
    """Log a transaction broadcast; returns the structured event."""
    data = {
        "event": "rpc_broadcast",
        "correlation_id": correlation_id.value,
        "broadcast_mode": broadcast_mode,
        "endpoint_count": endpoint_count,
        "transaction_count": transaction_count,
        "timestamp": _now_millis(),
    }
    return _emit(logging.INFO, correlation_id, "rpc_broadcast", "Broadcasting transactions", data)


def log_rpc_result(correlation_id: CorrelationId, endpoint: str, success: bool,
                   latency: timedelta | float, signature: str | None = None,
                   error: str | None = None) -> dict[str, Any]:
    """Log one endpoint's result; returns the structured event."""
    data = {
        "event": "rpc_result",
        "correlation_id": correlation_id.value,
        "endpoint": endpoint,
        "success": success,
        "latency_ms": _to_millis(latency),
        "signature": signature,
        "error": error,
        "timestamp": _now_millis(),
    }
    if success:
        return _emit(logging.INFO, correlation_id, "rpc_result", "RPC call succeeded", data)
    return _emit(logging.WARNING, correlation_id, "rpc_result", "RPC call failed", data)


Tags = Iterable[tuple[str, str]]


class MetricsCollector(ABC):
    """Sink for counter, gauge and histogram observations."""

    @abstractmethod
    def counter(self, name: str, value: int, tags: Tags = ()) -> None:
        """Record a counter increment."""

    @abstractmethod
    def gauge(self, name: str, value: float, tags: Tags = ()) -> None:
        """Record a gauge value."""

    @abstractmethod
    def histogram(self, name: str, value: float, tags: Tags = ()) -> None:
        """Record a histogram or timing value."""


class InMemoryMetrics(MetricsCollector):
    """Keeps every metric as a summed counter in memory; tags are ignored."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, value: int, tags: Tags = ()) -> None:
        if value < 0:
            raise ValueError("counter value must not be negative")
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def gauge(self, name: str, value: float, tags: Tags = ()) -> None:
        self.counter(name, _to_u64(value), tags)

    def histogram(self, name: str, value: float, tags: Tags = ()) -> None:
        self.counter(name, _to_u64(value), tags)

    def get_counter(self, name: str) -> int | None:
        """Current value of a counter, or None if it was never recorded."""
        with self._lock:
            return self._counters.get(name)