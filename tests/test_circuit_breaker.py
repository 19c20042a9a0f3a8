import pytest

from tokenoracle.circuit_breaker import (
    CircuitBreaker,
    EndpointHealth,
    EndpointState,
)


def test_circuit_breaker_creation():
    cb = CircuitBreaker(5, 60, 50)
    assert cb.failure_threshold == 5
    assert cb.cooldown_seconds == 60.0
    assert cb.sample_size == 50


def test_negative_threshold_rejected():
    with pytest.raises(ValueError):
        CircuitBreaker(-1, 60, 50)


def test_endpoint_initially_healthy():
    cb = CircuitBreaker(3, 60, 50)
    assert cb.is_available("test-endpoint")
    assert cb.endpoint_state("test-endpoint") is EndpointState.HEALTHY


def test_unknown_endpoint_state_is_healthy_and_not_tracked():
    cb = CircuitBreaker(3, 60, 50)
    assert cb.endpoint_state("never-seen") is EndpointState.HEALTHY
    assert cb.health_stats() == {}


def test_record_success():
    cb = CircuitBreaker(3, 60, 50)
    cb.record_success("test-endpoint")
    assert cb.is_available("test-endpoint")
    assert cb.endpoint_state("test-endpoint") is EndpointState.HEALTHY


def test_record_failure_degradation():
    cb = CircuitBreaker(3, 60, 50)
    for _ in range(3):
        cb.record_failure("test-endpoint")
    assert cb.endpoint_state("test-endpoint") is EndpointState.DEGRADED
    assert cb.is_available("test-endpoint")


def test_cooldown_transition():
    cb = CircuitBreaker(2, 60, 50)
    for _ in range(5):
        cb.record_failure("test-endpoint")
    assert cb.endpoint_state("test-endpoint") is EndpointState.COOLING_DOWN
    assert not cb.is_available("test-endpoint")


def test_cooldown_expiry_moves_to_degraded():
    cb = CircuitBreaker(2, 0, 50)
    for _ in range(4):
        cb.record_failure("ep")
    assert cb.endpoint_state("ep") is EndpointState.COOLING_DOWN
    assert cb.is_available("ep")
    assert cb.endpoint_state("ep") is EndpointState.DEGRADED
    assert cb.health_stats()["ep"].consecutive_failures == 0


def test_low_success_rate_over_sample_triggers_cooldown():
    cb = CircuitBreaker(2, 60, 3)
    cb.record_failure("ep")
    cb.record_failure("ep")
    assert cb.endpoint_state("ep") is EndpointState.DEGRADED
    cb.record_success("ep")
    assert cb.endpoint_state("ep") is EndpointState.DEGRADED
    cb.record_failure("ep")
    assert cb.endpoint_state("ep") is EndpointState.COOLING_DOWN


def test_recovery_after_success():
    cb = CircuitBreaker(3, 60, 50)
    for _ in range(3):
        cb.record_failure("test-endpoint")
    assert cb.endpoint_state("test-endpoint") is EndpointState.DEGRADED
    for _ in range(10):
        cb.record_success("test-endpoint")
    assert cb.endpoint_state("test-endpoint") is EndpointState.HEALTHY


def test_get_healthy_endpoints():
    cb = CircuitBreaker(3, 60, 50)
    cb.record_success("healthy-1")
    cb.record_success("healthy-2")
    for _ in range(3):
        cb.record_failure("degraded")
    healthy = cb.healthy_endpoints()
    assert "healthy-1" in healthy
    assert "healthy-2" in healthy
    assert "degraded" not in healthy


def test_get_available_endpoints():
    cb = CircuitBreaker(3, 60, 50)
    cb.record_success("healthy")
    for _ in range(3):
        cb.record_failure("degraded")
    for _ in range(6):
        cb.record_failure("cooling-down")
    available = cb.available_endpoints()
    assert "healthy" in available
    assert "degraded" in available
    assert "cooling-down" not in available


def test_reset_all():
    cb = CircuitBreaker(2, 60, 50)
    for _ in range(3):
        cb.record_failure("endpoint-1")
        cb.record_failure("endpoint-2")
    cb.reset_all()
    assert cb.endpoint_state("endpoint-1") is EndpointState.HEALTHY
    assert cb.endpoint_state("endpoint-2") is EndpointState.HEALTHY
    stats = cb.health_stats()["endpoint-1"]
    assert stats.total_attempts == 0
    assert stats.success_rate == 1.0


def test_health_stats():
    cb = CircuitBreaker(3, 60, 50)
    cb.record_success("test")
    cb.record_failure("test")
    cb.record_success("test")
    test_stats = cb.health_stats()["test"]
    assert test_stats.consecutive_failures == 0
    assert test_stats.total_attempts == 3
    assert test_stats.successful_attempts == 2
    assert abs(test_stats.success_rate - 0.666) < 0.01


def test_endpoint_health_window_is_bounded():
    health = EndpointHealth()
    for _ in range(150):
        health.record_success()
    health.record_failure()
    assert health.total_attempts == 100
    assert health.successful_attempts == 99
    assert health.consecutive_failures == 1
    assert health.success_rate == pytest.approx(0.99)


def test_endpoint_health_success_clears_last_failure():
    health = EndpointHealth()
    health.record_failure()
    assert health.last_failure is not None
    health.record_success()
    assert health.last_failure is None
    assert health.consecutive_failures == 0