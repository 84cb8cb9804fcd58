"""
Shared metrics configuration for the StudyMate gateway.
"""

from typing import Dict, Any, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info, generate_latest

from shared.circuit_breaker import CircuitBreakerState

CIRCUIT_STATE_VALUES = {
    CircuitBreakerState.CLOSED: 0,
    CircuitBreakerState.HALF_OPEN: 1,
    CircuitBreakerState.OPEN: 2,
}


class MetricsCollector:
    """Centralized metrics collector for a service.

    Every collector owns its registry so several app instances can coexist in
    one process (tests build a fresh app per case).
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        self._setup_gateway_metrics()

    def _setup_gateway_metrics(self):
        """Set up gateway-specific metrics."""
        self._metrics["gateway_upstream_requests_total"] = Counter(
            "gateway_upstream_requests_total",
            "Total upstream calls by outcome",
            ["service", "operation", "outcome"],
            registry=self.registry
        )

        self._metrics["gateway_upstream_duration_seconds"] = Histogram(
            "gateway_upstream_duration_seconds",
            "Upstream call duration in seconds",
            ["service"],
            registry=self.registry
        )

        self._metrics["gateway_fallback_responses_total"] = Counter(
            "gateway_fallback_responses_total",
            "Total fallback responses served",
            ["service", "operation", "reason"],
            registry=self.registry
        )

        self._metrics["gateway_circuit_state"] = Gauge(
            "gateway_circuit_state",
            "Circuit state per service (0 closed, 1 half-open, 2 open)",
            ["service"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_upstream_call(self, service: str, operation: str, outcome: str, duration: float):
        """Record a completed (or failed) upstream call."""
        self._metrics["gateway_upstream_requests_total"].labels(
            service=service, operation=operation, outcome=outcome
        ).inc()
        self._metrics["gateway_upstream_duration_seconds"].labels(service=service).observe(duration)

    def record_fallback(self, service: str, operation: str, reason: str):
        """Record a fallback response."""
        self._metrics["gateway_fallback_responses_total"].labels(
            service=service, operation=operation, reason=reason
        ).inc()

    def set_circuit_state(self, service: str, state: CircuitBreakerState):
        """Publish a circuit state transition."""
        self._metrics["gateway_circuit_state"].labels(service=service).set(CIRCUIT_STATE_VALUES[state])

    def sample(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Read back a sample value from this collector's registry."""
        return self.registry.get_sample_value(name, labels or {})

    def export(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
