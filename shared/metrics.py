"""
Prometheus metrics for the auth service.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info, generate_latest

from shared.errors import AccessLayerException

SUCCESS = "success"


class MetricsCollector:
    """Owns the collectors of one service instance.

    Each collector registers into its own ``CollectorRegistry`` so several
    service instances (tests, workers) never collide on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({"service": self.service_name, "version": "1.0.0"})

        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "HTTP requests by route and status",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )
        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency",
            ["method", "endpoint"],
            registry=self.registry
        )
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Health checks by reported status",
            ["status"],
            registry=self.registry
        )
        self._metrics["dependency_up"] = Gauge(
            "dependency_up",
            "1 when a dependency answered the last health check, else 0",
            ["dependency"],
            registry=self.registry
        )
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Errors returned to callers by error code",
            ["error_type", "service"],
            registry=self.registry
        )

        if self.service_name == "auth":
            self._setup_auth_metrics()

    def _setup_auth_metrics(self):
        self._metrics["auth_operations_total"] = Counter(
            "auth_operations_total",
            "Auth operations by outcome (success or error code)",
            ["operation", "outcome"],
            registry=self.registry
        )
        self._metrics["auth_operation_duration_seconds"] = Histogram(
            "auth_operation_duration_seconds",
            "Auth operation latency, including password hashing and store calls",
            ["operation"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        return self._metrics.get(name)

    def render(self) -> bytes:
        """Render this collector's registry in Prometheus exposition format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()
        self._metrics["http_request_duration_seconds"].labels(method=method, endpoint=endpoint).observe(duration)

    def record_health_check(self, status: str, dependencies: Optional[Dict[str, str]] = None):
        self._metrics["health_check_total"].labels(status=status).inc()
        for dependency, state in (dependencies or {}).items():
            self._metrics["dependency_up"].labels(dependency=dependency).set(1 if state == "ok" else 0)

    def record_error(self, error_type: str, service: Optional[str] = None):
        self._metrics["errors_total"].labels(error_type=error_type, service=service or self.service_name).inc()

    def record_auth_operation(self, operation: str, outcome: str, duration: Optional[float] = None):
        """Record the outcome of an auth operation; a no-op for other services."""
        if "auth_operations_total" not in self._metrics:
            return
        self._metrics["auth_operations_total"].labels(operation=operation, outcome=outcome).inc()
        if duration is not None:
            self._metrics["auth_operation_duration_seconds"].labels(operation=operation).observe(duration)

    @contextmanager
    def time_auth_operation(self, operation: str):
        """Time the enclosed block and record its outcome.

        Typed service errors are recorded under their error code and
        re-raised; anything else propagates unrecorded.
        """
        start_time = time.time()
        try:
            yield
        except AccessLayerException as e:
            self.record_auth_operation(operation, e.code, time.time() - start_time)
            raise
        self.record_auth_operation(operation, SUCCESS, time.time() - start_time)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
