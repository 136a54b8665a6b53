"""
Prometheus metrics for the FeedBacks services.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info

# Policy checks are sub-millisecond; the default HTTP buckets would put them all in the first one.
POLICY_BUCKETS = (0.00005, 0.0001, 0.00025, 0.0005, 0.001, 0.0025, 0.005, 0.01)


class MetricsCollector:
    """Prometheus metrics for one service.

    Each collector owns its registry so that building several services in
    one process (tests, workers) never collides on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None, version: str = "1.0.0"):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        Info("service", "Service build information", registry=self.registry).info(
            {"service": service_name, "version": version}
        )

        self.http_requests = Counter(
            "http_requests_total", "HTTP requests served",
            ["method", "endpoint", "status_code"], registry=self.registry
        )
        self.http_latency = Histogram(
            "http_request_duration_seconds", "HTTP request latency",
            ["method", "endpoint"], registry=self.registry
        )
        self.health_checks = Counter(
            "health_check_total", "Health probes by reported status",
            ["status"], registry=self.registry
        )
        self.errors = Counter(
            "errors_total", "Errors returned to clients by error code",
            ["error_type", "service"], registry=self.registry
        )

        self.policy_decisions = Counter(
            "policy_decisions_total", "Access policy decisions",
            ["collection", "operation", "decision"], registry=self.registry
        )
        self.policy_latency = Histogram(
            "policy_evaluation_duration_seconds", "Access policy evaluation latency",
            buckets=POLICY_BUCKETS, registry=self.registry
        )

        self.ai_calls = Counter(
            "ai_calls_total", "Calls to the AI flow server by outcome",
            ["flow", "outcome"], registry=self.registry
        )
        self.active_subscriptions = Gauge(
            "active_subscriptions", "Open real-time query subscriptions",
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self.http_requests.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        self.http_latency.labels(method=method, endpoint=endpoint).observe(duration)

    def record_health_check(self, status: str):
        self.health_checks.labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        self.errors.labels(error_type=error_type, service=service or self.service_name).inc()

    def record_policy_decision(self, collection: str, operation: str, allowed: bool, duration: float):
        """Count one allow/deny decision and observe how long the rule walk took."""
        decision = "allow" if allowed else "deny"
        self.policy_decisions.labels(collection=collection, operation=operation, decision=decision).inc()
        self.policy_latency.observe(duration)

    def record_ai_call(self, flow: str, outcome: str):
        """``outcome`` is one of ``success``, ``error`` or ``rejected`` (breaker open)."""
        self.ai_calls.labels(flow=flow, outcome=outcome).inc()

    def set_active_subscriptions(self, count: int):
        self.active_subscriptions.set(count)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
