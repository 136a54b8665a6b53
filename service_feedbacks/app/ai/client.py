"""
HTTP client for the AI flow server.

Flows are invoked as ``POST {base_url}/{flow}`` with ``{"data": input}`` and
answer ``{"result": output}``. Every failure, whether transport, HTTP
status, malformed body or an open circuit breaker, surfaces as
ServiceUnavailableError so callers can fail closed.
"""

from typing import Any, Dict, Optional

import httpx

from shared.errors import ServiceUnavailableError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.resilience import (
    CircuitBreaker, CircuitBreakerOpenException, RetryConfig, retry_on_exception
)


class FlowClient:
    """Calls one named flow on the AI flow server."""

    flow_name: str = ""

    def __init__(self,
                 base_url: str,
                 timeout: float = 20.0,
                 failure_threshold: int = 3,
                 recovery_timeout: float = 30.0,
                 max_attempts: int = 2,
                 metrics: Optional[MetricsCollector] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.metrics = metrics
        self._transport = transport
        self.logger = get_logger(f"feedbacks.ai.{self.flow_name}")
        self.circuit_breaker = CircuitBreaker(
            f"ai.{self.flow_name}",
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout
        )

        # Only transport failures are worth repeating; a bad answer stays bad.
        self._post_with_retry = retry_on_exception(
            (httpx.TransportError,),
            config=RetryConfig(max_attempts=max_attempts, base_delay=0.2, max_delay=2.0)
        )(self._post)

    @classmethod
    def from_config(cls, config, metrics: Optional[MetricsCollector] = None, **kwargs):
        return cls(
            config.ai_service_url,
            timeout=config.ai_request_timeout,
            failure_threshold=config.ai_failure_threshold,
            recovery_timeout=config.ai_recovery_timeout,
            max_attempts=config.ai_max_attempts,
            metrics=metrics,
            **kwargs
        )

    async def run_flow(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke the flow and return its ``result`` object."""
        try:
            result = await self.circuit_breaker.call(self._post_with_retry, data)
        except CircuitBreakerOpenException as e:
            self._record("rejected")
            raise ServiceUnavailableError(self.flow_name, "temporarily disabled after repeated failures") from e
        except httpx.HTTPStatusError as e:
            self._record("error")
            self.logger.error("Flow returned an error status", status_code=e.response.status_code)
            raise ServiceUnavailableError(
                self.flow_name,
                f"flow server answered {e.response.status_code}",
                details={"status_code": e.response.status_code}
            ) from e
        except httpx.HTTPError as e:
            self._record("error")
            self.logger.error("Flow server unreachable", error=str(e))
            raise ServiceUnavailableError(self.flow_name, "flow server unreachable") from e
        except ValueError as e:
            self._record("error")
            self.logger.error("Flow returned a malformed body", error=str(e))
            raise ServiceUnavailableError(self.flow_name, "malformed flow response") from e

        self._record("success")
        return result

    async def _post(self, data: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(f"{self.base_url}/{self.flow_name}", json={"data": data})
            response.raise_for_status()
            body = response.json()

        if not isinstance(body, dict) or not isinstance(body.get("result"), dict):
            raise ValueError(f"expected an object with a 'result' object, got {type(body).__name__}")
        return body["result"]

    def _record(self, outcome: str):
        if self.metrics is not None:
            self.metrics.record_ai_call(self.flow_name, outcome)
