"""
Unit tests for the AI flow clients.
"""

import httpx
import pytest
from prometheus_client import CollectorRegistry

from shared.errors import ServiceUnavailableError, ValidationError
from shared.metrics import MetricsCollector
from shared.resilience import CircuitBreakerState
from shared.test_helpers import MockFlowServer
from service_feedbacks.app.ai import ModerationClient, SummarizationClient

BASE_URL = "http://flows.test"


def ai_calls(metrics, flow, outcome):
    return metrics.registry.get_sample_value("ai_calls_total", {"flow": flow, "outcome": outcome}) or 0.0


class TestModerationClient:
    """Test cases for ModerationClient."""

    @pytest.fixture
    def flow_server(self):
        return MockFlowServer()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("feedbacks-test", registry=CollectorRegistry())

    @pytest.fixture
    def client(self, flow_server, metrics):
        """Create ModerationClient against the mock flow server."""
        return ModerationClient(BASE_URL, metrics=metrics, transport=flow_server.transport())

    @pytest.mark.asyncio
    async def test_appropriate_text(self, client, flow_server):
        result = await client.moderate("Buenos días a todos")

        assert result.is_appropriate
        assert result.moderated_text == "Buenos días a todos"
        assert flow_server.calls == [{"flow": "moderateChatFlow", "data": {"text": "Buenos días a todos"}}]

    @pytest.mark.asyncio
    async def test_offending_words_masked(self, client, metrics):
        result = await client.moderate("eres un tonto")

        assert not result.is_appropriate
        assert result.moderated_text == "eres un ****"
        assert ai_calls(metrics, "moderateChatFlow", "success") == 1.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n"])
    async def test_blank_text_skips_flow(self, client, flow_server, metrics, text):
        result = await client.moderate(text)

        assert result.is_appropriate
        assert result.moderated_text == ""
        assert flow_server.calls == []
        assert ai_calls(metrics, "moderateChatFlow", "skipped") == 1.0

    @pytest.mark.asyncio
    async def test_error_status(self, metrics):
        client = ModerationClient(BASE_URL, metrics=metrics, transport=MockFlowServer(fail_with=500).transport())

        with pytest.raises(ServiceUnavailableError) as exc_info:
            await client.moderate("hola")

        assert exc_info.value.status_code == 503
        assert exc_info.value.details == {"status_code": 500}
        assert ai_calls(metrics, "moderateChatFlow", "error") == 1.0

    @pytest.mark.asyncio
    async def test_malformed_result(self):
        def handler(request):
            return httpx.Response(200, json={"result": {"verdict": "fine"}})

        client = ModerationClient(BASE_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(ServiceUnavailableError):
            await client.moderate("hola")

    @pytest.mark.asyncio
    async def test_body_without_result(self):
        def handler(request):
            return httpx.Response(200, json=["not", "an", "object"])

        client = ModerationClient(BASE_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(ServiceUnavailableError):
            await client.moderate("hola")

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"result": {"isAppropriate": True, "moderatedText": "hola"}})

        client = ModerationClient(BASE_URL, max_attempts=2, transport=httpx.MockTransport(handler))

        result = await client.moderate("hola")

        assert result.is_appropriate
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_unreachable_server(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = ModerationClient(BASE_URL, max_attempts=1, transport=httpx.MockTransport(handler))

        with pytest.raises(ServiceUnavailableError):
            await client.moderate("hola")

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(self, metrics):
        flow_server = MockFlowServer(fail_with=503)
        client = ModerationClient(
            BASE_URL,
            failure_threshold=2,
            recovery_timeout=60,
            metrics=metrics,
            transport=flow_server.transport()
        )

        for _ in range(2):
            with pytest.raises(ServiceUnavailableError):
                await client.moderate("hola")

        assert client.circuit_breaker.state == CircuitBreakerState.OPEN

        with pytest.raises(ServiceUnavailableError):
            await client.moderate("hola")

        assert len(flow_server.calls) == 2
        assert ai_calls(metrics, "moderateChatFlow", "rejected") == 1.0


class TestSummarizationClient:
    """Test cases for SummarizationClient."""

    @pytest.fixture
    def flow_server(self):
        return MockFlowServer()

    @pytest.fixture
    def client(self, flow_server):
        return SummarizationClient(BASE_URL + "/", transport=flow_server.transport())

    @pytest.mark.asyncio
    async def test_summary(self, client, flow_server):
        summary = await client.summarize("La app es rápida. Pero el chat tarda en cargar.")

        assert summary == "La app es rápida"
        assert flow_server.calls_to("summarizeFeedbackFlow") == [
            {"flow": "summarizeFeedbackFlow", "data": {"feedbackText": "La app es rápida. Pero el chat tarda en cargar."}}
        ]

    @pytest.mark.asyncio
    async def test_blank_feedback(self, client, flow_server):
        with pytest.raises(ValidationError):
            await client.summarize("   ")

        assert flow_server.calls == []

    @pytest.mark.asyncio
    async def test_missing_summary(self):
        def handler(request):
            return httpx.Response(200, json={"result": {"text": "no summary key"}})

        client = SummarizationClient(BASE_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(ServiceUnavailableError):
            await client.summarize("Todo bien.")

    def test_from_config(self):
        from shared.config import get_config

        config = get_config("feedbacks", 8020, ai_service_url="http://ai.internal:3400/", ai_request_timeout=5)
        client = SummarizationClient.from_config(config)

        assert client.base_url == "http://ai.internal:3400"
        assert client.timeout == 5
        assert client.flow_name == "summarizeFeedbackFlow"
