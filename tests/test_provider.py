import time

import pytest
import requests
from unittest.mock import AsyncMock, MagicMock

from match_engine.models.llm_schemas import ATSAnalysisPayload
from match_engine.models.settings import BatchSettings, ProviderSettings
from match_engine.services import provider as provider_module
from match_engine.services.provider import EmbeddingProvider, classify_status
from match_engine.services.retry import RetryPolicy
from match_engine.utils.exceptions import (
    InvalidInputError,
    MalformedResponseError,
    ProviderError,
    ProviderExhaustedError,
)


def make_provider(dimension=None, max_retries=3, chunk_size=5, session=None, timeout=5):
    sleep = AsyncMock()
    provider = EmbeddingProvider(
        ProviderSettings(dimension=dimension, timeout=timeout),
        retry_policy=RetryPolicy(max_retries=max_retries, base_delay=0.01, sleep=sleep),
        batch=BatchSettings(chunk_size=chunk_size, chunk_delay=0.5),
        session=session or MagicMock(spec=requests.Session),
        sleep=sleep,
    )
    return provider, sleep


def http_response(status=200, body=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


class TestClassifyStatus:

    @pytest.mark.parametrize("status,code", [
        (429, "RATE_LIMIT_EXCEEDED"),
        (502, "SERVICE_UNAVAILABLE"),
        (503, "SERVICE_UNAVAILABLE"),
        (504, "SERVICE_UNAVAILABLE"),
        (401, "INVALID_CREDENTIALS"),
        (404, "BAD_REQUEST"),
        (500, "PROVIDER_ERROR"),
    ])
    def test_codes(self, status, code):
        assert classify_status(status) == code


class TestTransport:
    """HTTP failures are classified before the retry policy sees them"""

    def test_http_error_is_classified(self):
        provider, _ = make_provider()
        provider.session.post.return_value = http_response(status=429)
        with pytest.raises(ProviderError) as exc_info:
            provider._post("/api/embed", {})
        assert exc_info.value.code == "RATE_LIMIT_EXCEEDED"
        assert exc_info.value.status_code == 429

    def test_timeout_is_retryable_code(self):
        provider, _ = make_provider()
        provider.session.post.side_effect = requests.Timeout("slow")
        with pytest.raises(ProviderError) as exc_info:
            provider._post("/api/embed", {})
        assert exc_info.value.code == "TIMEOUT"

    def test_connection_error(self):
        provider, _ = make_provider()
        provider.session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ProviderError) as exc_info:
            provider._post("/api/embed", {})
        assert exc_info.value.code == "NETWORK_ERROR"

    def test_non_json_body(self):
        provider, _ = make_provider()
        provider.session.post.return_value = http_response(body=ValueError("no json"), text="<html>")
        with pytest.raises(MalformedResponseError):
            provider._post("/api/embed", {})


class TestEmbed:

    @pytest.mark.asyncio
    async def test_embed_returns_vector(self):
        provider, _ = make_provider()
        provider._post = MagicMock(return_value={"embeddings": [[0.1, 0.2, 0.3]]})
        assert await provider.embed("Python developer") == [0.1, 0.2, 0.3]
        path, payload = provider._post.call_args.args
        assert path == "/api/embed"
        assert payload["input"] == "Python developer"

    @pytest.mark.asyncio
    async def test_legacy_embedding_key(self):
        provider, _ = make_provider()
        provider._post = MagicMock(return_value={"embedding": [1, 2]})
        assert await provider.embed("text") == [1.0, 2.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_empty_text_makes_no_call(self, text):
        provider, _ = make_provider()
        provider._post = MagicMock()
        with pytest.raises(InvalidInputError):
            await provider.embed(text)
        provider._post.assert_not_called()

    @pytest.mark.asyncio
    async def test_text_is_preprocessed(self):
        provider, _ = make_provider()
        provider._post = MagicMock(return_value={"embeddings": [[1.0]]})
        await provider.embed("  C++   and C#   <script>  " + "x" * 9000)
        sent = provider._post.call_args.args[1]["input"]
        assert sent.startswith("C++ and C# script")
        assert len(sent) == 8000

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        provider, sleep = make_provider(max_retries=3)
        provider._post = MagicMock(side_effect=[
            ProviderError("limited", code="RATE_LIMIT_EXCEEDED"),
            ProviderError("limited", code="RATE_LIMIT_EXCEEDED"),
            {"embeddings": [[0.5, 0.5]]},
        ])
        assert await provider.embed("retry me") == [0.5, 0.5]
        assert provider._post.call_count == 3

    @pytest.mark.asyncio
    async def test_exhausted_carries_preview(self):
        provider, _ = make_provider(max_retries=3)
        provider._post = MagicMock(side_effect=ProviderError("down", code="SERVICE_UNAVAILABLE"))
        with pytest.raises(ProviderExhaustedError) as exc_info:
            await provider.embed("a resume summary")
        assert provider._post.call_count == 4
        assert exc_info.value.details["input_preview"] == "a resume summary"

    @pytest.mark.asyncio
    async def test_slow_call_times_out_and_is_retried(self):
        provider, sleep = make_provider(max_retries=1, timeout=0.05)

        def hang(path, payload):
            time.sleep(0.3)
            return {"embeddings": [[1.0]]}

        provider._post = MagicMock(side_effect=hang)
        with pytest.raises(ProviderExhaustedError) as exc_info:
            await provider.embed("slow text")
        assert provider._post.call_count == 2
        assert exc_info.value.attempts == 2
        assert isinstance(exc_info.value.cause, ProviderError)
        assert exc_info.value.cause.code == "TIMEOUT"
        sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_slow_call_recovers_on_retry(self):
        provider, _ = make_provider(max_retries=2, timeout=0.05)
        calls = []

        def first_hangs(path, payload):
            calls.append(path)
            if len(calls) == 1:
                time.sleep(0.3)
            return {"embeddings": [[0.5, 0.5]]}

        provider._post = MagicMock(side_effect=first_hangs)
        assert await provider.embed("text") == [0.5, 0.5]
        assert provider._post.call_count == 2

    @pytest.mark.asyncio
    async def test_slow_threshold_is_share_of_timeout(self, monkeypatch):
        monitor = MagicMock()
        monkeypatch.setattr(provider_module, "PerformanceMonitor", monitor)
        provider, _ = make_provider(timeout=8)
        provider._post = MagicMock(return_value={"embeddings": [[1.0]]})
        await provider.embed("text")
        assert monitor.call_args.kwargs["threshold_ms"] == 8 * 1000 * provider_module.SLOW_CALL_FRACTION

    @pytest.mark.asyncio
    async def test_non_retryable_status(self):
        provider, _ = make_provider(max_retries=3)
        provider._post = MagicMock(side_effect=ProviderError("bad", code="BAD_REQUEST", status_code=400))
        with pytest.raises(ProviderError):
            await provider.embed("text")
        assert provider._post.call_count == 1

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_malformed(self):
        provider, _ = make_provider(dimension=4)
        provider._post = MagicMock(return_value={"embeddings": [[0.1, 0.2, 0.3]]})
        with pytest.raises(MalformedResponseError):
            await provider.embed("text")
        assert provider._post.call_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {},
        {"embeddings": []},
        {"embedding": ["a", "b"]},
        {"embedding": []},
        {"embeddings": [[float("nan"), 1.0, 0.0]]},
        {"embedding": [0.1, float("inf"), 0.3]},
    ])
    async def test_unusable_vector(self, body):
        provider, _ = make_provider()
        provider._post = MagicMock(return_value=body)
        with pytest.raises(MalformedResponseError):
            await provider.embed("text")


class TestEmbedBatch:

    @pytest.mark.asyncio
    async def test_chunks_in_order_with_delay(self):
        provider, sleep = make_provider(chunk_size=5)
        provider.embed = AsyncMock(side_effect=lambda t: [float(t.split()[-1])])
        texts = [f"text {i}" for i in range(12)]
        vectors = await provider.embed_batch(texts)
        assert vectors == [[float(i)] for i in range(12)]
        # 3 chunks, a pause between each pair
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_one_failure_fails_batch(self):
        provider, _ = make_provider()

        async def embed(text):
            if text == "bad":
                raise ProviderExhaustedError("gave up", attempts=4)
            return [1.0]

        provider.embed = AsyncMock(side_effect=embed)
        with pytest.raises(ProviderExhaustedError):
            await provider.embed_batch(["good", "bad", "good"])

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        provider, _ = make_provider()
        with pytest.raises(InvalidInputError):
            await provider.embed_batch([])

    @pytest.mark.asyncio
    async def test_blank_item_rejected_before_any_call(self):
        provider, _ = make_provider()
        provider.embed = AsyncMock()
        with pytest.raises(InvalidInputError):
            await provider.embed_batch(["fine", "  "])
        provider.embed.assert_not_awaited()


class TestGenerateJson:

    @pytest.mark.asyncio
    async def test_parses_schema(self):
        provider, _ = make_provider()
        provider._post = MagicMock(return_value={"response": '{"score": 82, "overallFeedback": "ok"}'})
        result = await provider.generate_json("prompt", ATSAnalysisPayload, "ATS analysis")
        assert result.score == 82
        payload = provider._post.call_args.args[1]
        assert payload["format"] == "json"
        assert payload["stream"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "Sure! Here is the JSON: {\"score\": 80}", '{"score": 140}', "[1, 2]"])
    async def test_malformed_output_not_retried(self, text):
        provider, _ = make_provider()
        provider._post = MagicMock(return_value={"response": text})
        with pytest.raises(MalformedResponseError):
            await provider.generate_json("prompt", ATSAnalysisPayload, "ATS analysis")
        assert provider._post.call_count == 1


class TestHealthCheck:

    @pytest.mark.asyncio
    async def test_healthy(self):
        provider, _ = make_provider()
        provider._post = MagicMock(return_value={"embeddings": [[0.1, 0.2]]})
        health = await provider.health_check()
        assert health["status"] == "healthy"
        assert health["dimensions"] == 2

    @pytest.mark.asyncio
    async def test_unhealthy(self):
        provider, _ = make_provider(max_retries=0)
        provider._post = MagicMock(side_effect=ProviderError("down", code="SERVICE_UNAVAILABLE"))
        health = await provider.health_check()
        assert health["status"] == "unhealthy"
