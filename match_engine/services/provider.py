"""
Embedding / generation provider adapter.

Talks to an Ollama-compatible HTTP API (``/api/embed`` and ``/api/generate``)
through one ``requests.Session``. Each attempt runs the blocking request in a
worker thread and races it against the configured timeout; the retry policy
decides what is attempted again.
"""
import asyncio
import math
import numbers
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar

import requests
from pydantic import BaseModel

from match_engine.helpers.parsing import parse_structured
from match_engine.models.settings import BatchSettings, EngineSettings, ProviderSettings
from match_engine.services.normalizer import preprocess_text
from match_engine.services.retry import RetryPolicy
from match_engine.utils.exceptions import (
    InvalidInputError,
    MalformedResponseError,
    MatchEngineError,
    ProviderError,
)
from match_engine.utils.logging_config import PerformanceMonitor, get_logger
from match_engine.utils.utils import preview

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

HEALTH_CHECK_TEXT = "This is a test for health check"

# calls slower than this share of the timeout are logged as slow
SLOW_CALL_FRACTION = 0.5


def classify_status(status_code: int) -> str:
    if status_code == 429:
        return "RATE_LIMIT_EXCEEDED"
    if status_code in (502, 503, 504):
        return "SERVICE_UNAVAILABLE"
    if status_code == 408:
        return "TIMEOUT"
    if status_code in (401, 403):
        return "INVALID_CREDENTIALS"
    if 400 <= status_code < 500:
        return "BAD_REQUEST"
    return "PROVIDER_ERROR"


class EmbeddingProvider:
    """Adapter around the remote embedding and text-generation model"""

    def __init__(
        self,
        settings: ProviderSettings,
        retry_policy: Optional[RetryPolicy] = None,
        batch: Optional[BatchSettings] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        self.retry_policy = retry_policy or RetryPolicy()
        self.batch = batch or BatchSettings()
        self.session = session or requests.Session()
        if settings.api_key:
            self.session.headers["Authorization"] = f"Bearer {settings.api_key}"
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "EmbeddingProvider":
        policy = RetryPolicy(
            max_retries=settings.retry.max_retries,
            base_delay=settings.retry.retry_delay,
        )
        return cls(settings.provider, retry_policy=policy, batch=settings.batch)

    @property
    def embedding_model(self) -> str:
        return self.settings.embedding_model

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.settings.base_url.rstrip('/')}{path}"
        try:
            resp = self.session.post(url, json=payload, timeout=self.settings.timeout)
        except requests.Timeout as e:
            raise ProviderError("Request timeout", code="TIMEOUT", cause=e) from e
        except requests.ConnectionError as e:
            raise ProviderError(f"Network error: {e}", code="NETWORK_ERROR", cause=e) from e
        except requests.RequestException as e:
            raise ProviderError(f"Network error: {e}", code="NETWORK_ERROR", cause=e) from e

        if resp.status_code >= 400:
            code = classify_status(resp.status_code)
            raise ProviderError(
                f"Provider returned HTTP {resp.status_code} ({code})",
                code=code,
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Provider returned non-JSON body for {path}",
                operation=path,
                preview=resp.text,
                cause=e,
            ) from e

    async def _call(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._post, path, payload),
                timeout=self.settings.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProviderError("Request timeout", code="TIMEOUT", cause=e) from e

    async def _execute(self, operation: str, path: str, payload: Dict[str, Any], input_text: str) -> Dict[str, Any]:
        try:
            with PerformanceMonitor(f"provider {operation}", logger=logger, threshold_ms=self.settings.timeout * 1000 * SLOW_CALL_FRACTION):
                return await self.retry_policy.execute(lambda: self._call(path, payload), name=operation)
        except MatchEngineError as e:
            e.details.setdefault("operation", operation)
            e.details["input_preview"] = preview(input_text)
            logger.error(f"Provider {operation} failed: {e.message}")
            raise

    # ------------------------------------------------------------------
    # embeddings
    # ------------------------------------------------------------------

    def _prepare(self, text: str, operation: str) -> str:
        if not isinstance(text, str) or not text.strip():
            raise InvalidInputError(f"Text is required for {operation}", field="text", value=text)
        clean = preprocess_text(text, self.settings.max_input_chars)
        if not clean:
            raise InvalidInputError(
                f"Text for {operation} is empty after cleaning", field="text", value=preview(text)
            )
        return clean

    def _validate_vector(self, data: Dict[str, Any], text: str) -> List[float]:
        vector = None
        if isinstance(data, dict):
            if isinstance(data.get("embeddings"), list) and data["embeddings"]:
                vector = data["embeddings"][0]
            else:
                vector = data.get("embedding")
        if (
            not isinstance(vector, list)
            or not vector
            or not all(
                isinstance(v, numbers.Real) and not isinstance(v, bool) and math.isfinite(v) for v in vector
            )
        ):
            raise MalformedResponseError(
                "Provider returned no usable embedding vector",
                operation="embed",
                preview=str(data),
                details={"input_preview": preview(text)},
            )
        expected = self.settings.dimension
        if expected and len(vector) != expected:
            raise MalformedResponseError(
                f"Embedding has {len(vector)} dimensions, expected {expected}",
                operation="embed",
                details={"input_preview": preview(text), "dimensions": len(vector)},
            )
        return [float(v) for v in vector]

    async def embed(self, text: str) -> List[float]:
        """Embed one text. Raises InvalidInputError, ProviderError,
        ProviderExhaustedError or MalformedResponseError."""
        clean = self._prepare(text, "embedding generation")
        logger.debug(f"Generating embedding for text: {preview(clean)}")
        data = await self._execute(
            "embed", "/api/embed", {"model": self.settings.embedding_model, "input": clean}, clean
        )
        vector = self._validate_vector(data, clean)
        logger.debug(f"Generated embedding with {len(vector)} dimensions")
        return vector

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed texts chunk by chunk; any failing item fails the batch."""
        if not texts:
            raise InvalidInputError("At least one text is required for batch embedding", field="texts")
        for text in texts:
            self._prepare(text, "batch embedding")

        logger.info(f"Generating embeddings for {len(texts)} texts")
        size = self.batch.chunk_size
        vectors: List[List[float]] = []
        for start in range(0, len(texts), size):
            chunk = texts[start:start + size]
            results = await asyncio.gather(*(self.embed(t) for t in chunk), return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException):
                    logger.error(f"Batch embedding failed in chunk starting at {start}: {result}")
                    raise result
            vectors.extend(results)
            if start + size < len(texts):
                await self._sleep(self.batch.chunk_delay)

        logger.info(f"Generated {len(vectors)} embeddings successfully")
        return vectors

    # ------------------------------------------------------------------
    # generation
    # ------------------------------------------------------------------

    async def generate_json(self, prompt: str, schema: Type[T], operation: str) -> T:
        """Run a JSON-mode generation and validate it against ``schema``."""
        if not prompt or not prompt.strip():
            raise InvalidInputError(f"Prompt is required for {operation}", field="prompt")
        payload = {
            "model": self.settings.llm_model,
            "prompt": prompt,
            "format": "json",
            "stream": False,
            "options": {
                "temperature": self.settings.temperature,
                "num_predict": self.settings.max_tokens,
            },
        }
        data = await self._execute(operation, "/api/generate", payload, prompt)
        text = data.get("response", "") if isinstance(data, dict) else ""
        return parse_structured(text or "", schema, operation)

    async def health_check(self) -> Dict[str, Any]:
        try:
            vector = await self.embed(HEALTH_CHECK_TEXT)
            return {
                "status": "healthy",
                "model": self.settings.embedding_model,
                "dimensions": len(vector),
                "timestamp": datetime.utcnow().isoformat(),
            }
        except MatchEngineError as e:
            logger.error(f"Provider health check failed: {e.message}")
            return {
                "status": "unhealthy",
                "error": e.message,
                "timestamp": datetime.utcnow().isoformat(),
            }
