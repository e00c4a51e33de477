"""OpenAI-compatible LLM Provider implementation."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from captionflow.error_codes import ErrorCode
from captionflow.exceptions import MalformedResponseError, TransportError
from captionflow.providers.llm._retry import RetryableTransportError, log_retry
from captionflow.providers.llm.base import LLMProvider, Message

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


def _format_http_error(response: httpx.Response, body: bytes | None) -> str:
    status = response.status_code
    reason = response.reason_phrase
    detail = ""
    if body:
        detail = body.decode("utf-8", errors="replace").strip()
    if detail:
        if len(detail) > 2000:
            detail = detail[:2000] + "…"
        return f"HTTP {status} {reason}: {detail}"
    return f"HTTP {status} {reason}"


def _extract_content(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice0 = choices[0]
    if not isinstance(choice0, dict):
        return None
    message = choice0.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str):
        return None
    return content.strip() or None


class OpenAICompatProvider(LLMProvider):
    """OpenAI-compatible chat completions API (works with OpenAI, vLLM, etc.)."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        base_url: str | None = None,
        provider: str = "openai",
        *,
        timeout: float = 8.0,
        check_timeout: float = 5.0,
        max_retries: int = 0,
        retry_delay_s: float = 0.0,
    ) -> None:
        self.provider = provider
        resolved = str(base_url or "").strip()
        self.base_url = (resolved or DEFAULT_OPENAI_BASE_URL).rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = float(timeout)
        self.check_timeout = float(check_timeout)
        self.max_retries = max(0, int(max_retries))
        self.retry_delay_s = max(0.0, float(retry_delay_s))
        self._client: httpx.AsyncClient | None = None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _chat_completions(
        self,
        messages: list[Message],
        temperature: float,
        max_tokens: int | None,
    ) -> str:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        client = await self._get_client()
        started = time.perf_counter()
        try:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=payload,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            logger.warning("llm request timeout: %s", exc)
            raise RetryableTransportError(
                self.provider,
                str(exc) or "request timed out",
                error_code=ErrorCode.TRANSPORT_TIMEOUT,
            ) from exc
        except httpx.TransportError as exc:
            logger.warning("llm request failed: %s", exc)
            raise RetryableTransportError(
                self.provider,
                str(exc) or type(exc).__name__,
                error_code=ErrorCode.TRANSPORT_FAILED,
            ) from exc

        if response.status_code >= 400:
            message = _format_http_error(response, response.content)
            if response.status_code == 429 or response.status_code >= 500:
                raise RetryableTransportError(
                    self.provider,
                    message,
                    rate_limited=response.status_code == 429,
                    error_code=ErrorCode.TRANSPORT_FAILED,
                )
            raise TransportError(self.provider, message, error_code=ErrorCode.TRANSPORT_FAILED)

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                self.provider,
                f"response is not JSON: {exc}",
                error_code=ErrorCode.MALFORMED_RESPONSE,
            ) from exc

        content = _extract_content(data)
        if content is None:
            raise MalformedResponseError(
                self.provider,
                "invalid response structure (missing choices[0].message.content)",
                error_code=ErrorCode.MALFORMED_RESPONSE,
            )

        latency_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "llm call (provider=%s, model=%s, latency_ms=%s)",
            self.provider,
            self.model,
            latency_ms,
        )
        return content

    async def complete(
        self,
        messages: list[Message],
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> str:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(RetryableTransportError),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_fixed(self.retry_delay_s),
            before_sleep=log_retry(logger),
            reraise=True,
        ):
            with attempt:
                return await self._chat_completions(messages, temperature, max_tokens)
        raise TransportError(self.provider, "no attempt was made", error_code=ErrorCode.UNKNOWN)

    async def check_connection(self) -> bool:
        client = await self._get_client()
        try:
            response = await client.get(
                f"{self.base_url}/models",
                headers=self._headers(),
                timeout=self.check_timeout,
            )
        except httpx.HTTPError as exc:
            logger.debug("api check error: %s", exc)
            return False
        if response.status_code >= 400:
            logger.debug("api check failed: %s", _format_http_error(response, response.content))
            return False
        return True

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OpenAICompatProvider":
        await self._get_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object | None,
    ) -> None:
        await self.close()
