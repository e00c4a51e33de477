"""Shared retry utilities for LLM providers."""

from __future__ import annotations

import logging
from collections.abc import Callable

from tenacity import RetryCallState

from captionflow.error_codes import ErrorCode
from captionflow.exceptions import TransportError


class RetryableTransportError(TransportError):
    """Transport error worth another attempt (429, 5xx, connection failure, timeout)."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        rate_limited: bool = False,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(provider, message, error_code=error_code)
        self.rate_limited = bool(rate_limited)


def log_retry(logger: logging.Logger) -> Callable[[RetryCallState], None]:
    def _log(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        wait_s = state.next_action.sleep if state.next_action else None
        logger.warning(
            "llm retrying (provider=%s, attempt=%s, wait_s=%s, error=%s)",
            getattr(exc, "provider", "llm"),
            state.attempt_number,
            wait_s,
            exc,
        )

    return _log
