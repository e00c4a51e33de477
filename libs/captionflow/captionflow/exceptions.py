"""CaptionFlow exception hierarchy."""

from __future__ import annotations

from captionflow.error_codes import ErrorCode


class CaptionFlowError(Exception):
    """Base error for CaptionFlow."""


class ConfigurationError(CaptionFlowError):
    """Raised when configuration or inputs are invalid."""


class ProviderError(CaptionFlowError):
    """Raised when an external provider call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.error_code = error_code


class TransportError(ProviderError):
    """Network failure, timeout or non-2xx status from the translation API."""


class MalformedResponseError(ProviderError):
    """The translation API answered with an unexpected payload shape."""


class LoopDetected(CaptionFlowError):
    """The same translation came back too many times in a row for one speaker.

    Not a failure: the pipeline catches it and shows a cooldown placeholder.
    """

    def __init__(self, speaker_id: str, translation: str, repeats: int) -> None:
        super().__init__(f"translation loop for speaker {speaker_id!r} ({repeats} repeats)")
        self.speaker_id = speaker_id
        self.translation = translation
        self.repeats = repeats
        self.error_code = ErrorCode.TRANSLATION_LOOP
