"""LLM Provider base class."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class Message:
    """A chat message."""

    role: str  # "system" | "user" | "assistant"
    content: str


class LLMProvider(ABC):
    """Abstract base class for translation transports backed by a chat LLM."""

    provider: str = "llm"
    model: str = ""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a completion.

        Args:
            messages: List of chat messages.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate.

        Returns:
            Generated text.

        Raises:
            TransportError: network failure, timeout or non-2xx status.
            MalformedResponseError: unexpected response payload.
        """
        ...

    @abstractmethod
    async def check_connection(self) -> bool:
        """Return True if the API is reachable with the configured credentials. Never raises."""
        ...

    async def close(self) -> None:
        """Close any underlying resources (optional)."""
        return None
