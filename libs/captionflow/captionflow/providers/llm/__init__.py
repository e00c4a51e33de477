"""LLM Provider implementations."""

from __future__ import annotations

from captionflow.providers.llm.base import LLMProvider, Message

__all__ = ["LLMProvider", "Message"]
