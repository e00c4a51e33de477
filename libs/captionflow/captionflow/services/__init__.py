"""Reusable services."""

from captionflow.services.health import TranslationHealth, TranslationHealthMonitor

__all__ = ["TranslationHealth", "TranslationHealthMonitor"]
