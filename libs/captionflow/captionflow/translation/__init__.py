"""Translation request pipeline."""

from captionflow.translation.cache import TranslationCache
from captionflow.translation.loop_guard import LoopGuard
from captionflow.translation.pipeline import TranslationPipeline

__all__ = ["LoopGuard", "TranslationCache", "TranslationPipeline"]
