"""Speech segmentation: continuation detection, history and the utterance tracker."""

from captionflow.segmentation.continuation import ContinuationResult, classify
from captionflow.segmentation.history import UtteranceHistory
from captionflow.segmentation.tracker import UtteranceTracker

__all__ = [
    "ContinuationResult",
    "UtteranceHistory",
    "UtteranceTracker",
    "classify",
]
