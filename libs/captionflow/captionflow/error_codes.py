"""Canonical error codes attached to provider failures."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"

    TRANSPORT_FAILED = "TRANSPORT_FAILED"
    TRANSPORT_TIMEOUT = "TRANSPORT_TIMEOUT"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    TRANSLATION_LOOP = "TRANSLATION_LOOP"
