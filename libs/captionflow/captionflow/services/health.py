"""Translation transport health (passive via real calls + manual probe).

Design goals:
- Reading status never triggers a request (cached state only).
- Updates happen on real translation calls (success/error/latency).
- A connectivity probe records its outcome like any other call.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

ProviderHealthStatus = Literal["ok", "error", "unknown"]

_WINDOW_S = 60 * 60


def _ts() -> float:
    return time.time()


def _iso(ts: float | None) -> str | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _truncate_error(value: str, limit: int = 500) -> str:
    s = str(value or "").strip()
    if len(s) <= limit:
        return s
    return s[:limit].rstrip() + "..."


@dataclass
class _TransportState:
    last_success_ts: float | None = None
    last_error_ts: float | None = None
    last_error: str | None = None
    last_latency_ms: int | None = None
    last_probe_ts: float | None = None
    last_probe_ok: bool | None = None

    # Sliding window events
    success_events: deque[float] = field(default_factory=deque)
    error_events: deque[float] = field(default_factory=deque)


@dataclass(frozen=True)
class TranslationHealth:
    status: ProviderHealthStatus
    provider: str
    model: str
    last_success_at: str | None
    last_error_at: str | None
    last_error: str | None
    last_latency_ms: int | None
    last_probe_at: str | None
    last_probe_ok: bool | None
    success_count_1h: int
    error_count_1h: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "provider": self.provider,
            "model": self.model,
            "last_success_at": self.last_success_at,
            "last_error_at": self.last_error_at,
            "last_error": self.last_error,
            "last_latency_ms": self.last_latency_ms,
            "last_probe_at": self.last_probe_at,
            "last_probe_ok": self.last_probe_ok,
            "success_count_1h": self.success_count_1h,
            "error_count_1h": self.error_count_1h,
        }


class TranslationHealthMonitor:
    def __init__(
        self,
        *,
        provider: str = "unknown",
        model: str = "unknown",
        stale_after_s: float = 600.0,
    ) -> None:
        self._provider = str(provider or "unknown")
        self._model = str(model or "unknown")
        self._stale_after_s = float(stale_after_s)
        self._state = _TransportState()

    @staticmethod
    def _trim(events: deque[float], now_ts: float) -> None:
        cutoff = now_ts - _WINDOW_S
        while events and events[0] < cutoff:
            events.popleft()

    def report_success(self, *, latency_ms: int | None = None, at_ts: float | None = None) -> None:
        now_ts = _ts() if at_ts is None else float(at_ts)
        state = self._state
        state.last_success_ts = now_ts
        if latency_ms is not None:
            state.last_latency_ms = int(latency_ms)
        state.success_events.append(now_ts)
        self._trim(state.success_events, now_ts)

    def report_error(
        self,
        *,
        error: str,
        latency_ms: int | None = None,
        at_ts: float | None = None,
    ) -> None:
        now_ts = _ts() if at_ts is None else float(at_ts)
        state = self._state
        state.last_error_ts = now_ts
        state.last_error = _truncate_error(error)
        if latency_ms is not None:
            state.last_latency_ms = int(latency_ms)
        state.error_events.append(now_ts)
        self._trim(state.error_events, now_ts)

    def report_probe(self, *, ok: bool, latency_ms: int | None = None, at_ts: float | None = None) -> None:
        now_ts = _ts() if at_ts is None else float(at_ts)
        self._state.last_probe_ts = now_ts
        self._state.last_probe_ok = bool(ok)
        if ok:
            self.report_success(latency_ms=latency_ms, at_ts=now_ts)
        else:
            self.report_error(error="connectivity check failed", latency_ms=latency_ms, at_ts=now_ts)

    def _derive_status(self, now_ts: float) -> ProviderHealthStatus:
        last_success = self._state.last_success_ts
        last_error = self._state.last_error_ts
        if last_success is None and last_error is None:
            return "unknown"

        last = max((last_success or 0.0), (last_error or 0.0))
        if (now_ts - last) > self._stale_after_s:
            return "unknown"
        if last_error is None:
            return "ok"
        if last_success is None:
            return "error"
        return "ok" if last_success >= last_error else "error"

    def snapshot(self, *, now_ts: float | None = None) -> TranslationHealth:
        now = _ts() if now_ts is None else float(now_ts)
        state = self._state
        self._trim(state.success_events, now)
        self._trim(state.error_events, now)
        return TranslationHealth(
            status=self._derive_status(now),
            provider=self._provider,
            model=self._model,
            last_success_at=_iso(state.last_success_ts),
            last_error_at=_iso(state.last_error_ts),
            last_error=state.last_error,
            last_latency_ms=state.last_latency_ms,
            last_probe_at=_iso(state.last_probe_ts),
            last_probe_ok=state.last_probe_ok,
            success_count_1h=len(state.success_events),
            error_count_1h=len(state.error_events),
        )
