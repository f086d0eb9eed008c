"""Time utility helpers and injectable clocks."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import Protocol


def now_utc() -> datetime:
    """Return current timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def parse_iso_datetime(value: str | datetime | None, default: datetime | None = None) -> datetime:
    """Parse an ISO timestamp (``Z`` suffix allowed) with an optional fallback."""
    if not value:
        if default is None:
            raise ValueError("Missing required datetime value")
        return default
    if isinstance(value, datetime):
        return ensure_aware(value)
    normalized = value.replace("Z", "+00:00")
    return ensure_aware(datetime.fromisoformat(normalized))


class Clock(Protocol):
    """Source of the current wall-clock time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Clock backed by the host's UTC time."""

    def now(self) -> datetime:
        return now_utc()


class FixedClock:
    """Manually driven clock for deterministic timelines."""

    def __init__(self, start: datetime) -> None:
        self._current = ensure_aware(start)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._current

    def set(self, value: datetime) -> None:
        with self._lock:
            self._current = ensure_aware(value)

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        """Move the clock forward by ``delta`` or ``timedelta(**kwargs)``."""
        step = delta if delta is not None else timedelta(**kwargs)
        with self._lock:
            self._current = self._current + step
            return self._current
