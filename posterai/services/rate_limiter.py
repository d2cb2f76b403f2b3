"""In-process rate limiting: per-day quotas and per-minute request windows.

Both limiters keep their state in memory, so counters reset when the
process restarts and are not shared between workers.
"""
from __future__ import annotations

import datetime as _dt
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

from posterai.config import get_settings


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: _dt.datetime


@dataclass
class _DailyRecord:
    count: int
    reset_at: _dt.datetime


def next_midnight(now: _dt.datetime) -> _dt.datetime:
    tomorrow = (now + _dt.timedelta(days=1)).date()
    return _dt.datetime.combine(tomorrow, _dt.time.min, tzinfo=now.tzinfo)


class DailyRateLimiter:
    """Counts calls per identifier until the next local midnight."""

    def __init__(
        self,
        timezone: Optional[str] = None,
        clock: Optional[Callable[[], _dt.datetime]] = None,
    ) -> None:
        self._tz = ZoneInfo(timezone) if timezone else None
        self._clock = clock or self._now
        self._records: Dict[str, _DailyRecord] = {}
        self._lock = threading.Lock()

    def _now(self) -> _dt.datetime:
        if self._tz is not None:
            return _dt.datetime.now(self._tz)
        return _dt.datetime.now().astimezone()

    def check(self, identifier: str, limit: int = 100) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or now >= record.reset_at:
                record = _DailyRecord(count=1, reset_at=next_midnight(now))
                self._records[identifier] = record
                return RateLimitResult(True, max(limit - 1, 0), record.reset_at)

            if record.count >= limit:
                return RateLimitResult(False, 0, record.reset_at)

            record.count += 1
            return RateLimitResult(True, max(limit - record.count, 0), record.reset_at)

    def get_usage(self, identifier: str, limit: int = 100) -> Dict[str, object]:
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or now >= record.reset_at:
                return {"used": 0, "remaining": limit, "reset_at": next_midnight(now)}
            return {
                "used": record.count,
                "remaining": max(limit - record.count, 0),
                "reset_at": record.reset_at,
            }

    def next_reset(self) -> _dt.datetime:
        return next_midnight(self._clock())

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, rec in self._records.items() if now >= rec.reset_at]
            for key in expired:
                del self._records[key]
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._records.clear()


@dataclass
class WindowResult:
    success: bool
    remaining: int
    limit: int


class WindowRateLimiter:
    """Fixed-window counter per token with LRU eviction beyond ``capacity``."""

    def __init__(
        self,
        *,
        interval: float = 60.0,
        capacity: int = 500,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.interval = interval
        self.capacity = capacity
        self._clock = clock or time.monotonic
        self._windows: "OrderedDict[str, tuple[float, int]]" = OrderedDict()
        self._lock = threading.Lock()

    def check(self, limit: int, token: str) -> WindowResult:
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(token, (now, 0))
            if now - started >= self.interval:
                started, count = now, 0
            count += 1
            self._windows[token] = (started, count)
            self._windows.move_to_end(token)
            while len(self._windows) > self.capacity:
                self._windows.popitem(last=False)

        if count > limit:
            return WindowResult(success=False, remaining=0, limit=limit)
        return WindowResult(success=True, remaining=limit - count, limit=limit)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


_settings = get_settings()

daily_limiter = DailyRateLimiter(timezone=_settings.quota.timezone)
admin_limiter = WindowRateLimiter(interval=60, capacity=_settings.quota.limiter_capacity)
api_limiter = WindowRateLimiter(interval=60, capacity=_settings.quota.limiter_capacity)


def get_daily_limiter() -> DailyRateLimiter:
    return daily_limiter


def get_admin_limiter() -> WindowRateLimiter:
    return admin_limiter


def get_api_limiter() -> WindowRateLimiter:
    return api_limiter
