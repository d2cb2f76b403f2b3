import datetime as dt

from posterai.services.rate_limiter import DailyRateLimiter, WindowRateLimiter, next_midnight

TZ = dt.timezone(dt.timedelta(hours=9))


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_next_midnight_keeps_timezone() -> None:
    now = dt.datetime(2024, 3, 31, 23, 59, tzinfo=TZ)
    assert next_midnight(now) == dt.datetime(2024, 4, 1, 0, 0, tzinfo=TZ)


def test_daily_limiter_counts_until_limit() -> None:
    clock = FakeClock(dt.datetime(2024, 5, 1, 10, 0, tzinfo=TZ))
    limiter = DailyRateLimiter(clock=clock)

    first = limiter.check("user@example.com", 2)
    second = limiter.check("user@example.com", 2)
    third = limiter.check("user@example.com", 2)

    assert (first.allowed, first.remaining) == (True, 1)
    assert (second.allowed, second.remaining) == (True, 0)
    assert (third.allowed, third.remaining) == (False, 0)
    assert third.reset_at == dt.datetime(2024, 5, 2, tzinfo=TZ)


def test_daily_limiter_resets_after_midnight() -> None:
    clock = FakeClock(dt.datetime(2024, 5, 1, 23, 0, tzinfo=TZ))
    limiter = DailyRateLimiter(clock=clock)
    limiter.check("a", 1)
    assert not limiter.check("a", 1).allowed

    clock.now = dt.datetime(2024, 5, 2, 0, 0, 1, tzinfo=TZ)
    result = limiter.check("a", 1)
    assert result.allowed
    assert result.remaining == 0


def test_daily_limiter_usage_and_cleanup() -> None:
    clock = FakeClock(dt.datetime(2024, 5, 1, 8, 0, tzinfo=TZ))
    limiter = DailyRateLimiter(clock=clock)

    assert limiter.get_usage("a", 5)["used"] == 0
    limiter.check("a", 5)
    limiter.check("a", 5)
    limiter.check("b", 5)
    usage = limiter.get_usage("a", 5)
    assert usage["used"] == 2
    assert usage["remaining"] == 3

    assert limiter.cleanup() == 0
    clock.now = dt.datetime(2024, 5, 2, 0, 1, tzinfo=TZ)
    assert limiter.cleanup() == 2
    assert limiter.get_usage("a", 5)["used"] == 0


def test_keys_are_counted_independently() -> None:
    limiter = DailyRateLimiter(clock=FakeClock(dt.datetime(2024, 5, 1, 8, 0, tzinfo=TZ)))
    limiter.check("user:generate", 1)
    assert limiter.check("user:analyze", 1).allowed


def test_window_limiter_blocks_within_interval() -> None:
    clock = FakeClock(100.0)
    limiter = WindowRateLimiter(interval=60, capacity=10, clock=clock)

    assert limiter.check(2, "1.2.3.4").remaining == 1
    assert limiter.check(2, "1.2.3.4").success
    blocked = limiter.check(2, "1.2.3.4")
    assert not blocked.success
    assert blocked.remaining == 0

    clock.now = 160.0
    assert limiter.check(2, "1.2.3.4").success


def test_window_limiter_evicts_oldest_token() -> None:
    clock = FakeClock(0.0)
    limiter = WindowRateLimiter(interval=60, capacity=2, clock=clock)

    limiter.check(1, "a")
    limiter.check(1, "b")
    limiter.check(1, "c")

    # "a" was evicted, so it starts a fresh window
    assert limiter.check(1, "a").success
    assert not limiter.check(1, "c").success
