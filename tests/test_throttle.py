import json

import pytest

from talkhint.errors import RateLimitExceeded
from talkhint.messaging.throttle import MessageDeduper, RateLimiter, safe_stringify


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


# safe_stringify


def test_safe_stringify_sorts_keys():
    assert safe_stringify({"b": 2, "a": 1}) == '{"a": 1, "b": 2}'


def test_safe_stringify_replaces_circular_reference():
    data = {"a": 1}
    data["self"] = data
    assert json.loads(safe_stringify(data)) == {"a": 1, "self": "[Circular]"}


def test_safe_stringify_keeps_shared_references():
    shared = [1, 2]
    assert json.loads(safe_stringify({"p": shared, "q": shared})) == {"p": [1, 2], "q": [1, 2]}


def test_safe_stringify_falls_back_to_repr():
    assert json.loads(safe_stringify({"s": {1}})) == {"s": "{1}"}


# MessageDeduper


def test_duplicate_key_suppressed():
    deduper = MessageDeduper(capacity=10)
    key = MessageDeduper.make_key("https://lovable.dev", {"type": "PING"})
    assert deduper.should_process(key)
    assert not deduper.should_process(key)
    assert key in deduper


def test_key_ignores_field_order():
    first = MessageDeduper.make_key("o", {"a": 1, "b": 2})
    second = MessageDeduper.make_key("o", {"b": 2, "a": 1})
    assert first == second


def test_key_includes_origin():
    assert MessageDeduper.make_key("a", "x") != MessageDeduper.make_key("b", "x")
    assert MessageDeduper.make_key(None, "x") == "|\"x\""


def test_eviction_drops_oldest_quarter():
    deduper = MessageDeduper(capacity=200)
    for i in range(201):
        assert deduper.should_process(f"k{i}")
    assert len(deduper) == 151
    assert "k0" not in deduper
    assert "k49" not in deduper
    assert "k50" in deduper
    assert "k200" in deduper


def test_evicted_key_processed_again():
    deduper = MessageDeduper(capacity=4)
    for key in ("a", "b", "c", "d", "e"):
        deduper.should_process(key)
    assert len(deduper) == 4
    assert deduper.should_process("a")


def test_clear():
    deduper = MessageDeduper(capacity=4)
    deduper.should_process("a")
    deduper.clear()
    assert len(deduper) == 0
    assert deduper.should_process("a")


def test_invalid_capacity():
    with pytest.raises(ValueError):
        MessageDeduper(capacity=0)


# RateLimiter


def test_rate_limit_trips_on_overflow():
    clock = FakeClock()
    limiter = RateLimiter(max_per_window=3, clock=clock)
    for _ in range(3):
        limiter.check()

    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.check()
    assert exc_info.value.count == 4
    assert exc_info.value.limit == 3


def test_rate_limit_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(max_per_window=2, clock=clock)
    limiter.check()
    clock.advance(0.5)
    limiter.check()
    assert not limiter.should_send()

    clock.advance(1.0)
    assert limiter.should_send()
    assert limiter.current_count == 1


def test_rate_limit_reset():
    limiter = RateLimiter(max_per_window=1, clock=FakeClock())
    limiter.check()
    limiter.reset()
    assert limiter.current_count == 0
    assert limiter.should_send()


def test_rate_limit_requires_positive_cap():
    with pytest.raises(ValueError):
        RateLimiter(max_per_window=0)
