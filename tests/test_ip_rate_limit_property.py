"""
Property-based tests for the per-address rate limiter.

**Property 1: Within one window the Nth request is allowed iff N <= limit**
**Property 2: A window that has reached its expiry starts over**
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import FakeClock
from outbound_ops.services.ip_rate_limit import enforce_ip_rate_limit, get_client_ip
from outbound_ops.services.server_cache import ServerCache

addresses = st.ip_addresses(v=4).map(str)


@settings(max_examples=100)
@given(ip=addresses, limit=st.integers(min_value=1, max_value=20), total=st.integers(min_value=1, max_value=40))
def test_nth_request_allowed_iff_within_limit(ip, limit, total):
    cache = ServerCache(clock=FakeClock())
    headers = {"x-forwarded-for": ip}

    statuses = [
        enforce_ip_rate_limit(headers, "auth-google", window_ms=60_000, limit=limit, cache=cache)
        for _ in range(total)
    ]

    for index, status in enumerate(statuses, start=1):
        assert status.allowed == (index <= limit)
        if not status.allowed:
            assert status.retry_after_seconds == 60


@settings(max_examples=100)
@given(window_ms=st.integers(min_value=1_000, max_value=120_000))
def test_window_restarts_at_expiry(window_ms):
    clock = FakeClock()
    cache = ServerCache(clock=clock)
    headers = {"x-real-ip": "10.0.0.7"}

    first = enforce_ip_rate_limit(headers, "login", window_ms=window_ms, limit=1, cache=cache)
    blocked = enforce_ip_rate_limit(headers, "login", window_ms=window_ms, limit=1, cache=cache)
    clock.advance(window_ms)
    again = enforce_ip_rate_limit(headers, "login", window_ms=window_ms, limit=1, cache=cache)

    assert first.allowed
    assert not blocked.allowed
    assert again.allowed


def test_retry_after_shrinks_as_window_elapses(fake_clock):
    cache = ServerCache(clock=fake_clock)
    headers = {"x-forwarded-for": "1.2.3.4"}
    enforce_ip_rate_limit(headers, "p", window_ms=10_000, limit=1, cache=cache)
    fake_clock.advance(7_500)

    status = enforce_ip_rate_limit(headers, "p", window_ms=10_000, limit=1, cache=cache)
    assert not status.allowed
    assert status.retry_after_seconds == 3


def test_counters_are_keyed_by_prefix_and_address(fake_clock):
    cache = ServerCache(clock=fake_clock)
    enforce_ip_rate_limit({"x-forwarded-for": "1.2.3.4"}, "auth-google", window_ms=1000, limit=1, cache=cache)

    assert "rate:auth-google:1.2.3.4" in cache
    other_prefix = enforce_ip_rate_limit(
        {"x-forwarded-for": "1.2.3.4"}, "sync-google-sheets", window_ms=1000, limit=1, cache=cache
    )
    other_ip = enforce_ip_rate_limit({"x-forwarded-for": "5.6.7.8"}, "auth-google", window_ms=1000, limit=1, cache=cache)
    assert other_prefix.allowed
    assert other_ip.allowed


def test_client_ip_prefers_first_forwarded_address():
    assert get_client_ip({"x-forwarded-for": " 9.9.9.9 , 10.0.0.1", "x-real-ip": "8.8.8.8"}) == "9.9.9.9"
    assert get_client_ip({"x-real-ip": "8.8.8.8"}) == "8.8.8.8"
    assert get_client_ip({}) == "unknown"
    assert get_client_ip({"x-forwarded-for": " , 10.0.0.1"}) == "unknown"
