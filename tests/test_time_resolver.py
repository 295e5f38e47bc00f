"""Unit tests for the time resolver and its local fallback."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from services.time_resolver import TimeResolver

HOST_NOW = datetime(2024, 5, 2, 2, 30, tzinfo=timezone.utc)


def _resolver(handler) -> TimeResolver:
    client = httpx.Client(transport=httpx.MockTransport(handler), timeout=1.0)
    return TimeResolver(
        url="http://time.test/api/timezone/{timezone}",
        fallback_offset=timedelta(hours=-3),
        client=client,
        local_clock=lambda: HOST_NOW,
    )


def test_now_uses_external_source_when_available() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"datetime": "2024-05-01T23:59:30.123456-03:00"})

    resolver = _resolver(handler)

    resolved = resolver.now()

    assert resolved == datetime(2024, 5, 1, 23, 59, 30, 123456, tzinfo=timezone(timedelta(hours=-3)))
    assert resolved.utcoffset() == timedelta(hours=-3)
    assert seen == ["http://time.test/api/timezone/America/Sao_Paulo"]


def test_fallback_applies_fixed_offset_to_host_clock() -> None:
    resolver = _resolver(lambda request: httpx.Response(200, json={}))

    fallback = resolver.fallback_now()

    assert fallback == HOST_NOW
    assert fallback.utcoffset() == timedelta(hours=-3)
    assert (fallback.year, fallback.month, fallback.day, fallback.hour) == (2024, 5, 1, 23)


def test_fallback_treats_naive_host_clock_as_utc() -> None:
    resolver = TimeResolver(
        url="http://time.test/{timezone}",
        fallback_offset=timedelta(hours=-3),
        client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500))),
        local_clock=lambda: datetime(2024, 1, 1, 1, 0),
    )

    assert resolver.fallback_now().day == 31


def _raise_timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectTimeout("timed out", request=request)


@pytest.mark.parametrize(
    "handler",
    [
        lambda request: httpx.Response(503, text="unavailable"),
        lambda request: httpx.Response(200, text="<html>not json</html>"),
        lambda request: httpx.Response(200, json=["2024-05-01T00:00:00-03:00"]),
        lambda request: httpx.Response(200, json={"unixtime": 1714532400}),
        lambda request: httpx.Response(200, json={"datetime": "yesterday"}),
        lambda request: httpx.Response(200, json={"datetime": "2024-05-01T10:00:00"}),
        _raise_timeout,
    ],
)
def test_now_falls_back_on_any_source_failure(handler, caplog) -> None:
    resolver = _resolver(handler)

    with caplog.at_level("WARNING"):
        resolved = resolver.now()

    assert resolved == HOST_NOW
    assert resolved.utcoffset() == timedelta(hours=-3)
    assert "External time source failed" in caplog.text


def test_zulu_timestamps_are_accepted() -> None:
    resolver = _resolver(lambda request: httpx.Response(200, json={"datetime": "2024-05-02T03:00:00Z"}))

    assert resolver.now() == datetime(2024, 5, 2, 3, 0, tzinfo=timezone.utc)
