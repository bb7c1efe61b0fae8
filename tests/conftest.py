"""Shared fixtures: a scripted transport and a controllable clock."""

import asyncio
from datetime import datetime, timedelta
from typing import Any

import pytest


class FakeTransport:
    """
    Transport double answering from a table keyed by endpoint.

    A value that is an exception is raised instead of returned. Endpoints
    listed in ``gates`` block until their event is set.
    """

    def __init__(self, responses: dict[str, Any] | None = None):
        self.responses: dict[str, Any] = responses or {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, dict[str, Any] | None]] = []

    def gate(self, endpoint: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[endpoint] = event
        return event

    def calls_to(self, endpoint: str) -> int:
        return sum(1 for called, _ in self.calls if called == endpoint)

    async def request(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        self.calls.append((endpoint, params))
        gate = self.gates.get(endpoint)
        if gate is not None:
            await gate.wait()
        if endpoint not in self.responses:
            raise AssertionError(f"Unexpected request to {endpoint}")
        result = self.responses[endpoint]
        if isinstance(result, Exception):
            raise result
        return result


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeTimer:
    """Float-seconds clock for store cache windows."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def news_page(*slugs: str, count: int | None = None) -> dict[str, Any]:
    items = [{"id": f"id-{slug}", "slug": slug, "title": slug.title()} for slug in slugs]
    return {
        "news": items,
        "count": len(items) if count is None else count,
        "correlation_id": "corr-list",
    }


def news_item(slug: str) -> dict[str, Any]:
    return {
        "news": {"id": f"id-{slug}", "slug": slug, "title": slug.title()},
        "correlation_id": f"corr-{slug}",
    }


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()
