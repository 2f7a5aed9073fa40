"""Shared fixtures: fake clock for the governor and stubbed Rentcast upstream."""

from __future__ import annotations

from typing import Callable, List

import httpx
import pytest

from rentcast_mcp.core.client import RentcastClient
from rentcast_mcp.core.governor import RequestGovernor
from rentcast_mcp.settings import get_settings

BASE_URL = "https://api.rentcast.test/v1"
API_KEY = "test-key-1234567890"


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly and records waits."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubUpstream:
    """httpx MockTransport handler that records every request it receives."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_client(fake_clock):
    """Factory building a RentcastClient wired to a stub upstream.

    Rate limiting uses the fake clock so tests never really wait.
    """

    def _make(handler, *, max_calls: int = 5, rate_limit_enabled: bool = False, rate_limit_per_minute: int = 60):
        stub = handler if isinstance(handler, StubUpstream) else StubUpstream(handler)
        governor = RequestGovernor(
            max_calls,
            rate_limit_enabled=rate_limit_enabled,
            rate_limit_per_minute=rate_limit_per_minute,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )
        client = RentcastClient(
            governor,
            API_KEY,
            base_url=BASE_URL,
            timeout_seconds=2,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(stub)),
        )
        return client, stub

    return _make


def json_response(payload, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status_code, json=payload)
