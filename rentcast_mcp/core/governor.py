"""Session budget and rate window for upstream Rentcast calls.

Every outbound request must obtain a grant from :class:`RequestGovernor`
first.  Two independent limits apply:

* a hard ceiling of ``max_calls`` grants for the lifetime of the process,
* an optional minimum spacing of ``60 / rate_limit_per_minute`` seconds
  between consecutive grants.

The grant is debited *before* the upstream request runs, so a call that later
fails (timeout, 5xx, upstream 429) still costs one unit of budget.  Grants are
issued under a single :class:`asyncio.Lock`; a caller waiting out the rate
window holds the lock, which keeps both the ceiling and the spacing intact
when several tool calls overlap.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Awaitable, Callable, Optional

from loguru import logger

from rentcast_mcp.core.models import GovernorStatus
from rentcast_mcp.errors import QuotaExhausted
from rentcast_mcp.settings import Settings

WINDOW_SECONDS: float = 60.0


class RequestGovernor:
    """Gate upstream calls against the session budget and the rate window."""

    def __init__(
        self,
        max_calls: int,
        *,
        rate_limit_enabled: bool = True,
        rate_limit_per_minute: int = 60,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        if max_calls < 0:
            raise ValueError("max_calls must be >= 0")
        if rate_limit_per_minute < 1:
            raise ValueError("rate_limit_per_minute must be >= 1")

        self.max_calls = max_calls
        self.rate_limit_enabled = rate_limit_enabled
        self.rate_limit_per_minute = rate_limit_per_minute

        self._clock = clock
        self._sleep = sleep
        self._now = now
        self._lock = asyncio.Lock()

        self._calls_made = 0
        self._last_call: Optional[float] = None
        self._last_call_time: Optional[datetime] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "RequestGovernor":
        return cls(
            settings.MAX_API_CALLS_PER_SESSION,
            rate_limit_enabled=settings.ENABLE_RATE_LIMITING,
            rate_limit_per_minute=settings.RATE_LIMIT_PER_MINUTE,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------
    @property
    def min_interval(self) -> float:
        """Minimum number of seconds between two grants."""
        return WINDOW_SECONDS / self.rate_limit_per_minute

    @property
    def calls_made(self) -> int:
        return self._calls_made

    @property
    def calls_remaining(self) -> int:
        return self.max_calls - self._calls_made

    def get_status(self) -> GovernorStatus:
        return GovernorStatus(
            calls_remaining=self.calls_remaining,
            calls_made=self._calls_made,
            max_calls=self.max_calls,
            last_call_time=self._last_call_time,
            rate_limit_enabled=self.rate_limit_enabled,
            rate_limit_per_minute=self.rate_limit_per_minute,
        )

    # ------------------------------------------------------------------
    # Grant
    # ------------------------------------------------------------------
    async def request_permission(self) -> None:
        """Wait until a call may proceed and debit one unit of budget.

        Raises :class:`QuotaExhausted` without touching any state once the
        session budget is spent.
        """

        async with self._lock:
            self._check_budget()

            if self.rate_limit_enabled and self._last_call is not None:
                elapsed = self._clock() - self._last_call
                wait = self.min_interval - elapsed
                if wait > 0:
                    logger.debug("⏳ [GOVERNOR] Rate limit: waiting {:.3f}s before next call", wait)
                    await self._sleep(wait)

            self._last_call = self._clock()
            self._last_call_time = self._now()
            self._calls_made += 1
            logger.debug(
                "✅ [GOVERNOR] Call granted ({}/{} used, {} remaining)",
                self._calls_made,
                self.max_calls,
                self.calls_remaining,
            )

    def _check_budget(self) -> None:
        if self._calls_made >= self.max_calls:
            logger.warning("🛑 [GOVERNOR] Session budget exhausted ({} calls)", self.max_calls)
            raise QuotaExhausted(self.max_calls)
