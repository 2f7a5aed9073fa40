from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ApiResult(BaseModel):
    """Uniform envelope returned by every governed upstream call.

    ``data`` is only set on success and ``error``/``error_code`` only on
    failure; ``calls_remaining`` is always present so repeated failures are
    visibly metered against the same budget.
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = Field(None, description="Taxonomy code of the failure (see rentcast_mcp.errors)")
    calls_remaining: int = Field(..., ge=0)

    @classmethod
    def ok(cls, data: Any, calls_remaining: int) -> "ApiResult":
        return cls(success=True, data=data, calls_remaining=calls_remaining)

    @classmethod
    def fail(cls, error: str, calls_remaining: int, error_code: Optional[str] = None) -> "ApiResult":
        return cls(success=False, error=error, error_code=error_code, calls_remaining=calls_remaining)


class GovernorStatus(BaseModel):
    """Read-only snapshot of the session budget and rate window."""

    calls_remaining: int
    calls_made: int
    max_calls: int
    last_call_time: Optional[datetime] = None
    rate_limit_enabled: bool
    rate_limit_per_minute: int

    @property
    def usage_percent(self) -> float:
        if self.max_calls == 0:
            return 100.0
        return self.calls_made / self.max_calls * 100
