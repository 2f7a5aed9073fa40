from __future__ import annotations

"""Centralised error types for the Rentcast MCP server.

Each custom error is JSON-serialisable via ``to_dict`` so result envelopes can
expose a machine-readable ``code`` next to the human-readable message.
"""

from typing import Any, Dict, Optional


class RentcastError(Exception):
    """Base class for all structured Rentcast exceptions."""

    code: str = "RENTCAST_ERROR"
    status: str = "error"

    def __init__(self, message: str, *, data: Optional[Dict[str, Any]] = None) -> None:  # noqa: D401 – simple init
        super().__init__(message)
        self.message = message
        self.data = data or {}

    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – utility
        return {
            "status": self.status,
            "code": self.code,
            "message": self.message,
            "data": self.data,
        }

    def __str__(self) -> str:  # noqa: D401 – friendly repr
        return f"{self.code}: {self.message}"


class QuotaExhausted(RentcastError):
    """The session budget is spent; no further upstream calls are allowed."""

    code = "QUOTA_EXHAUSTED"

    def __init__(self, max_calls: int) -> None:
        super().__init__(
            f"API call quota exhausted: all {max_calls} calls for this session have been used. "
            "Restart the server to start a new session.",
            data={"max_calls": max_calls},
        )


class UpstreamHTTPError(RentcastError):
    """Non-2xx response from the Rentcast API."""

    code = "UPSTREAM_HTTP_ERROR"

    def __init__(self, message: str, *, status_code: int, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, data={"status_code": status_code, **(data or {})})
        self.status_code = status_code


class UpstreamClientError(UpstreamHTTPError):
    code = "UPSTREAM_CLIENT_ERROR"


class UpstreamRateLimited(UpstreamClientError):
    """HTTP 429 – throttled by Rentcast, distinct from our own session budget."""

    code = "UPSTREAM_RATE_LIMITED"


class UpstreamServerError(UpstreamHTTPError):
    code = "UPSTREAM_SERVER_ERROR"


class UpstreamTimeout(RentcastError):
    code = "TIMEOUT"


class TransportFailure(RentcastError):
    code = "TRANSPORT_FAILURE"


class MalformedResponse(RentcastError):
    code = "MALFORMED_RESPONSE"
