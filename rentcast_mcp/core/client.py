"""Governed async client for the Rentcast REST API.

Each :meth:`RentcastClient.call` performs exactly one upstream request after
obtaining a grant from the :class:`~rentcast_mcp.core.governor.RequestGovernor`
and normalises every outcome into an :class:`~rentcast_mcp.core.models.ApiResult`.
No exception escapes ``call`` for quota, HTTP, transport or parse failures.
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from string import Formatter
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx
from loguru import logger

from rentcast_mcp.core.governor import RequestGovernor
from rentcast_mcp.core.models import ApiResult, GovernorStatus
from rentcast_mcp.errors import (
    MalformedResponse,
    QuotaExhausted,
    RentcastError,
    TransportFailure,
    UpstreamClientError,
    UpstreamRateLimited,
    UpstreamServerError,
    UpstreamTimeout,
)
from rentcast_mcp.settings import Settings

API_KEY_HEADER = "X-Api-Key"
_MAX_ERROR_BODY = 300


class Operation(str, Enum):
    """Upstream endpoints; the value is the path relative to the base URL."""

    SEARCH_PROPERTIES = "/properties"
    RANDOM_PROPERTIES = "/properties/random"
    MARKET_DATA = "/markets"
    PROPERTY_VALUE = "/avm/value"
    RENT_ESTIMATE = "/avm/rent/long-term"
    SALE_LISTINGS = "/listings/sale"
    RENTAL_LISTINGS = "/listings/rental/long-term"
    PROPERTY = "/properties/{id}"

    @property
    def path_params(self) -> Tuple[str, ...]:
        return tuple(name for _, name, _, _ in Formatter().parse(self.value) if name)


def _encode_param(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return value.value
    return value


def build_request_target(operation: Operation, params: Optional[Mapping[str, Any]] = None) -> Tuple[str, Dict[str, Any]]:
    """Return ``(path, query)`` for *operation*.

    Path placeholders are filled (URL-quoted) from *params* and removed from
    the query.  Parameters whose value is ``None`` are dropped instead of
    being sent empty.
    """

    query = {k: _encode_param(v) for k, v in (params or {}).items() if v is not None}
    path_values = {}
    for name in operation.path_params:
        if name not in query:
            raise ValueError(f"Operation {operation.name} requires the '{name}' parameter")
        path_values[name] = quote(str(query.pop(name)), safe="")
    return operation.value.format(**path_values), query


def _error_detail(response: httpx.Response) -> str:
    """Best-effort human message from an upstream error body."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])

    text = response.text.strip()
    if text:
        return text[:_MAX_ERROR_BODY]
    return response.reason_phrase or "no details"


def classify_response(response: httpx.Response) -> Any:
    """Return the parsed JSON body of a 2xx *response* or raise a :class:`RentcastError`."""

    status = response.status_code
    if status == 429:
        raise UpstreamRateLimited(
            f"Rate limited by the Rentcast API (HTTP 429): {_error_detail(response)}. "
            "Wait a moment before retrying.",
            status_code=status,
        )
    if 400 <= status < 500:
        raise UpstreamClientError(f"Rentcast API error (HTTP {status}): {_error_detail(response)}", status_code=status)
    if status >= 500:
        raise UpstreamServerError(
            f"Rentcast API server error (HTTP {status}): {_error_detail(response)}", status_code=status
        )
    if not 200 <= status < 300:
        raise UpstreamClientError(f"Unexpected response from Rentcast API (HTTP {status})", status_code=status)

    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
        raise MalformedResponse(f"Could not parse Rentcast API response as JSON: {exc}") from exc


class RentcastClient:
    """Perform governed calls against the Rentcast API."""

    def __init__(
        self,
        governor: RequestGovernor,
        api_key: str,
        *,
        base_url: str = "https://api.rentcast.io/v1",
        timeout_seconds: float = 30,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.governor = governor
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._api_key = api_key
        self._http = http_client
        self._owns_http = http_client is None

    @classmethod
    def from_settings(cls, settings: Settings, governor: Optional[RequestGovernor] = None, **kwargs) -> "RentcastClient":
        return cls(
            governor or RequestGovernor.from_settings(settings),
            settings.RENTCAST_API_KEY or "",
            base_url=settings.RENTCAST_BASE_URL,
            timeout_seconds=settings.TIMEOUT_SECONDS,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------
    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient()
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "RentcastClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Governed call
    # ------------------------------------------------------------------
    async def call(self, operation: Operation, params: Optional[Mapping[str, Any]] = None) -> ApiResult:
        """Run one governed request for *operation* and return its envelope."""

        try:
            path, query = build_request_target(operation, params)
        except ValueError as exc:
            return ApiResult.fail(str(exc), self.governor.calls_remaining, error_code="INVALID_PARAMETERS")

        try:
            await self.governor.request_permission()
        except QuotaExhausted as exc:
            return ApiResult.fail(exc.message, 0, error_code=exc.code)

        logger.info("🌐 [RENTCAST] GET {} params={}", path, query)
        try:
            data = await self._fetch(path, query)
        except RentcastError as exc:
            logger.warning("💥 [RENTCAST] {} failed: {}", operation.name, exc)
            return ApiResult.fail(exc.message, self.governor.calls_remaining, error_code=exc.code)

        logger.debug(
            "📦 [RENTCAST] {} succeeded ({} remaining)", operation.name, self.governor.calls_remaining
        )
        return ApiResult.ok(data, self.governor.calls_remaining)

    async def _fetch(self, path: str, query: Dict[str, Any]) -> Any:
        headers = {API_KEY_HEADER: self._api_key, "Accept": "application/json"}
        try:
            # httpx times each phase separately; the overall deadline bounds the whole exchange
            response = await asyncio.wait_for(
                self._get_http().get(
                    f"{self.base_url}{path}",
                    params=query,
                    headers=headers,
                    timeout=httpx.Timeout(self.timeout_seconds),
                ),
                self.timeout_seconds,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise UpstreamTimeout(
                f"Rentcast API did not respond within {self.timeout_seconds:g} seconds ({type(exc).__name__})"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportFailure(f"Could not reach the Rentcast API: {str(exc) or type(exc).__name__}") from exc
        return classify_response(response)

    # ------------------------------------------------------------------
    # Per-endpoint helpers
    # ------------------------------------------------------------------
    async def search_properties(self, params: Optional[Mapping[str, Any]] = None) -> ApiResult:
        return await self.call(Operation.SEARCH_PROPERTIES, params)

    async def get_random_properties(self, params: Optional[Mapping[str, Any]] = None) -> ApiResult:
        return await self.call(Operation.RANDOM_PROPERTIES, params)

    async def get_market_data(self, params: Optional[Mapping[str, Any]] = None) -> ApiResult:
        return await self.call(Operation.MARKET_DATA, params)

    async def get_property_value(self, params: Optional[Mapping[str, Any]] = None) -> ApiResult:
        return await self.call(Operation.PROPERTY_VALUE, params)

    async def get_rent_estimate(self, params: Optional[Mapping[str, Any]] = None) -> ApiResult:
        return await self.call(Operation.RENT_ESTIMATE, params)

    async def get_sale_listings(self, params: Optional[Mapping[str, Any]] = None) -> ApiResult:
        return await self.call(Operation.SALE_LISTINGS, params)

    async def get_rental_listings(self, params: Optional[Mapping[str, Any]] = None) -> ApiResult:
        return await self.call(Operation.RENTAL_LISTINGS, params)

    async def get_property(self, property_id: str) -> ApiResult:
        return await self.call(Operation.PROPERTY, {"id": property_id})

    def get_status(self) -> GovernorStatus:
        return self.governor.get_status()
