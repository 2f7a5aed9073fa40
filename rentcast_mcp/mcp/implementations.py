"""Implementation functions for the Rentcast MCP tools.

Each tool receives the shared :class:`~rentcast_mcp.core.client.RentcastClient`
and its validated request model, performs at most one governed upstream call
and returns display text.  Failed envelopes are rendered as an error message
plus the remaining-calls hint; nothing here raises on data errors.
"""

from __future__ import annotations

from typing import Any, Mapping

from loguru import logger

from rentcast_mcp.core.client import RentcastClient
from rentcast_mcp.core.models import ApiResult
from rentcast_mcp.formatting import (
    format_listing,
    format_market,
    format_property_details,
    format_property_list,
    format_remaining,
    format_rent_estimate,
    format_status,
    format_value_estimate,
    summarise_first_record,
)
from rentcast_mcp.mcp.models import (
    EstimateRequest,
    ListingSearchRequest,
    MarketAnalysisRequest,
    PropertyDetailRequest,
    PropertySearchRequest,
    RandomPropertiesRequest,
    RentEstimateRequest,
    ServerStatusRequest,
    ValuationRequest,
)
from rentcast_mcp.mcp.plugin import tool

SEARCH_DISPLAY_LIMIT = 10
RANDOM_DISPLAY_LIMIT = 5
LISTING_DISPLAY_LIMIT = 8


def error_text(action: str, result: ApiResult, client: RentcastClient) -> str:
    """Render a failed envelope: what failed and how many calls remain."""
    return f"{action}: {result.error}\n\n{format_remaining(result.calls_remaining, client.governor.max_calls)}"


def missing_locator_text(tool_name: str) -> str:
    return (
        f"Missing required parameters for {tool_name}.\n\n"
        "Provide ONE of the following:\n"
        "  1. address: full property address (e.g. '1011 W 23rd St, Apt 101, Austin, TX 78705')\n"
        "  2. latitude + longitude: property coordinates (e.g. 30.287007, -97.748941)\n"
        "  3. propertyId: Rentcast property identifier\n\n"
        "Optional parameters that improve accuracy: propertyType, bedrooms, bathrooms, squareFootage."
    )


def _as_list(data: Any) -> list:
    if isinstance(data, list):
        return data
    if isinstance(data, Mapping):
        return [data]
    return []


# ---------------------------------------------------------------------------
# Property search
# ---------------------------------------------------------------------------
@tool(
    "search_properties",
    "Search property records (default 15, max 50) by city, state, ZIP code, bedrooms, bathrooms and "
    "property type. Returns address, size, lot, year built and last sale. Price data may be missing.",
    PropertySearchRequest,
)
async def search_properties(client: RentcastClient, request: PropertySearchRequest) -> str:
    result = await client.search_properties(request.to_query())
    if not result.success:
        return error_text("Error searching properties", result, client)

    properties = _as_list(result.data)
    logger.debug("[search_properties] {}", summarise_first_record(properties))
    return format_property_list(properties, f"Found {len(properties)} properties", SEARCH_DISPLAY_LIMIT)


@tool(
    "get_random_properties",
    "Get a random sample of property records (default 10, max 50) for market exploration, "
    "optionally filtered by location, bedrooms, bathrooms and property type.",
    RandomPropertiesRequest,
)
async def get_random_properties(client: RentcastClient, request: RandomPropertiesRequest) -> str:
    result = await client.get_random_properties(request.to_query())
    if not result.success:
        return error_text("Error getting random properties", result, client)

    properties = _as_list(result.data)
    logger.debug("[get_random_properties] {}", summarise_first_record(properties))
    return format_property_list(
        properties,
        f"Retrieved {len(properties)} random properties",
        RANDOM_DISPLAY_LIMIT,
        heading="Sample Properties:\n\n",
    )


# ---------------------------------------------------------------------------
# Market statistics
# ---------------------------------------------------------------------------
@tool(
    "analyze_market",
    "Get sale and rental market statistics (averages, medians, days on market, listing counts) "
    "for a ZIP code or city.",
    MarketAnalysisRequest,
)
async def analyze_market(client: RentcastClient, request: MarketAnalysisRequest) -> str:
    result = await client.get_market_data(request.to_query())
    if not result.success:
        return error_text("Error analyzing market", result, client)

    markets = _as_list(result.data)
    market = markets[0] if markets else None
    if not isinstance(market, Mapping) or not (market.get("saleData") or market.get("rentalData")):
        return (
            "No market data found for the specified location.\n\n"
            f"{format_remaining(result.calls_remaining, client.governor.max_calls)}"
        )
    return format_market(market, request.location_label)


# ---------------------------------------------------------------------------
# Estimates
# ---------------------------------------------------------------------------
async def _estimate(client: RentcastClient, request: EstimateRequest, tool_name: str, value: bool) -> str:
    if not request.has_locator:
        return missing_locator_text(tool_name)

    query = request.to_query()
    if value:
        result = await client.get_property_value(query)
        action = "Error getting property value"
    else:
        result = await client.get_rent_estimate(query)
        action = "Error getting rent estimates"

    if not result.success:
        return error_text(action, result, client)
    if not isinstance(result.data, Mapping) or not result.data:
        kind = "property value" if value else "rent estimate"
        return f"No {kind} data found.\n\n{format_remaining(result.calls_remaining, client.governor.max_calls)}"

    text = format_value_estimate(result.data) if value else format_rent_estimate(result.data)
    return f"{text}\n\n{format_remaining(result.calls_remaining, client.governor.max_calls)}"


@tool(
    "get_property_value",
    "Get an automated value estimate (AVM) with price range and comparable sales. Provide an address, "
    "latitude/longitude or propertyId; property type, bedrooms, bathrooms and square footage improve accuracy.",
    ValuationRequest,
)
async def get_property_value(client: RentcastClient, request: ValuationRequest) -> str:
    return await _estimate(client, request, "get_property_value", value=True)


@tool(
    "get_rent_estimates",
    "Get a long-term monthly rent estimate with rent range and comparable rentals. Provide an address, "
    "latitude/longitude or propertyId; property type, bedrooms, bathrooms and square footage improve accuracy.",
    RentEstimateRequest,
)
async def get_rent_estimates(client: RentcastClient, request: RentEstimateRequest) -> str:
    return await _estimate(client, request, "get_rent_estimates", value=False)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------
@tool(
    "get_sale_listings",
    "Search properties currently listed for sale (default 15, max 50) with price, status and days on market.",
    ListingSearchRequest,
)
async def get_sale_listings(client: RentcastClient, request: ListingSearchRequest) -> str:
    result = await client.get_sale_listings(request.to_query())
    if not result.success:
        return error_text("Error getting sale listings", result, client)

    listings = _as_list(result.data)
    logger.debug("[get_sale_listings] {}", summarise_first_record(listings))
    return format_property_list(
        listings, f"Found {len(listings)} sale listings", LISTING_DISPLAY_LIMIT, listing=True
    )


@tool(
    "get_rental_listings",
    "Search properties currently listed for long-term rent (default 15, max 50) with monthly rent and status.",
    ListingSearchRequest,
)
async def get_rental_listings(client: RentcastClient, request: ListingSearchRequest) -> str:
    result = await client.get_rental_listings(request.to_query())
    if not result.success:
        return error_text("Error getting rental listings", result, client)

    listings = _as_list(result.data)
    logger.debug("[get_rental_listings] {}", summarise_first_record(listings))
    return format_property_list(
        listings, f"Found {len(listings)} rental listings", LISTING_DISPLAY_LIMIT, listing=True
    )


# ---------------------------------------------------------------------------
# Single property & status
# ---------------------------------------------------------------------------
@tool(
    "get_property_details",
    "Get the full record of one property by id and the parameters to pass to the value and rent estimate tools.",
    PropertyDetailRequest,
)
async def get_property_details(client: RentcastClient, request: PropertyDetailRequest) -> str:
    result = await client.get_property(request.id)
    if not result.success:
        return error_text("Error getting property details", result, client)
    if not isinstance(result.data, Mapping) or not result.data:
        return f"No property details found.\n\n{format_remaining(result.calls_remaining, client.governor.max_calls)}"
    return format_property_details(result.data)


@tool(
    "get_server_status",
    "Show remaining API calls for this session and the rate limiting configuration. Does not use an API call.",
    ServerStatusRequest,
)
async def get_server_status(client: RentcastClient, request: ServerStatusRequest) -> str:
    return format_status(client.get_status())
