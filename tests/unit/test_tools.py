#!/usr/bin/env python3
"""
Tests for the MCP tool layer: registry, dispatch and tool implementations.
"""

import httpx
import pytest
from mcp.server import Server

from rentcast_mcp.mcp.models import EstimateRequest, MarketAnalysisRequest, PropertySearchRequest
from rentcast_mcp.mcp.plugin import discover
from rentcast_mcp.mcp.server import create_mcp_server, dispatch_tool, list_tool_definitions

from tests.conftest import json_response

EXPECTED_TOOLS = {
    "search_properties",
    "get_random_properties",
    "analyze_market",
    "get_property_value",
    "get_rent_estimates",
    "get_sale_listings",
    "get_rental_listings",
    "get_property_details",
    "get_server_status",
}


@pytest.fixture
def registry():
    return discover()


class TestRequestModels:
    """Test argument validation and query construction."""

    def test_search_query_uses_upstream_names(self):
        request = PropertySearchRequest.model_validate({"city": "Austin", "zipCode": "78705", "propertyType": "Condo"})
        assert request.to_query() == {"city": "Austin", "zipCode": "78705", "propertyType": "Condo", "limit": 15}

    def test_limit_capped(self):
        with pytest.raises(ValueError):
            PropertySearchRequest.model_validate({"limit": 51})

    def test_market_requires_location(self):
        with pytest.raises(ValueError):
            MarketAnalysisRequest.model_validate({"dataType": "Sale"})
        request = MarketAnalysisRequest.model_validate({"city": "Austin", "state": "TX"})
        assert request.location_label == "Austin, TX"
        assert request.to_query() == {"city": "Austin", "state": "TX", "dataType": "All"}

    def test_estimate_sends_single_locator(self):
        by_address = EstimateRequest.model_validate(
            {"address": "1 Main St", "latitude": 30.2, "longitude": -97.7, "propertyId": "p1", "bedrooms": 2}
        )
        assert by_address.to_query() == {"address": "1 Main St", "bedrooms": 2}

        by_coords = EstimateRequest.model_validate({"latitude": 30.2, "longitude": -97.7, "propertyId": "p1"})
        assert by_coords.to_query() == {"latitude": 30.2, "longitude": -97.7}

        by_id = EstimateRequest.model_validate({"latitude": 30.2, "propertyId": "p1"})
        assert by_id.to_query() == {"propertyId": "p1"}

        assert EstimateRequest.model_validate({"latitude": 30.2}).has_locator is False


class TestRegistry:
    """Test tool discovery and schema exposure."""

    def test_all_tools_registered(self, registry):
        assert EXPECTED_TOOLS <= set(registry)

    def test_tool_definitions_expose_camel_case_schema(self, registry):
        tools = {t.name: t for t in list_tool_definitions(registry)}
        schema = tools["search_properties"].inputSchema
        assert "zipCode" in schema["properties"]
        assert "propertyType" in schema["properties"]
        assert tools["get_property_details"].inputSchema["required"] == ["id"]

    def test_create_mcp_server(self, make_client):
        client, _ = make_client(json_response({}))
        server = create_mcp_server(client)
        assert isinstance(server, Server)
        assert server.name == "rentcast-mcp"


class TestDispatch:
    """Every failure mode is reported as text."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry, make_client):
        client, _ = make_client(json_response({}))
        text = await dispatch_tool(registry, client, "delete_everything", {})
        assert "not found" in text

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, registry, make_client):
        client, stub = make_client(json_response({}))
        text = await dispatch_tool(registry, client, "get_property_details", {})
        assert text.startswith("Invalid parameters:")
        assert "id" in text
        assert stub.calls == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, registry, make_client):
        client, _ = make_client(json_response({}))

        async def broken(client, request):
            raise RuntimeError("kaboom")

        patched = dict(registry)
        patched["get_server_status"] = {**registry["get_server_status"], "fn": broken}

        text = await dispatch_tool(patched, client, "get_server_status", None)

        assert text == "Failed to run get_server_status: kaboom"


class TestTools:
    """Test tool implementations against a stub upstream."""

    @pytest.mark.asyncio
    async def test_search_properties(self, registry, make_client):
        payload = [{"formattedAddress": f"{i} Main St", "bedrooms": 3} for i in range(12)]
        client, stub = make_client(json_response(payload))

        text = await dispatch_tool(registry, client, "search_properties", {"city": "Austin", "state": "TX"})

        assert text.startswith("Found 12 properties")
        assert "... and more available" in text
        assert dict(stub.requests[0].url.params) == {"city": "Austin", "state": "TX", "limit": "15"}

    @pytest.mark.asyncio
    async def test_failure_renders_remaining_calls(self, registry, make_client):
        client, _ = make_client(json_response({"message": "boom"}, status_code=500), max_calls=5)

        text = await dispatch_tool(registry, client, "search_properties", {"city": "Austin"})

        assert text.startswith("Error searching properties: Rentcast API server error (HTTP 500): boom")
        assert text.endswith("API calls remaining: 4/5")

    @pytest.mark.asyncio
    async def test_quota_exhausted_message(self, registry, make_client):
        client, stub = make_client(json_response([]), max_calls=0)

        text = await dispatch_tool(registry, client, "get_sale_listings", {"city": "Austin"})

        assert "quota exhausted" in text
        assert text.endswith("API calls remaining: 0/0")
        assert stub.calls == 0

    @pytest.mark.asyncio
    async def test_missing_locator_does_not_consume_budget(self, registry, make_client):
        client, stub = make_client(json_response({}))

        text = await dispatch_tool(registry, client, "get_property_value", {"bedrooms": 3})

        assert "Missing required parameters for get_property_value" in text
        assert stub.calls == 0
        assert client.governor.calls_made == 0

    @pytest.mark.asyncio
    async def test_property_value(self, registry, make_client):
        client, stub = make_client(
            json_response({"price": 500000, "priceRangeLow": 450000, "priceRangeHigh": 550000, "comparables": []})
        )

        text = await dispatch_tool(registry, client, "get_property_value", {"address": "1 Main St"})

        assert text.startswith("Estimated Value: $500,000 (Range: $450,000 - $550,000)")
        assert stub.requests[0].url.path.endswith("/avm/value")
        assert text.endswith("API calls remaining: 4/5")

    @pytest.mark.asyncio
    async def test_rent_estimates(self, registry, make_client):
        client, stub = make_client(json_response({"rent": 1850, "comparables": [{"price": 1800, "distance": 0.5}]}))

        text = await dispatch_tool(
            registry, client, "get_rent_estimates", {"latitude": 30.28, "longitude": -97.74, "bedrooms": 1}
        )

        assert "Estimated Monthly Rent: $1,850/month" in text
        assert "$1,800/month" in text
        assert stub.requests[0].url.path.endswith("/avm/rent/long-term")

    @pytest.mark.asyncio
    async def test_analyze_market_without_data(self, registry, make_client):
        client, _ = make_client(json_response({"zipCode": "78705"}))

        text = await dispatch_tool(registry, client, "analyze_market", {"zipCode": "78705"})

        assert text.startswith("No market data found")

    @pytest.mark.asyncio
    async def test_analyze_market_with_unexpected_record(self, registry, make_client):
        client, _ = make_client(json_response(["78705"]))

        text = await dispatch_tool(registry, client, "analyze_market", {"zipCode": "78705"})

        assert text.startswith("No market data found")
        assert text.endswith("API calls remaining: 4/5")

    @pytest.mark.asyncio
    async def test_analyze_market(self, registry, make_client):
        client, _ = make_client(json_response({"zipCode": "78705", "saleData": {"averagePrice": 450000}}))

        text = await dispatch_tool(registry, client, "analyze_market", {"zipCode": "78705"})

        assert text.startswith("Market Statistics for ZIP: 78705")
        assert "Average Price: $450,000" in text

    @pytest.mark.asyncio
    async def test_rental_listings(self, registry, make_client):
        client, stub = make_client(json_response([{"formattedAddress": "5 Elm St", "price": 1900, "listingType": "Rental"}]))

        text = await dispatch_tool(registry, client, "get_rental_listings", {"zipCode": "78705", "status": "Active"})

        assert text.startswith("Found 1 rental listings")
        assert "$1,900/month" in text
        assert stub.requests[0].url.path.endswith("/listings/rental/long-term")
        assert stub.requests[0].url.params["status"] == "Active"

    @pytest.mark.asyncio
    async def test_property_details(self, registry, make_client):
        client, stub = make_client(json_response({"id": "abc", "formattedAddress": "1 Main St"}))

        text = await dispatch_tool(registry, client, "get_property_details", {"id": "abc"})

        assert "Address: 1 Main St" in text
        assert "Property ID: abc" in text
        assert stub.requests[0].url.path.endswith("/properties/abc")

    @pytest.mark.asyncio
    async def test_server_status_uses_no_budget(self, registry, make_client):
        client, stub = make_client(json_response([]), max_calls=5)
        await dispatch_tool(registry, client, "get_random_properties", {})

        text = await dispatch_tool(registry, client, "get_server_status", {})

        assert "API Calls Remaining: 4/5" in text
        assert "Rate Limiting: Disabled" in text
        assert stub.calls == 1
        assert client.governor.calls_made == 1

    @pytest.mark.asyncio
    async def test_timeout_renders_message(self, registry, make_client):
        def handler(request):
            raise httpx.ConnectTimeout("connect timed out", request=request)

        client, _ = make_client(handler)

        text = await dispatch_tool(registry, client, "get_random_properties", {})

        assert text.startswith("Error getting random properties: Rentcast API did not respond within 2 seconds")
        assert text.endswith("API calls remaining: 4/5")
