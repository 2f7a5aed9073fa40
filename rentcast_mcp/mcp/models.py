from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

FREE_TIER_MAX_LIMIT = 50


class ToolRequest(BaseModel):
    """Base class for validated tool arguments.

    Attributes are snake_case; the wire names (JSON schema, upstream query
    string) are the camelCase aliases used by the Rentcast API.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_query(self) -> Dict[str, Any]:
        """Return upstream query parameters, omitting fields that were not given."""
        return self.model_dump(by_alias=True, exclude_none=True)


class _LocationFilters(ToolRequest):
    city: Optional[str] = Field(None, description="City name (e.g. 'Austin')")
    state: Optional[str] = Field(None, description="Two-letter state abbreviation (e.g. 'TX')")
    zip_code: Optional[str] = Field(None, alias="zipCode", description="5-digit ZIP code")
    bedrooms: Optional[int] = Field(None, ge=0, description="Number of bedrooms")
    bathrooms: Optional[float] = Field(None, ge=0, description="Number of bathrooms")
    property_type: Optional[str] = Field(
        None,
        alias="propertyType",
        description="Single Family, Condo, Townhouse, Manufactured, Multi-Family, Apartment or Land",
    )


class PropertySearchRequest(_LocationFilters):
    limit: int = Field(15, ge=1, le=FREE_TIER_MAX_LIMIT, description="Number of properties to return (max 50)")


class RandomPropertiesRequest(_LocationFilters):
    limit: int = Field(10, ge=1, le=FREE_TIER_MAX_LIMIT, description="Number of random properties to return (max 50)")


class ListingSearchRequest(_LocationFilters):
    status: Optional[Literal["Active", "Inactive"]] = Field(None, description="Listing status filter")
    limit: int = Field(15, ge=1, le=FREE_TIER_MAX_LIMIT, description="Number of listings to return (max 50)")


class MarketAnalysisRequest(ToolRequest):
    zip_code: Optional[str] = Field(None, alias="zipCode", description="5-digit ZIP code")
    city: Optional[str] = Field(None, description="City name")
    state: Optional[str] = Field(None, description="Two-letter state abbreviation")
    data_type: Literal["All", "Sale", "Rental"] = Field("All", alias="dataType", description="Market data to include")

    @model_validator(mode="after")
    def _require_location(self):  # noqa: D401 – pydantic hook
        if not (self.zip_code or self.city or self.state):
            raise ValueError("provide at least one of zipCode, city or state")
        return self

    @property
    def location_label(self) -> str:
        if self.zip_code:
            return f"ZIP: {self.zip_code}"
        if self.city:
            return f"{self.city}, {self.state}" if self.state else self.city
        return self.state or "Location"


class EstimateRequest(ToolRequest):
    """Shared arguments of the value (AVM) and rent estimate tools."""

    address: Optional[str] = Field(None, description="Full property address, e.g. '1011 W 23rd St, Apt 101, Austin, TX 78705'")
    latitude: Optional[float] = Field(None, ge=-90, le=90, description="Property latitude")
    longitude: Optional[float] = Field(None, ge=-180, le=180, description="Property longitude")
    property_id: Optional[str] = Field(None, alias="propertyId", description="Rentcast property identifier")
    property_type: Optional[str] = Field(None, alias="propertyType", description="Apartment, Single Family, Condo, ...")
    bedrooms: Optional[int] = Field(None, ge=0, description="Number of bedrooms")
    bathrooms: Optional[float] = Field(None, ge=0, description="Number of bathrooms")
    square_footage: Optional[int] = Field(None, alias="squareFootage", gt=0, description="Living area in sq ft")
    comp_count: Optional[int] = Field(None, alias="compCount", ge=5, le=25, description="Number of comparables to use")

    @property
    def has_locator(self) -> bool:
        return bool(self.address) or (self.latitude is not None and self.longitude is not None) or bool(self.property_id)

    def to_query(self) -> Dict[str, Any]:
        """Send exactly one locator: address, then coordinates, then property id."""
        query = super().to_query()
        if self.address:
            query.pop("latitude", None)
            query.pop("longitude", None)
            query.pop("propertyId", None)
        elif self.latitude is not None and self.longitude is not None:
            query.pop("propertyId", None)
        else:
            query.pop("latitude", None)
            query.pop("longitude", None)
        return query


class ValuationRequest(EstimateRequest):
    pass


class RentEstimateRequest(EstimateRequest):
    pass


class PropertyDetailRequest(ToolRequest):
    id: str = Field(..., min_length=1, description="Rentcast property id (e.g. from search_properties results)")


class ServerStatusRequest(ToolRequest):
    pass
