"""Plain-text rendering of Rentcast API payloads.

Every function here is pure and tolerant of missing data: each display field
is optional and independently absent-tolerant, so a partial record renders
with ``N/A`` placeholders instead of failing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from rentcast_mcp.core.models import GovernorStatus

KM_TO_MILES = 0.621371
NA = "N/A"


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------
def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def format_number(value: Any) -> str:
    """Thousands-separated number; integral values lose their decimals."""
    number = _as_number(value)
    if number is None:
        return NA
    if number.is_integer():
        return f"{number:,.0f}"
    return f"{number:,.2f}".rstrip("0").rstrip(".")


def format_money(value: Any, per_month: bool = False) -> str:
    if _as_number(value) is None:
        return NA
    suffix = "/month" if per_month else ""
    return f"${format_number(value)}{suffix}"


def _date_only(value: Any) -> str:
    return str(value).split("T")[0]


def _present(value: Any) -> bool:
    return value is not None and value != ""


# ---------------------------------------------------------------------------
# Property records & listings
# ---------------------------------------------------------------------------
def _latest_sale(history: Mapping[str, Any]) -> Optional[tuple[str, Mapping[str, Any]]]:
    sale_dates = sorted(
        (date for date, entry in history.items() if isinstance(entry, Mapping) and entry.get("event") in ("Sale", "Sale Listing")),
        reverse=True,
    )
    if not sale_dates:
        return None
    return sale_dates[0], history[sale_dates[0]]


def _price_display(prop: Mapping[str, Any]) -> tuple[str, str]:
    """Return ``(price, qualifier)`` picking the most meaningful price field."""

    if prop.get("price"):
        if prop.get("rent") or prop.get("listingType") == "Rental":
            return format_money(prop["price"], per_month=True), " (Monthly Rent)"
        qualifier = " (Active Listing)" if prop.get("status") == "Active" else " (Listing)"
        return format_money(prop["price"]), qualifier
    if prop.get("rent"):
        return format_money(prop["rent"], per_month=True), " (Monthly Rent)"
    if prop.get("lastSalePrice"):
        return format_money(prop["lastSalePrice"]), " (Last Sale)"

    history = prop.get("history")
    if isinstance(history, Mapping) and history:
        latest = _latest_sale(history)
        if latest is not None:
            date, entry = latest
            if entry.get("price"):
                return format_money(entry["price"]), f" ({date})"
            return f"Sale recorded ({date})", " - No price data"

    fallback = prop.get("propertyType") or "Property"
    year = f" ({prop['yearBuilt']})" if prop.get("yearBuilt") else ""
    return fallback, year


def format_property(prop: Mapping[str, Any]) -> str:
    """Two-line summary of a property record or listing."""

    address = prop.get("formattedAddress") or "Address not available"
    price, qualifier = _price_display(prop)

    beds = f"{format_number(prop['bedrooms'])} bed" if _present(prop.get("bedrooms")) else "N/A bed"
    baths = f"{format_number(prop['bathrooms'])} bath" if _present(prop.get("bathrooms")) else "N/A bath"
    sqft = f"{format_number(prop['squareFootage'])} sqft" if _present(prop.get("squareFootage")) else NA

    extras: List[str] = []
    if _present(prop.get("lotSize")):
        extras.append(f"Lot: {format_number(prop['lotSize'])} sqft")
    if _present(prop.get("yearBuilt")):
        extras.append(f"Built: {prop['yearBuilt']}")
    if prop.get("lastSaleDate"):
        extras.append(f"Last sale: {_date_only(prop['lastSaleDate'])}")
    if prop.get("status"):
        extras.append(f"Status: {prop['status']}")
    if _present(prop.get("daysOnMarket")):
        extras.append(f"Days on market: {prop['daysOnMarket']}")
    if prop.get("propertyType"):
        extras.append(f"Type: {prop['propertyType']}")

    text = f"Address: {address}\nPrice: {price}{qualifier} | Beds: {beds} | Baths: {baths} | SqFt: {sqft}"
    if extras:
        text += " | " + " | ".join(extras)
    return text


def format_quick_parameters(listing: Mapping[str, Any]) -> str:
    """One-line hint with the values the estimate tools accept."""
    return (
        f"Quick Parameters: Address: \"{listing.get('formattedAddress') or NA}\", "
        f"Lat: {listing.get('latitude', NA)}, Lng: {listing.get('longitude', NA)}, "
        f"Type: \"{listing.get('propertyType') or NA}\", "
        f"Beds: {listing.get('bedrooms') or NA}, Baths: {listing.get('bathrooms') or NA}, "
        f"SqFt: {listing.get('squareFootage') or NA}"
    )


def format_listing(listing: Mapping[str, Any]) -> str:
    return f"{format_property(listing)}\n{format_quick_parameters(listing)}"


def format_property_list(
    records: Iterable[Mapping[str, Any]],
    summary: str,
    limit: int,
    *,
    heading: str = "",
    listing: bool = False,
) -> str:
    """Render at most *limit* records under *summary* with a trailer when truncated."""

    records = list(records)
    render = format_listing if listing else format_property
    body = "\n\n".join(render(r) for r in records[:limit] if isinstance(r, Mapping))
    text = summary
    if body:
        text += f"\n\n{heading}{body}"
    if len(records) > limit:
        text += "\n\n... and more available"
    return text


# ---------------------------------------------------------------------------
# Market statistics
# ---------------------------------------------------------------------------
def _by_property_type(rows: Any, key: str, per_month: bool) -> str:
    if not isinstance(rows, list) or not rows:
        return ""
    text = "\n\nBy Property Type:"
    for row in rows[:3]:
        if not isinstance(row, Mapping):
            continue
        avg = format_money(row.get(key), per_month=per_month) if row.get(key) else NA
        text += f"\n- {row.get('propertyType') or 'Other'}: {avg} avg"
    return text


def format_sale_market(sale: Optional[Mapping[str, Any]]) -> str:
    if not sale:
        return ""
    text = "\nSales Market:"
    if sale.get("averagePrice") is not None:
        text += f"\nAverage Price: {format_money(sale['averagePrice'])}"
    if sale.get("medianPrice") is not None:
        text += f"\nMedian Price: {format_money(sale['medianPrice'])}"
    if _as_number(sale.get("averagePricePerSquareFoot")) is not None:
        text += f"\nAvg Price/Sqft: ${float(sale['averagePricePerSquareFoot']):.2f}"
    if _as_number(sale.get("averageDaysOnMarket")) is not None:
        text += f"\nAvg Days on Market: {float(sale['averageDaysOnMarket']):.1f}"
    if sale.get("newListings") is not None:
        text += f"\nNew Listings: {sale['newListings']}"
    if sale.get("totalListings") is not None:
        text += f"\nTotal Listings: {sale['totalListings']}"
    return text + _by_property_type(sale.get("dataByPropertyType"), "averagePrice", per_month=False)


def format_rental_market(rental: Optional[Mapping[str, Any]]) -> str:
    if not rental:
        return ""
    text = "\n\nRental Market:"
    if rental.get("averageRent") is not None:
        text += f"\nAverage Rent: {format_money(rental['averageRent'], per_month=True)}"
    if rental.get("medianRent") is not None:
        text += f"\nMedian Rent: {format_money(rental['medianRent'], per_month=True)}"
    if _as_number(rental.get("averageRentPerSquareFoot")) is not None:
        text += f"\nAvg Rent/Sqft: ${float(rental['averageRentPerSquareFoot']):.2f}"
    if rental.get("newListings") is not None:
        text += f"\nNew Listings: {rental['newListings']}"
    if rental.get("totalListings") is not None:
        text += f"\nTotal Listings: {rental['totalListings']}"
    return text + _by_property_type(rental.get("dataByPropertyType"), "averageRent", per_month=True)


def format_market(market: Mapping[str, Any], location_label: str) -> str:
    text = f"Market Statistics for {location_label}\n"
    if market.get("zipCode"):
        text += f"\nLocation: ZIP {market['zipCode']}"
    if market.get("city") and market.get("state"):
        text += f"\n{market['city']}, {market['state']}"
    text += format_sale_market(market.get("saleData"))
    text += format_rental_market(market.get("rentalData"))
    return text


# ---------------------------------------------------------------------------
# Estimates
# ---------------------------------------------------------------------------
def format_comparables(comparables: Any, rental: bool = False, limit: int = 3) -> str:
    if not isinstance(comparables, list) or not comparables:
        return ""

    text = f"\n\nComparable Properties ({len(comparables)}):"
    for index, comp in enumerate(comparables[:limit], start=1):
        if not isinstance(comp, Mapping):
            continue
        price = format_money(comp.get("price"), per_month=rental) if comp.get("price") else NA
        distance = _as_number(comp.get("distance"))
        distance_text = f"{distance * KM_TO_MILES:.2f} miles" if distance else NA
        correlation = _as_number(comp.get("correlation"))
        correlation_text = f"{correlation * 100:.1f}% match" if correlation else NA
        sqft = f"{format_number(comp['squareFootage'])} sqft" if comp.get("squareFootage") else NA

        text += f"\n{index}. {comp.get('formattedAddress') or 'Address not available'}"
        text += f"\n   {price} | {comp.get('bedrooms') or NA} bed | {comp.get('bathrooms') or NA} bath"
        text += f"\n   {sqft} | {distance_text} | {correlation_text}"
    return text


def format_value_estimate(avm: Mapping[str, Any]) -> str:
    text = f"Estimated Value: {format_money(avm.get('price')) if avm.get('price') else NA}"
    if avm.get("priceRangeLow") and avm.get("priceRangeHigh"):
        text += f" (Range: {format_money(avm['priceRangeLow'])} - {format_money(avm['priceRangeHigh'])})"
    return text + format_comparables(avm.get("comparables"))


def format_rent_estimate(rent: Mapping[str, Any]) -> str:
    lines: List[str] = ["Rent Estimate Results", ""]

    if rent.get("address") or rent.get("formattedAddress"):
        lines.append(f"Property: {rent.get('address') or rent.get('formattedAddress')}")
    if rent.get("propertyType"):
        lines.append(f"Type: {rent['propertyType']}")
    if rent.get("bedrooms") is not None:
        lines.append(f"Bedrooms: {rent['bedrooms']}")
    if rent.get("bathrooms") is not None:
        lines.append(f"Bathrooms: {rent['bathrooms']}")
    if rent.get("squareFootage"):
        lines.append(f"Square Footage: {format_number(rent['squareFootage'])} sqft")

    estimate = format_money(rent.get("rent"), per_month=True) if rent.get("rent") else NA
    lines.append("")
    lines.append(f"Estimated Monthly Rent: {estimate}")
    if rent.get("rent") and rent.get("rentRangeLow") and rent.get("rentRangeHigh"):
        lines.append(
            f"Rent Range: {format_money(rent['rentRangeLow'])} - {format_money(rent['rentRangeHigh'], per_month=True)}"
        )

    text = "\n".join(lines)
    return text + format_comparables(rent.get("comparables"), rental=True, limit=5)


# ---------------------------------------------------------------------------
# Property details
# ---------------------------------------------------------------------------
def format_estimate_parameters(prop: Mapping[str, Any]) -> str:
    """Values to copy into the value/rent estimate tools."""
    return "\n".join(
        [
            f"Address: {prop.get('formattedAddress') or NA}",
            f"Latitude: {prop.get('latitude') or NA}",
            f"Longitude: {prop.get('longitude') or NA}",
            f"Property Type: {prop.get('propertyType') or NA}",
            f"Bedrooms: {prop.get('bedrooms') or NA}",
            f"Bathrooms: {prop.get('bathrooms') or NA}",
            f"Square Footage: {prop.get('squareFootage') or NA}",
        ]
    )


def format_property_details(prop: Mapping[str, Any]) -> str:
    text = format_property(prop)
    if prop.get("id"):
        text += f"\nProperty ID: {prop['id']}"
    owner = prop.get("owner")
    if isinstance(owner, Mapping) and owner.get("names"):
        text += f"\nOwner: {', '.join(str(n) for n in owner['names'])}"
    text += (
        "\n\nEstimation Parameters (use with get_property_value or get_rent_estimates):\n"
        f"{format_estimate_parameters(prop)}"
    )
    return text


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------
def format_remaining(calls_remaining: int, max_calls: int) -> str:
    return f"API calls remaining: {calls_remaining}/{max_calls}"


def format_status(status: GovernorStatus, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    last_call = status.last_call_time.strftime("%Y-%m-%d %H:%M:%S") if status.last_call_time else "Never"
    return "\n".join(
        [
            "Server Status",
            "",
            f"API Calls Remaining: {status.calls_remaining}/{status.max_calls}",
            f"Usage: {status.usage_percent:.1f}% consumed",
            f"Last Call Time: {last_call}",
            f"Rate Limiting: {'Enabled' if status.rate_limit_enabled else 'Disabled'}",
            f"Rate Limit: {status.rate_limit_per_minute} calls per minute",
            f"Current Time: {now.strftime('%Y-%m-%d %H:%M:%S')}",
        ]
    )


def summarise_first_record(records: Any) -> Dict[str, Any]:
    """Compact debug view of a list payload for log lines."""
    if not isinstance(records, list) or not records or not isinstance(records[0], Mapping):
        return {"count": len(records) if isinstance(records, list) else 0}
    first = records[0]
    return {
        "count": len(records),
        "first": {k: first.get(k) for k in ("id", "formattedAddress", "propertyType", "price", "bedrooms", "bathrooms")},
    }
