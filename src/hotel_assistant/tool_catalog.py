"""The fixed catalog of hotel tools the model may call."""

from __future__ import annotations

from typing import Any

from .models import ToolDeclaration


def _params(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": properties or {},
        "required": required or [],
    }


def _string(description: str, enum: list[str] | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {"type": "string", "description": description}
    if enum:
        out["enum"] = enum
    return out


def _number(description: str) -> dict[str, Any]:
    return {"type": "number", "description": description}


HOTEL_TOOLS: tuple[ToolDeclaration, ...] = (
    ToolDeclaration(
        "getBookingStats",
        "Get booking statistics for the hotel including counts and revenue",
        _params(
            {"period": _string("Time period for statistics", ["today", "week", "month", "year"])},
            ["period"],
        ),
    ),
    ToolDeclaration(
        "getExpiringBookings",
        "Get list of bookings checking out today (expiring soon)",
        _params({"limit": _number("Maximum number of bookings to return")}),
    ),
    ToolDeclaration(
        "searchBookings",
        "Search for bookings by guest name, email, phone, or booking reference",
        _params(
            {
                "query": _string("Search term (name, email, phone, or reference)"),
                "status": _string(
                    "Filter by booking status",
                    ["all", "confirmed", "pending", "cancelled", "checked_in", "checked_out"],
                ),
            },
            ["query"],
        ),
    ),
    ToolDeclaration(
        "getRevenueReport",
        "Get revenue breakdown for a specific date range",
        _params(
            {
                "startDate": _string("Start date in ISO format (YYYY-MM-DD)"),
                "endDate": _string("End date in ISO format (YYYY-MM-DD)"),
            },
            ["startDate", "endDate"],
        ),
    ),
    ToolDeclaration(
        "getRoomTypePerformance",
        "Get performance metrics for room types (bookings, revenue, popularity)",
        _params(
            {"period": _string("Time period for analysis", ["week", "month", "year"])},
            ["period"],
        ),
    ),
    ToolDeclaration(
        "getTodaySnapshot",
        "Get a complete snapshot of today's hotel operations: arrivals, departures, occupancy",
        _params(),
    ),
    ToolDeclaration(
        "getPaymentSummary",
        "Get payment status summary including pending payments, total collected, refunds, and outstanding amounts",
        _params(
            {"period": _string("Time period for payment summary", ["today", "week", "month", "year"])},
            ["period"],
        ),
    ),
    ToolDeclaration(
        "getPendingPayments",
        "Get list of bookings with pending or failed payments that need attention",
        _params({"limit": _number("Maximum number of bookings to return")}),
    ),
    ToolDeclaration(
        "getGuestProfile",
        "Get detailed profile of a guest including their booking history, total spent, and preferences",
        _params({"email": _string("Guest email address to look up")}, ["email"]),
    ),
    ToolDeclaration(
        "getBookingDetails",
        "Get complete details of a specific booking including payment info, room details, and special requests",
        _params({"bookingId": _string("The booking ID or reference to look up")}, ["bookingId"]),
    ),
    ToolDeclaration(
        "getTopGuests",
        "Get list of top guests by number of bookings or total spent",
        _params(
            {
                "sortBy": _string("Sort by number of stays or total spent", ["bookings", "revenue"]),
                "limit": _number("Maximum number of guests to return"),
            }
        ),
    ),
    ToolDeclaration(
        "getOccupancyTrends",
        "Get check-in and check-out trends for a period (useful for occupancy patterns and arrival analysis)",
        _params(
            {
                "startDate": _string("Start date in ISO format (YYYY-MM-DD)"),
                "endDate": _string("End date in ISO format (YYYY-MM-DD)"),
            },
            ["startDate", "endDate"],
        ),
    ),
    ToolDeclaration(
        "requestRevenueReport",
        "Trigger a background job to generate a professional PDF revenue report and email it to a recipient",
        _params(
            {
                "startDate": _string("Start date for the report (YYYY-MM-DD)"),
                "endDate": _string("End date for the report (YYYY-MM-DD)"),
                "email": _string("Email address to send the PDF report to"),
                "reportType": _string("Type of report", ["revenue", "occupancy", "comprehensive"]),
            },
            ["startDate", "endDate", "email"],
        ),
        mutates=True,
    ),
    ToolDeclaration(
        "updateBookingStatus",
        "Confirm or cancel a booking by ID",
        _params(
            {
                "bookingId": _string("The ID of the booking to update"),
                "status": _string("New booking status", ["confirmed", "cancelled", "pending"]),
                "note": _string("Reason or note for the status change"),
            },
            ["bookingId", "status"],
        ),
        mutates=True,
    ),
    ToolDeclaration(
        "updatePaymentStatus",
        "Mark a booking as paid or failed",
        _params(
            {
                "bookingId": _string("The ID of the booking"),
                "status": _string("New payment status", ["paid", "failed", "pending"]),
                "amountPaid": _number("Optional amount paid if marking as partial or full"),
            },
            ["bookingId", "status"],
        ),
        mutates=True,
    ),
    ToolDeclaration(
        "updateStayStatus",
        "Check a guest in or out of their room",
        _params(
            {
                "bookingId": _string("The ID of the booking"),
                "status": _string("New stay status", ["checked-in", "checked-out", "not-checked-in"]),
            },
            ["bookingId", "status"],
        ),
        mutates=True,
    ),
    ToolDeclaration(
        "getRevenueForecast",
        "Predict future revenue based on historical trends and current bookings",
        _params(
            {"targetMonth": _string("The month to forecast (e.g. 'January 2026' or '2026-01')")},
            ["targetMonth"],
        ),
    ),
    ToolDeclaration(
        "getOccupancyWarnings",
        "Identify upcoming weeks with low occupancy to suggest promotions",
        _params({"weeksAhead": _number("Number of weeks to look ahead (default: 4)")}),
    ),
    ToolDeclaration(
        "saveInsight",
        "Save a new piece of knowledge, user preference, or report summary to the long-term memory",
        _params(
            {
                "category": _string(
                    "Insight category",
                    ["hotel_data", "user_preference", "report_summary", "operational_strategy"],
                ),
                "content": _string("The actual knowledge or preference to remember"),
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Keywords for retrieval (e.g. 'revenue', 'formatting')",
                },
                "importance": _number("Relevance score from 1 to 10"),
            },
            ["category", "content", "tags"],
        ),
        mutates=True,
    ),
    ToolDeclaration(
        "searchKnowledgeBase",
        "Search the long-term memory for past insights, summaries, or user preferences",
        _params(
            {
                "query": _string("Search term or keyword"),
                "category": _string("Optional category to filter by"),
            },
            ["query"],
        ),
    ),
)


def list_tools() -> list[ToolDeclaration]:
    """Return the full, stable tool catalog."""
    return list(HOTEL_TOOLS)


_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "array": (list, tuple),
    "object": (dict,),
}


def _type_matches(value: Any, expected: str) -> bool:
    if expected in ("number", "integer") and isinstance(value, bool):
        return False
    if expected == "integer" and isinstance(value, float):
        return value.is_integer()
    types = _JSON_TYPES.get(expected)
    return True if types is None else isinstance(value, types)


def validate_arguments(declaration: ToolDeclaration, arguments: dict[str, Any]) -> list[str]:
    """Check ``arguments`` against the declaration's schema; returns problems found.

    Covers required keys, JSON types, enums and array item types. Unknown keys pass.
    """
    schema = declaration.parameters
    properties: dict[str, Any] = schema.get("properties") or {}
    problems: list[str] = []
    for key in schema.get("required") or []:
        if arguments.get(key) in (None, ""):
            problems.append(f"'{key}' is required")
    for key, value in arguments.items():
        prop = properties.get(key)
        if prop is None or value is None:
            continue
        expected = prop.get("type")
        if expected and not _type_matches(value, expected):
            problems.append(f"'{key}' must be of type {expected}")
            continue
        if "enum" in prop and value not in prop["enum"]:
            problems.append(f"'{key}' must be one of: {', '.join(map(str, prop['enum']))}")
        item_type = (prop.get("items") or {}).get("type")
        if expected == "array" and item_type:
            if not all(_type_matches(v, item_type) for v in value):
                problems.append(f"'{key}' items must be of type {item_type}")
    return problems
