from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from facility_booking import (
    PageRequest,
    ReservationFilter,
    ReservationService,
    YamlFacilityCatalog,
    YamlReservationStore,
    load_settings,
    parse_reservation_request,
)
from facility_booking.errors import ValidationError
from facility_booking.models import parse_status

mcp = FastMCP(
    "Facility Booking MCP Server",
    instructions="Expose facility availability and reservation operations from the facility_booking project.",
    json_response=True,
)

SETTINGS = load_settings()
CATALOG = YamlFacilityCatalog(SETTINGS.facilities_file)
SERVICE = ReservationService(
    facilities=CATALOG,
    store=YamlReservationStore(SETTINGS.data_dir),
    policy=SETTINGS.booking_policy(),
)


@mcp.resource("facility://facilities")
async def list_facilities() -> list[str]:
    """List bookable facility ids."""
    return CATALOG.facility_ids()


@mcp.tool()
def get_availability(facility_id: str, date: str) -> dict[str, Any]:
    """Return operating hours, booked ranges and rate for a facility on a date (YYYY-MM-DD)."""
    return SERVICE.get_availability(facility_id, date).to_dict()


@mcp.tool()
def list_my_reservations(requester_id: str, status: str | None = None, page: int = 1) -> dict[str, Any]:
    """Return a page of reservations made by ``requester_id``."""
    result = SERVICE.list_reservations(
        ReservationFilter(requester_id=requester_id, status=parse_status(status) if status else None),
        PageRequest(page=page),
    )
    return {"reservations": [row.to_dict() for row in result.items], "pagination": result.pagination()}


@mcp.tool()
def add_quick_reservation(requester_id: str, request_text: str, notes: str | None = None) -> dict[str, Any]:
    """Create a pending reservation from text like "field-1 2026-02-24 10:00~12:00"."""
    parsed = parse_reservation_request(request_text)
    if not parsed.facility_id:
        raise ValidationError("Could not determine facility from request text.")

    created = SERVICE.create_reservation(
        parsed.facility_id,
        parsed.date,
        parsed.start,
        parsed.end,
        requester_id,
        notes=notes,
    )
    return created.to_dict()


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
