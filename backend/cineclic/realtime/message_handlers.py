"""
Seat-selection messages received over the realtime channel.

Client -> server:
    {"event": "seat:select",   "seat": {"row": "A", "column": 1}}
    {"event": "seat:deselect", "seat": {"row": "A", "column": 1}}

Server -> sender (reply):
    {"event": "seat:selected",   "seat": {...}, "since": "...", "expires_in": 300}
    {"event": "seat:deselected", "seat": {...}}
    {"event": "seat:error", "error": "...", "detail": "..."}

Server -> other viewers (broadcast by the coordinator):
    {"event": "seat:update", "screening_id": 1, "seats": [{...}], "state": "selected"}
"""

import json
from typing import Any

from cineclic.core.exceptions import BookingError, ValidationError
from cineclic.core.logging import get_logger
from cineclic.services.reservation_coordinator import ReservationCoordinator
from cineclic.services.seat_layout import SeatRef

logger = get_logger(__name__)

SELECT = "seat:select"
DESELECT = "seat:deselect"


def error_message(error: BookingError) -> dict[str, Any]:
    return {"event": "seat:error", **error.to_dict()}


async def handle_message(
    coordinator: ReservationCoordinator,
    screening_id: int,
    client_id: str,
    raw: str,
) -> dict[str, Any]:
    """Apply one client message and return the reply for the sender."""
    try:
        message = json.loads(raw)
    except ValueError:
        return error_message(ValidationError("Messages must be JSON objects"))
    if not isinstance(message, dict):
        return error_message(ValidationError("Messages must be JSON objects"))

    event = message.get("event")
    if event not in (SELECT, DESELECT):
        return error_message(ValidationError(f"Unknown event: {event!r}"))
    try:
        seat = SeatRef.from_value(message.get("seat"))
    except ValueError as e:
        return error_message(ValidationError(str(e)))

    try:
        if event == SELECT:
            state = await coordinator.select_seat(screening_id, seat, client_id)
            return {
                "event": "seat:selected",
                "seat": seat.to_dict(),
                "since": state["since"],
                "expires_in": coordinator.settings.HOLD_DURATION_SECONDS,
            }
        await coordinator.deselect_seat(screening_id, seat, client_id)
        return {"event": "seat:deselected", "seat": seat.to_dict()}
    except BookingError as e:
        logger.info("realtime_request_rejected", client_id=client_id, event=event, error=e.error)
        return error_message(e)
