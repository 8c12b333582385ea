"""
Tests for booking endpoints: create, cancel, list and folio lookup.
"""

import re

import pytest
from httpx import AsyncClient

from conftest import load_room
from cineclic.services.seat_layout import AVAILABLE, OCCUPIED, SeatRef, state_name, get_seat


def seats(*labels: str) -> list[dict]:
    return [{"row": label[0], "column": int(label[1:])} for label in labels]


async def book(client: AsyncClient, headers: dict, screening_id: int, *labels: str):
    return await client.post(
        "/api/v1/bookings/",
        json={"screening_id": screening_id, "seats": seats(*labels)},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_book_seats(client: AsyncClient, auth_headers, future_screening, session_factory):
    """Successful booking marks the seats occupied and returns a folio."""
    response = await book(client, auth_headers, future_screening.id, "A1", "A2")
    assert response.status_code == 201
    data = response.json()
    assert data["screening_id"] == future_screening.id
    assert data["status"] == "ACTIVA"
    assert data["seats"] == seats("A1", "A2")
    assert re.fullmatch(r"\d{4}-\d{4}", data["folio"])

    room = await load_room(session_factory, future_screening.room_id)
    assert state_name(get_seat(room.layout, SeatRef("A", 1))) == OCCUPIED
    assert state_name(get_seat(room.layout, SeatRef("A", 2))) == OCCUPIED
    assert state_name(get_seat(room.layout, SeatRef("A", 3))) == AVAILABLE


@pytest.mark.asyncio
async def test_book_taken_seat_conflicts(
    client: AsyncClient, auth_headers, other_auth_headers, future_screening, session_factory,
):
    """A request that includes one taken seat fails as a whole and names the seat."""
    first = await book(client, auth_headers, future_screening.id, "A1", "A2")
    assert first.status_code == 201

    response = await book(client, other_auth_headers, future_screening.id, "A2", "A3")
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "seat_conflict"
    assert data["seats"] == ["A2"]

    # A3 was not written
    room = await load_room(session_factory, future_screening.room_id)
    assert state_name(get_seat(room.layout, SeatRef("A", 3))) == AVAILABLE


@pytest.mark.asyncio
async def test_seat_held_by_another_viewer_cannot_be_booked(
    client: AsyncClient, other_auth_headers, coordinator, future_screening,
):
    """The public seat map never reveals who holds a seat, so a hold cannot be claimed by someone else."""
    await coordinator.select_seat(future_screening.id, ("A", 1), "viewer-victim")

    seat_map = await client.get(f"/api/v1/screenings/{future_screening.id}/seats")
    leaked = {seat.get("held_by") for seat in seat_map.json()["seats"]} - {None}
    assert leaked == set()

    for guess in ("viewer-other", None):
        response = await client.post(
            "/api/v1/bookings/",
            json={"screening_id": future_screening.id, "seats": seats("A1"), "client_id": guess},
            headers=other_auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "seat_conflict"


@pytest.mark.asyncio
async def test_book_unauthenticated(client: AsyncClient, future_screening):
    """Unauthenticated booking returns 401."""
    response = await client.post(
        "/api/v1/bookings/",
        json={"screening_id": future_screening.id, "seats": seats("A1")},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_too_many_seats(client: AsyncClient, auth_headers, future_screening):
    """More than five seats in one booking is rejected."""
    response = await book(client, auth_headers, future_screening.id, "A1", "A2", "A3", "A4", "A5", "B1")
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_book_no_seats(client: AsyncClient, auth_headers, future_screening):
    response = await client.post(
        "/api/v1/bookings/",
        json={"screening_id": future_screening.id, "seats": []},
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_book_same_seat_twice_in_request(client: AsyncClient, auth_headers, future_screening):
    response = await book(client, auth_headers, future_screening.id, "A1", "A1")
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_book_unknown_seat(client: AsyncClient, auth_headers, future_screening):
    response = await book(client, auth_headers, future_screening.id, "Z9")
    assert response.status_code == 400
    assert response.json()["seats"] == ["Z9"]


@pytest.mark.asyncio
async def test_book_started_screening(client: AsyncClient, auth_headers, past_screening):
    """Screenings that already started cannot be booked."""
    response = await book(client, auth_headers, past_screening.id, "A1")
    assert response.status_code == 400
    assert response.json()["error"] == "screening_unavailable"


@pytest.mark.asyncio
async def test_book_unknown_screening(client: AsyncClient, auth_headers):
    response = await book(client, auth_headers, 9999, "A1")
    assert response.status_code == 400
    assert response.json()["error"] == "screening_unavailable"


@pytest.mark.asyncio
async def test_booking_sends_confirmation(client: AsyncClient, auth_headers, future_screening, coordinator, email_sender):
    response = await book(client, auth_headers, future_screening.id, "B1", "B2")
    assert response.status_code == 201
    await coordinator.wait_idle()

    assert len(email_sender.outbox) == 1
    email = email_sender.outbox[0]
    assert email.to == "test@example.com"
    assert response.json()["folio"] in email.body
    assert "B1, B2" in email.body
    assert "$171.00" in email.body
    assert "20 minutes" in email.body


@pytest.mark.asyncio
async def test_cancel_requires_confirmation(client: AsyncClient, auth_headers, future_screening, session_factory):
    """Without confirm nothing changes; with confirm the seats are released."""
    booking = (await book(client, auth_headers, future_screening.id, "A1", "A2")).json()

    prompt = await client.patch(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth_headers)
    assert prompt.status_code == 200
    assert prompt.json()["requires_confirmation"] is True
    assert prompt.json()["status"] == "ACTIVA"

    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}/cancel",
        json={"confirm": True},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "CANCELADA"
    assert data["requires_confirmation"] is False
    assert data["folio"] == booking["folio"]

    room = await load_room(session_factory, future_screening.room_id)
    assert state_name(get_seat(room.layout, SeatRef("A", 1))) == AVAILABLE
    assert state_name(get_seat(room.layout, SeatRef("A", 2))) == AVAILABLE


@pytest.mark.asyncio
async def test_cancel_already_cancelled(client: AsyncClient, auth_headers, future_screening):
    booking = (await book(client, auth_headers, future_screening.id, "A1")).json()
    url = f"/api/v1/bookings/{booking['id']}/cancel"

    first = await client.patch(url, json={"confirm": True}, headers=auth_headers)
    assert first.status_code == 200

    second = await client.patch(url, json={"confirm": True}, headers=auth_headers)
    assert second.status_code == 400
    assert second.json()["error"] == "already_cancelled"


@pytest.mark.asyncio
async def test_cancel_other_users_booking(client: AsyncClient, auth_headers, other_auth_headers, future_screening):
    """Only the owner can cancel."""
    booking = (await book(client, auth_headers, future_screening.id, "A1")).json()

    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}/cancel",
        json={"confirm": True},
        headers=other_auth_headers,
    )
    assert response.status_code == 403
    assert response.json()["error"] == "unauthorized"


@pytest.mark.asyncio
async def test_cancel_closed_near_showtime(client: AsyncClient, auth_headers, soon_screening):
    """Cancellation closes thirty minutes before the screening starts."""
    booking = (await book(client, auth_headers, soon_screening.id, "A1")).json()

    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}/cancel",
        json={"confirm": True},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "cancellation_closed"


@pytest.mark.asyncio
async def test_cancel_nonexistent_booking(client: AsyncClient, auth_headers):
    response = await client.patch(
        "/api/v1/bookings/99999/cancel",
        json={"confirm": True},
        headers=auth_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_rebook_after_cancel(client: AsyncClient, auth_headers, other_auth_headers, future_screening):
    booking = (await book(client, auth_headers, future_screening.id, "A1")).json()
    await client.patch(f"/api/v1/bookings/{booking['id']}/cancel", json={"confirm": True}, headers=auth_headers)

    response = await book(client, other_auth_headers, future_screening.id, "A1")
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_list_user_bookings(client: AsyncClient, auth_headers, other_auth_headers, future_screening):
    """Users only see their own bookings."""
    await book(client, auth_headers, future_screening.id, "A1")
    await book(client, auth_headers, future_screening.id, "A2")
    await book(client, other_auth_headers, future_screening.id, "B1")

    response = await client.get("/api/v1/bookings/", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 2
    assert {tuple(b["seats"][0].values()) for b in data} == {("A", 1), ("A", 2)}


@pytest.mark.asyncio
async def test_get_booking_by_folio(client: AsyncClient, auth_headers, other_auth_headers, future_screening):
    booking = (await book(client, auth_headers, future_screening.id, "A1")).json()

    response = await client.get(f"/api/v1/bookings/folio/{booking['folio']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["id"] == booking["id"]

    response = await client.get(f"/api/v1/bookings/folio/{booking['folio']}", headers=other_auth_headers)
    assert response.status_code == 403

    response = await client.get("/api/v1/bookings/folio/0000-0000", headers=auth_headers)
    assert response.status_code == 404
