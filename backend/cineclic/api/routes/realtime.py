"""
Realtime seat-selection channel, one WebSocket per viewer of a screening.

Holds placed through a connection belong to it and are released when the
connection closes.
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from cineclic.api.deps import get_connection_manager, get_coordinator
from cineclic.core.logging import get_logger
from cineclic.realtime.connection_manager import ConnectionManager
from cineclic.realtime.message_handlers import handle_message
from cineclic.services.reservation_coordinator import ReservationCoordinator

logger = get_logger(__name__)
router = APIRouter(tags=["Realtime"])


@router.websocket("/ws/screenings/{screening_id}")
async def seat_selection(
    websocket: WebSocket,
    screening_id: int,
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    client_id = await connections.connect(websocket, screening_id)
    await connections.send(client_id, {
        "event": "connected",
        "client_id": client_id,
        "screening_id": screening_id,
    })
    try:
        while True:
            raw = await websocket.receive_text()
            reply = await handle_message(coordinator, screening_id, client_id, raw)
            await connections.send(client_id, reply)
    except WebSocketDisconnect:
        logger.info("realtime_disconnected", client_id=client_id, screening_id=screening_id)
    finally:
        connections.disconnect(client_id)
        await coordinator.release_client(client_id)
