"""
Dependencies that hand request handlers the process-wide singletons
created in the application lifespan.
"""

from starlette.requests import HTTPConnection

from cineclic.realtime.connection_manager import ConnectionManager
from cineclic.services.reservation_coordinator import ReservationCoordinator


def get_coordinator(connection: HTTPConnection) -> ReservationCoordinator:
    return connection.app.state.coordinator


def get_connection_manager(connection: HTTPConnection) -> ConnectionManager:
    return connection.app.state.connections
