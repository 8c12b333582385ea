"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, conflict, invalid, error
)

booking_cancellations = Counter(
    'booking_cancellations_total',
    'Bookings moved to CANCELADA',
    ['reason']  # user, sweep
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking commit latency, including time spent waiting on the room lock',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Realtime seat holds
seat_hold_operations = Counter(
    'seat_hold_operations_total',
    'Realtime seat hold operations',
    ['operation', 'result']  # select/deselect/expire/release/stale, ok/rejected/skipped
)

active_seat_holds = Gauge(
    'active_seat_holds',
    'Hold timers currently armed'
)

realtime_connections = Gauge(
    'realtime_connections',
    'Open seat-selection WebSocket connections'
)

# Room serialization
room_lock_wait = Histogram(
    'room_lock_wait_seconds',
    'Time spent waiting for a room layout lock',
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5]
)

# Deadline sweep
sweep_runs = Counter(
    'deadline_sweep_runs_total',
    'Deadline sweep ticks',
    ['result']  # ok, error
)

sweep_booking_errors = Counter(
    'deadline_sweep_booking_errors_total',
    'Bookings the sweep failed to cancel'
)

stale_hold_room_errors = Counter(
    'stale_hold_room_errors_total',
    'Rooms the stale hold scan failed to clean'
)

# Notifications
notification_failures = Counter(
    'notification_failures_total',
    'Notifications that raised while sending',
    ['kind']  # confirmation, cancellation
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, invalid, error"""
    booking_attempts.labels(status=status).inc()


def record_cancellation(reason: str):
    """Record a booking cancellation. Reason: user, sweep"""
    booking_cancellations.labels(reason=reason).inc()


def record_hold_operation(operation: str, result: str):
    seat_hold_operations.labels(operation=operation, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
