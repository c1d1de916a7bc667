"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation lease metrics
slot_reservations = Counter(
    'slot_reservations_total',
    'Slot reservation attempts',
    ['result']  # acquired, rejected
)

slot_transitions = Counter(
    'slot_transitions_total',
    'Slot lifecycle transitions',
    ['transition']  # release, book, block, unblock, expire
)

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, conflict, not_found, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Atomic booking transaction latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

booking_cancellations = Counter(
    'booking_cancellations_total',
    'Booking cancellation attempts',
    ['result']  # cancelled, rejected
)

# Schedule generation
slots_generated = Counter(
    'slots_generated_total',
    'Slot rows created by schedule generation',
    ['status']  # AVAILABLE, BLOCKED
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

# Infrastructure
storage_errors = Counter(
    'storage_errors_total',
    'Requests aborted because the database was unreachable'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation(acquired: bool):
    """Record a reserve attempt outcome."""
    result = "acquired" if acquired else "rejected"
    slot_reservations.labels(result=result).inc()


def record_transition(transition: str):
    """Record slot transition. Transition: release, book, block, unblock, expire"""
    slot_transitions.labels(transition=transition).inc()


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, not_found, error"""
    booking_attempts.labels(status=status).inc()


def record_cancellation(cancelled: bool):
    result = "cancelled" if cancelled else "rejected"
    booking_cancellations.labels(result=result).inc()


def record_slots_generated(status: str, count: int):
    if count:
        slots_generated.labels(status=status).inc(count)


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
