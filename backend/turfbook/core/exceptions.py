"""
Domain errors raised by the reservation/booking engine.

Every error carries a stable machine-readable `code` so the operator UI can
tell "someone else just took it" apart from "that slot doesn't exist" and
from "try again, the server had trouble". The HTTP layer renders them as
{"detail": message, "code": code} with `status_code`.

Taxonomy:
  - Conflict: the slot was taken or leased by someone else. Not retried.
  - NotFound: a referenced slot/booking/turf id does not exist.
  - Invariant violation: double-cancel, slot/booking mismatch. Rejected
    inside the transaction with no partial effect.
  - Infrastructure: storage unreachable. Nothing was persisted; the caller
    may retry the whole operation after backoff.
"""

from fastapi import status


class TurfBookError(Exception):
    code = "turfbook_error"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Request could not be processed"

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.message
        self.context = context
        super().__init__(self.message)


# NotFound

class SlotNotFoundError(TurfBookError):
    code = "slot_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Slot not found"


class BookingNotFoundError(TurfBookError):
    code = "booking_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Booking not found"


class TurfNotFoundError(TurfBookError):
    code = "turf_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Turf not found"


# Conflict

class SlotNotAvailableError(TurfBookError):
    code = "slot_not_available"
    status_code = status.HTTP_409_CONFLICT
    message = "Slot not available. Please pick another slot."


class SlotStateConflictError(TurfBookError):
    code = "slot_state_conflict"
    status_code = status.HTTP_409_CONFLICT
    message = "Slot is not in a state that allows this change"


# Invariant violations

class BookingAlreadyCancelledError(TurfBookError):
    code = "booking_already_cancelled"
    status_code = status.HTTP_409_CONFLICT
    message = "Booking is already cancelled"


class BookingSlotMismatchError(TurfBookError):
    code = "booking_slot_mismatch"
    status_code = status.HTTP_409_CONFLICT
    message = "Booking does not reference this slot"


class NotTurfOwnerError(TurfBookError):
    code = "not_turf_owner"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Only the turf owner can change this slot"


# Infrastructure

class StorageUnavailableError(TurfBookError):
    code = "storage_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Storage is temporarily unavailable. Please try again."
