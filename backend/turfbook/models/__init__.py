from turfbook.models.turf import Turf
from turfbook.models.slot import Slot, SlotStatus
from turfbook.models.booking import Booking, BookingStatus, BookingSource, PaymentMode, PaymentStatus

__all__ = [
    "Turf",
    "Slot", "SlotStatus",
    "Booking", "BookingStatus", "BookingSource", "PaymentMode", "PaymentStatus",
]
