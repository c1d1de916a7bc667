from turfbook.schemas.turf import TurfCreate, TurfUpdate, TurfResponse, PricingRules
from turfbook.schemas.slot import (
    SlotResponse, SlotGridResponse, ReserveRequest, BlockRequest, UnblockRequest,
    GenerateSlotsRequest, GenerateSlotsResponse, ExpireLeasesResponse, OperationResult,
)
from turfbook.schemas.booking import (
    BookingCreate, BookingResponse, BookingCreatedResponse,
    BookingCancelRequest, BookingCancelResponse,
)

__all__ = [
    "TurfCreate", "TurfUpdate", "TurfResponse", "PricingRules",
    "SlotResponse", "SlotGridResponse", "ReserveRequest", "BlockRequest", "UnblockRequest",
    "GenerateSlotsRequest", "GenerateSlotsResponse", "ExpireLeasesResponse", "OperationResult",
    "BookingCreate", "BookingResponse", "BookingCreatedResponse",
    "BookingCancelRequest", "BookingCancelResponse",
]
