"""Domain enumerations and state-transition rules."""

import enum


class CarStatus(str, enum.Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"


class CarAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    RESERVE = "reserve"
    SELL = "sell"
    CANCEL_RESERVATION = "cancel-reservation"
    DELETE = "delete"


# Per action: statuses it may start from, and the status it leaves behind.
# ``None`` as a result means the record is removed.
ACTION_RULES: dict[CarAction, tuple[frozenset[CarStatus], CarStatus | None]] = {
    CarAction.UPDATE: (frozenset({CarStatus.AVAILABLE}), CarStatus.AVAILABLE),
    CarAction.RESERVE: (frozenset({CarStatus.AVAILABLE}), CarStatus.RESERVED),
    CarAction.SELL: (frozenset({CarStatus.AVAILABLE}), CarStatus.SOLD),
    CarAction.CANCEL_RESERVATION: (
        frozenset({CarStatus.RESERVED}),
        CarStatus.AVAILABLE,
    ),
    CarAction.DELETE: (frozenset({CarStatus.AVAILABLE}), None),
}

# Statuses that carry a customer record
CUSTOMER_STATUSES: frozenset[CarStatus] = frozenset(
    {CarStatus.RESERVED, CarStatus.SOLD}
)
