"""Error taxonomy shared by the client side and the record service."""

from __future__ import annotations


class InventoryError(Exception):
    """Base class for every inventory failure."""


class ValidationError(InventoryError):
    """A field failed a local check; nothing was sent to the service."""

    def __init__(self, field: str, reason: str):
        super().__init__(reason)
        self.field = field
        self.reason = reason


class StateConflict(InventoryError):
    """The car is not in a status the requested action may start from."""

    def __init__(self, car_id: str | None, status, action):
        status_value = getattr(status, "value", status)
        action_value = getattr(action, "value", action)
        super().__init__(
            f"Cannot {action_value} car {car_id} in status {status_value}"
        )
        self.car_id = car_id
        self.status = status
        self.action = action


class NotFound(InventoryError):
    """The target record no longer exists."""

    def __init__(self, resource_id: str, message: str | None = None):
        super().__init__(message or f"Record {resource_id} not found")
        self.resource_id = resource_id


class TransportError(InventoryError):
    """The record service call failed or answered with an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InvariantViolation(InventoryError):
    """A car record breaks the customer/status pairing."""


class ConfirmationRequired(InventoryError):
    """An irreversible action was submitted without acknowledgement."""
