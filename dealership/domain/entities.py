"""
Domain entities.

Patterns used
-------------
- ``Car`` ties customer presence to status at construction time: a
  reserved or sold car always carries a ``Customer``, an available one
  never does.
- ``CarDraft`` is the candidate a create/update starts from; it is only
  ever sent after passing ``validation.validate_vehicle``.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .enums import CUSTOMER_STATUSES, CarStatus
from .exceptions import InvariantViolation


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Customer:
    full_name: str
    email: str
    phone_number: str


@dataclass(frozen=True)
class PictureUpload:
    """One binary attachment submitted with a car draft."""

    filename: str
    data: bytes = field(repr=False)
    content_type: Optional[str] = None

    def __post_init__(self) -> None:
        if self.content_type is None:
            guessed, _ = mimetypes.guess_type(self.filename)
            object.__setattr__(self, "content_type", guessed)


@dataclass
class CarDraft:
    make: str = ""
    model: str = ""
    year: Optional[int] = None
    price: Optional[Decimal] = None
    picture: Optional[PictureUpload] = None

    @classmethod
    def from_car(cls, car: Car) -> CarDraft:
        """Pre-fill an edit form; the picture stays on the server."""
        return cls(make=car.make, model=car.model, year=car.year, price=car.price)


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Car:
    id: str
    make: str
    model: str
    year: int
    price: Decimal
    picture: str
    status: CarStatus = CarStatus.AVAILABLE
    customer: Optional[Customer] = None

    def __post_init__(self) -> None:
        self.status = CarStatus(self.status)
        carries_customer = self.status in CUSTOMER_STATUSES
        if carries_customer and self.customer is None:
            raise InvariantViolation(
                f"Car {self.id} is {self.status.value} but has no customer"
            )
        if not carries_customer and self.customer is not None:
            raise InvariantViolation(
                f"Car {self.id} is {self.status.value} but has a customer"
            )

    @property
    def title(self) -> str:
        return f"{self.make} {self.model}"

    @property
    def is_terminal(self) -> bool:
        return self.status == CarStatus.SOLD
