"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from dealership.domain.entities import Customer
from dealership.domain.enums import CUSTOMER_STATUSES, CarStatus


# ── Requests ──────────────────────────────────────────────────────────


class CustomerRequest(BaseModel):
    """Body of ``/reserve`` and ``/sell``; field checks run in the domain."""

    full_name: str = Field(
        "", validation_alias=AliasChoices("fullname", "fullName", "full_name")
    )
    email: str = ""
    phone_number: str = Field(
        "",
        validation_alias=AliasChoices("phonenumber", "phoneNumber", "phone_number"),
    )

    def to_customer(self) -> Customer:
        return Customer(
            full_name=self.full_name.strip(),
            email=self.email.strip(),
            phone_number=self.phone_number.strip(),
        )


# ── Responses ─────────────────────────────────────────────────────────


class CustomerResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(serialization_alias="fullName")
    email: str
    phone_number: str = Field(serialization_alias="phoneNumber")


class CarResponse(BaseModel):
    id: str
    make: str
    model: str
    year: int
    price: float
    status: CarStatus
    picture: str
    customer: Optional[CustomerResponse] = None

    @classmethod
    def from_model(cls, car) -> CarResponse:
        status = CarStatus(car.status)
        customer = None
        if status in CUSTOMER_STATUSES:
            customer = CustomerResponse(
                full_name=car.customer_full_name,
                email=car.customer_email,
                phone_number=car.customer_phone_number,
            )
        return cls(
            id=car.id,
            make=car.make,
            model=car.model,
            year=car.year,
            price=float(car.price),
            status=status,
            picture=car.picture_id,
            customer=customer,
        )


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
