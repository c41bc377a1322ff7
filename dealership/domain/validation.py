"""
Field-level and cross-field checks for car drafts and customers.

Every check is pure and synchronous.  ``*_errors`` collect every failing
field (the record service answers with all of them at once);
``validate_*`` raise the first one, which is what the client side needs
to block a submission.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from pathlib import PurePath

from .entities import CarDraft, Customer
from .exceptions import ValidationError

MIN_YEAR = 1900
MAX_YEAR = 9999
MIN_PRICE = Decimal("1")
# cars.price is Numeric(12, 2)
MAX_PRICE = Decimal("9999999999.99")

ALLOWED_PICTURE_TYPES = frozenset({"image/jpeg", "image/png"})
ALLOWED_PICTURE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})

_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
_PHONE_RE = re.compile(r"[0-9]+")


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def vehicle_errors(
    draft: CarDraft | None, *, require_picture: bool
) -> list[ValidationError]:
    if draft is None:
        return [ValidationError("car", "car details are required")]

    errors: list[ValidationError] = []

    for name in ("make", "model"):
        if _blank(getattr(draft, name)):
            errors.append(ValidationError(name, f"{name} is required"))

    year = draft.year
    if year is None:
        errors.append(ValidationError("year", "year is required"))
    elif isinstance(year, bool) or not isinstance(year, int):
        errors.append(ValidationError("year", "year must be a whole number"))
    elif year < MIN_YEAR:
        errors.append(
            ValidationError("year", f"year must be at least {MIN_YEAR}")
        )
    elif year > MAX_YEAR:
        errors.append(
            ValidationError("year", f"year must be at most {MAX_YEAR}")
        )

    if draft.price is None:
        errors.append(ValidationError("price", "price is required"))
    else:
        try:
            price = Decimal(str(draft.price))
        except InvalidOperation:
            errors.append(ValidationError("price", "price must be a number"))
        else:
            if not price.is_finite():
                errors.append(ValidationError("price", "price must be a number"))
            elif price < MIN_PRICE:
                errors.append(
                    ValidationError("price", f"price must be at least {MIN_PRICE}")
                )
            elif price > MAX_PRICE:
                errors.append(
                    ValidationError("price", f"price must be at most {MAX_PRICE}")
                )

    picture = draft.picture
    if picture is None:
        if require_picture:
            errors.append(ValidationError("picture", "picture is required"))
    else:
        extension = PurePath(picture.filename or "").suffix.lower()
        if (
            picture.content_type not in ALLOWED_PICTURE_TYPES
            or extension not in ALLOWED_PICTURE_EXTENSIONS
        ):
            errors.append(
                ValidationError(
                    "picture", "picture must be a JPEG or PNG image"
                )
            )
        elif not picture.data:
            errors.append(ValidationError("picture", "picture is empty"))

    return errors


def customer_errors(customer: Customer | None) -> list[ValidationError]:
    if customer is None:
        return [ValidationError("customer", "customer details are required")]

    errors: list[ValidationError] = []

    if _blank(customer.full_name):
        errors.append(ValidationError("full_name", "full name is required"))

    if _blank(customer.email):
        errors.append(ValidationError("email", "email is required"))
    elif not _EMAIL_RE.fullmatch(customer.email.strip()):
        errors.append(
            ValidationError("email", "email is not a valid email address")
        )

    if _blank(customer.phone_number):
        errors.append(
            ValidationError("phone_number", "phone number is required")
        )
    elif not _PHONE_RE.fullmatch(customer.phone_number):
        errors.append(
            ValidationError(
                "phone_number", "phone number must contain digits only"
            )
        )

    return errors


def validate_vehicle(draft: CarDraft, *, require_picture: bool) -> None:
    """Raise the first ``ValidationError`` found in *draft*, if any."""
    errors = vehicle_errors(draft, require_picture=require_picture)
    if errors:
        raise errors[0]


def validate_customer(customer: Customer) -> None:
    """Raise the first ``ValidationError`` found in *customer*, if any."""
    errors = customer_errors(customer)
    if errors:
        raise errors[0]
