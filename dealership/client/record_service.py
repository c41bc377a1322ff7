"""
Async client for the car record service.

Wraps ``httpx.AsyncClient`` and maps the service's answers onto the domain
error taxonomy:

* 400 / 422 -> ``ValidationError`` (first field reported)
* 404       -> ``NotFound``
* 409       -> ``StateConflict``
* any other non-success status or network failure -> ``TransportError``

Multipart encoding of car drafts lives here and nowhere else.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

import httpx

from dealership.config import settings
from dealership.domain.entities import Car, CarDraft, Customer
from dealership.domain.enums import CarAction, CarStatus
from dealership.domain.exceptions import (
    NotFound,
    StateConflict,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def car_from_json(payload: dict[str, Any]) -> Car:
    customer = payload.get("customer")
    return Car(
        id=str(payload["id"]),
        make=payload["make"],
        model=payload["model"],
        year=int(payload["year"]),
        price=Decimal(str(payload["price"])),
        picture=payload.get("picture") or "",
        status=CarStatus(payload["status"]),
        customer=(
            Customer(
                full_name=customer["fullName"],
                email=customer["email"],
                phone_number=customer["phoneNumber"],
            )
            if customer
            else None
        ),
    )


def customer_to_json(customer: Customer) -> dict[str, str]:
    return {
        "fullname": customer.full_name,
        "email": customer.email,
        "phonenumber": customer.phone_number,
    }


def _draft_form(draft: CarDraft) -> tuple[dict[str, str], dict[str, tuple]]:
    data = {
        "make": draft.make,
        "model": draft.model,
        "year": str(draft.year),
        "price": str(draft.price),
        "status": CarStatus.AVAILABLE.value,
    }
    files = {}
    if draft.picture is not None:
        files["picture"] = (
            draft.picture.filename,
            draft.picture.data,
            draft.picture.content_type or "application/octet-stream",
        )
    return data, files


def _error_detail(response: httpx.Response) -> Any:
    try:
        return response.json().get("detail")
    except (ValueError, AttributeError):
        return response.text or None


class RecordServiceClient:
    """Coroutines for every endpoint of the record service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        http: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        if timeout is None:
            timeout = settings.request_timeout_seconds
        if http is None:
            http = httpx.AsyncClient(
                base_url=base_url or settings.record_service_url,
                timeout=timeout,
            )
        self.http = http

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    # ── Queries ───────────────────────────────────────────────────────

    async def list_cars(self, status: CarStatus) -> list[Car]:
        status = CarStatus(status)
        response = await self._send("GET", f"/cars/{status.value}")
        return [car_from_json(item) for item in response.json() or []]

    async def fetch_image(self, picture_id: str) -> tuple[bytes, str]:
        response = await self._send(
            "GET", f"/cars/image/{picture_id}", resource_id=picture_id
        )
        content_type = response.headers.get("content-type", "image/jpeg")
        return response.content, content_type.split(";")[0].strip()

    # ── Mutations ─────────────────────────────────────────────────────

    async def create_car(self, draft: CarDraft) -> Car:
        data, files = _draft_form(draft)
        response = await self._send(
            "POST", "/cars", data=data, files=files or None, action=CarAction.CREATE
        )
        return car_from_json(response.json())

    async def update_car(self, car_id: str, draft: CarDraft) -> Car:
        data, files = _draft_form(draft)
        response = await self._send(
            "PUT",
            f"/cars/{car_id}",
            data=data,
            files=files or None,
            resource_id=car_id,
            action=CarAction.UPDATE,
        )
        return car_from_json(response.json())

    async def delete_car(self, car_id: str) -> None:
        await self._send(
            "DELETE", f"/cars/{car_id}", resource_id=car_id, action=CarAction.DELETE
        )

    async def reserve_car(self, car_id: str, customer: Customer) -> Car:
        response = await self._send(
            "POST",
            f"/cars/{car_id}/reserve",
            json=customer_to_json(customer),
            resource_id=car_id,
            action=CarAction.RESERVE,
        )
        return car_from_json(response.json())

    async def sell_car(self, car_id: str, customer: Customer) -> Car:
        response = await self._send(
            "POST",
            f"/cars/{car_id}/sell",
            json=customer_to_json(customer),
            resource_id=car_id,
            action=CarAction.SELL,
        )
        return car_from_json(response.json())

    async def cancel_reservation(self, car_id: str) -> Car:
        response = await self._send(
            "POST",
            f"/cars/{car_id}/cancel-reservation",
            resource_id=car_id,
            action=CarAction.CANCEL_RESERVATION,
        )
        return car_from_json(response.json())

    # ── Plumbing ──────────────────────────────────────────────────────

    async def _send(
        self,
        method: str,
        url: str,
        *,
        resource_id: Optional[str] = None,
        action: Optional[CarAction] = None,
        **kwargs,
    ) -> httpx.Response:
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise TransportError(f"Record service unreachable: {exc}") from exc

        if response.is_success:
            return response

        detail = _error_detail(response)
        status_code = response.status_code
        logger.warning("%s %s -> %d %s", method, url, status_code, detail)

        if status_code in (400, 422):
            raise self._validation_error(detail)
        if status_code == 404:
            raise NotFound(resource_id or url, str(detail) if detail else None)
        if status_code == 409:
            # The service checked the source state and rejected the action.
            status = detail.get("status") if isinstance(detail, dict) else None
            raise StateConflict(resource_id, status or "unknown", action or method)
        raise TransportError(
            f"Record service answered {status_code}: {detail}", status_code
        )

    @staticmethod
    def _validation_error(detail: Any) -> ValidationError:
        # Own validators answer {field: reason}; FastAPI answers a list.
        if isinstance(detail, dict) and detail:
            field, reason = next(iter(detail.items()))
            return ValidationError(str(field), str(reason))
        if isinstance(detail, list) and detail:
            first = detail[0]
            loc = first.get("loc") or ["request"]
            return ValidationError(str(loc[-1]), str(first.get("msg", "invalid")))
        return ValidationError("request", str(detail or "invalid request"))
