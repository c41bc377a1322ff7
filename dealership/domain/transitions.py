"""
Transition Engine
=================

Owns the decision of which mutation is legal for a car record.

* Source-state preconditions are checked here, before any network call,
  and fail with ``StateConflict``.
* Customer-attaching transitions run ``validate_customer`` first;
  create/update run ``validate_vehicle``.  A validation failure means the
  record service is never called.
* The record service is the only source of truth.  Nothing is cached or
  patched locally: every successful operation returns a
  ``TransitionResult`` whose ``refresh_required`` flag tells the caller to
  re-query the active inventory filter.

The engine talks to any object exposing the ``RecordServiceClient``
coroutines (``create_car``, ``update_car``, ``reserve_car``, ``sell_car``,
``cancel_reservation``, ``delete_car``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .entities import Car, CarDraft, Customer
from .enums import ACTION_RULES, CarAction, CarStatus
from .exceptions import StateConflict
from .validation import validate_customer, validate_vehicle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    action: CarAction
    car: Optional[Car]  # None once the record has been removed
    refresh_required: bool = True


def ensure_transition(
    car_id: Optional[str], status: CarStatus, action: CarAction
) -> Optional[CarStatus]:
    """Return the status *action* leads to from *status*, else raise."""
    sources, result = ACTION_RULES[action]
    if CarStatus(status) not in sources:
        raise StateConflict(car_id, status, action)
    return result


class TransitionEngine:
    """One coroutine per legal transition of a car record."""

    def __init__(self, service):
        self.service = service

    async def create(self, draft: CarDraft) -> TransitionResult:
        validate_vehicle(draft, require_picture=True)
        car = await self.service.create_car(draft)
        self._expect(car, CarAction.CREATE, CarStatus.AVAILABLE)
        logger.info("Created car %s (%s)", car.id, car.title)
        return TransitionResult(CarAction.CREATE, car)

    async def update(self, car: Car, draft: CarDraft) -> TransitionResult:
        expected = ensure_transition(car.id, car.status, CarAction.UPDATE)
        validate_vehicle(draft, require_picture=False)
        updated = await self.service.update_car(car.id, draft)
        self._expect(updated, CarAction.UPDATE, expected)
        logger.info("Updated car %s", car.id)
        return TransitionResult(CarAction.UPDATE, updated)

    async def reserve(self, car: Car, customer: Customer) -> TransitionResult:
        expected = ensure_transition(car.id, car.status, CarAction.RESERVE)
        validate_customer(customer)
        updated = await self.service.reserve_car(car.id, customer)
        self._expect(updated, CarAction.RESERVE, expected)
        logger.info("Reserved car %s for %s", car.id, customer.full_name)
        return TransitionResult(CarAction.RESERVE, updated)

    async def sell(self, car: Car, customer: Customer) -> TransitionResult:
        expected = ensure_transition(car.id, car.status, CarAction.SELL)
        validate_customer(customer)
        updated = await self.service.sell_car(car.id, customer)
        self._expect(updated, CarAction.SELL, expected)
        logger.info("Sold car %s to %s", car.id, customer.full_name)
        return TransitionResult(CarAction.SELL, updated)

    async def cancel_reservation(self, car: Car) -> TransitionResult:
        expected = ensure_transition(
            car.id, car.status, CarAction.CANCEL_RESERVATION
        )
        updated = await self.service.cancel_reservation(car.id)
        self._expect(updated, CarAction.CANCEL_RESERVATION, expected)
        logger.info("Cancelled reservation of car %s", car.id)
        return TransitionResult(CarAction.CANCEL_RESERVATION, updated)

    async def delete(self, car: Car) -> TransitionResult:
        ensure_transition(car.id, car.status, CarAction.DELETE)
        await self.service.delete_car(car.id)
        logger.info("Deleted car %s", car.id)
        return TransitionResult(CarAction.DELETE, None)

    async def execute(
        self,
        action: CarAction,
        car: Optional[Car] = None,
        *,
        customer: Optional[Customer] = None,
        draft: Optional[CarDraft] = None,
    ) -> TransitionResult:
        """Dispatch *action* to the matching transition."""
        if action is CarAction.CREATE:
            return await self.create(draft)
        if action is CarAction.UPDATE:
            return await self.update(car, draft)
        if action is CarAction.RESERVE:
            return await self.reserve(car, customer)
        if action is CarAction.SELL:
            return await self.sell(car, customer)
        if action is CarAction.CANCEL_RESERVATION:
            return await self.cancel_reservation(car)
        if action is CarAction.DELETE:
            return await self.delete(car)
        raise ValueError(f"Unhandled action: {action!r}")

    @staticmethod
    def _expect(car: Car, action: CarAction, status: CarStatus) -> None:
        # The service applied something other than what was asked for.
        if car.status != status:
            raise StateConflict(car.id, car.status, action)
