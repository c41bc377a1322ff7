"""
Inventory Query
===============

``InventoryQuery`` is a stateless pass-through to the record service: one
call, one fresh list, nothing cached.

``InventoryView`` is the client-side projection of one tab.  It tracks
the active status filter and an *epoch* that increases with every query
it issues.  In-flight queries are never cancelled, so a response is only
applied when its epoch is still the latest one; anything older (a tab
switch or a refresh happened in the meantime) is discarded.
"""

from __future__ import annotations

import logging
from typing import Optional

from dealership.domain.entities import Car
from dealership.domain.enums import CarStatus
from dealership.domain.exceptions import InventoryError

logger = logging.getLogger(__name__)


class InventoryQuery:
    def __init__(self, service):
        self.service = service

    async def list_by_status(self, status: CarStatus) -> list[Car]:
        return await self.service.list_cars(CarStatus(status))


class InventoryView:
    """Visible set of cars for the active tab."""

    def __init__(
        self,
        query: InventoryQuery,
        gallery=None,
        status: CarStatus = CarStatus.AVAILABLE,
    ):
        self.query = query
        self.gallery = gallery
        self.active_status = CarStatus(status)
        self.cars: list[Car] = []
        self.error: Optional[str] = None
        self._epoch = 0

    @property
    def epoch(self) -> int:
        return self._epoch

    async def show(self, status: CarStatus) -> bool:
        """Switch to the *status* tab and load it."""
        self.active_status = CarStatus(status)
        return await self.refresh()

    async def refresh(self) -> bool:
        """Re-query the active tab.

        Returns ``True`` when the response was applied and ``False`` when
        it arrived after a newer query had been issued.
        """
        self._epoch += 1
        epoch = self._epoch
        status = self.active_status

        try:
            cars = await self.query.list_by_status(status)
        except InventoryError as exc:
            if epoch == self._epoch:
                self.error = f"Failed to fetch cars: {exc}"
            raise

        if epoch != self._epoch:
            logger.debug(
                "Dropping stale %s listing (epoch %d, current %d)",
                status.value,
                epoch,
                self._epoch,
            )
            return False

        self.cars = cars
        self.error = None
        if self.gallery is not None:
            await self.gallery.sync(cars)
        return True

    def find(self, car_id: str) -> Optional[Car]:
        return next((c for c in self.cars if c.id == car_id), None)
