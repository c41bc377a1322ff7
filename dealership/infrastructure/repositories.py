"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.

Status changes are issued as a single conditional statement
(``... WHERE id = :id AND status = :from``) so that two racing requests
cannot both apply a transition to the same car.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import CarModel, PictureModel
from dealership.domain.entities import Customer
from dealership.domain.enums import CUSTOMER_STATUSES, CarStatus


class CarRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_car(
        self,
        *,
        make: str,
        model: str,
        year: int,
        price: Decimal,
        picture_id: str,
    ) -> CarModel:
        car = CarModel(
            make=make,
            model=model,
            year=year,
            price=price,
            picture_id=picture_id,
            status=CarStatus.AVAILABLE,
        )
        self.session.add(car)
        await self.session.flush()
        return car

    async def get_by_id(
        self, car_id: str, *, refresh: bool = False
    ) -> Optional[CarModel]:
        return await self.session.get(
            CarModel, car_id, populate_existing=refresh
        )

    async def list_by_status(self, status: CarStatus) -> list[CarModel]:
        result = await self.session.execute(
            select(CarModel)
            .where(CarModel.status == status)
            .order_by(CarModel.created_at, CarModel.id)
        )
        return list(result.scalars().all())

    async def update_details(
        self,
        car_id: str,
        *,
        make: str,
        model: str,
        year: int,
        price: Decimal,
        picture_id: Optional[str] = None,
    ) -> bool:
        """Replace the details of an available car. False if it is not."""
        values = {"make": make, "model": model, "year": year, "price": price}
        if picture_id is not None:
            values["picture_id"] = picture_id
        result = await self.session.execute(
            update(CarModel)
            .where(CarModel.id == car_id, CarModel.status == CarStatus.AVAILABLE)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def transition(
        self,
        car_id: str,
        from_status: CarStatus,
        to_status: CarStatus,
        customer: Optional[Customer] = None,
    ) -> bool:
        """Move the car from *from_status* to *to_status*.

        The customer columns are written when *to_status* carries a
        customer and cleared otherwise.  Returns False when the car was
        no longer in *from_status*.
        """
        if to_status in CUSTOMER_STATUSES:
            if customer is None:
                raise ValueError(f"{to_status.value} requires a customer")
            customer_values = {
                "customer_full_name": customer.full_name,
                "customer_email": customer.email,
                "customer_phone_number": customer.phone_number,
            }
        else:
            customer_values = {
                "customer_full_name": None,
                "customer_email": None,
                "customer_phone_number": None,
            }
        result = await self.session.execute(
            update(CarModel)
            .where(CarModel.id == car_id, CarModel.status == from_status)
            .values(status=to_status, **customer_values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete_available(self, car_id: str) -> bool:
        result = await self.session.execute(
            delete(CarModel)
            .where(CarModel.id == car_id, CarModel.status == CarStatus.AVAILABLE)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class PictureRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, *, filename: str, content_type: str, data: bytes
    ) -> PictureModel:
        picture = PictureModel(
            filename=filename, content_type=content_type, data=data
        )
        self.session.add(picture)
        await self.session.flush()
        return picture

    async def get_by_id(self, picture_id: str) -> Optional[PictureModel]:
        return await self.session.get(PictureModel, picture_id)

    async def delete(self, picture_id: str) -> None:
        await self.session.execute(
            delete(PictureModel).where(PictureModel.id == picture_id)
        )
