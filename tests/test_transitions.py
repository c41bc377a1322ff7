"""Unit tests for the Transition Engine against a mocked record service."""

from dataclasses import replace
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from dealership.domain.entities import Car, Customer
from dealership.domain.enums import CarAction, CarStatus
from dealership.domain.exceptions import StateConflict, ValidationError
from dealership.domain.transitions import TransitionEngine
from tests.conftest import JANE, make_draft


def _car(status=CarStatus.AVAILABLE, customer=None) -> Car:
    return Car(
        id="car-1",
        make="Toyota",
        model="Corolla",
        year=2020,
        price=Decimal("15000"),
        picture="pic-1",
        status=status,
        customer=customer,
    )


AVAILABLE = _car()
RESERVED = _car(CarStatus.RESERVED, JANE)
SOLD = _car(CarStatus.SOLD, JANE)


@pytest.fixture
def service():
    mock = AsyncMock()
    mock.create_car.return_value = AVAILABLE
    mock.update_car.return_value = replace(AVAILABLE, price=Decimal("14000"))
    mock.reserve_car.return_value = RESERVED
    mock.sell_car.return_value = SOLD
    mock.cancel_reservation.return_value = AVAILABLE
    mock.delete_car.return_value = None
    return mock


@pytest.fixture
def engine(service):
    return TransitionEngine(service)


class TestSuccessfulTransitions:
    @pytest.mark.asyncio
    async def test_create_returns_available_car_and_refresh_signal(self, engine, service):
        result = await engine.create(make_draft())
        assert result.action is CarAction.CREATE
        assert result.car.status is CarStatus.AVAILABLE
        assert result.car.customer is None
        assert result.refresh_required
        service.create_car.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_without_picture(self, engine, service):
        draft = make_draft(price=Decimal("14000"), picture=None)
        result = await engine.update(AVAILABLE, draft)
        assert result.car.price == Decimal("14000")
        service.update_car.assert_awaited_once_with("car-1", draft)

    @pytest.mark.asyncio
    async def test_reserve_attaches_customer(self, engine, service):
        result = await engine.reserve(AVAILABLE, JANE)
        assert result.car.status is CarStatus.RESERVED
        assert result.car.customer == JANE
        service.reserve_car.assert_awaited_once_with("car-1", JANE)

    @pytest.mark.asyncio
    async def test_sell_makes_car_terminal(self, engine):
        result = await engine.sell(AVAILABLE, JANE)
        assert result.car.is_terminal

    @pytest.mark.asyncio
    async def test_cancel_reservation_clears_customer(self, engine, service):
        result = await engine.cancel_reservation(RESERVED)
        assert result.car.status is CarStatus.AVAILABLE
        assert result.car.customer is None

    @pytest.mark.asyncio
    async def test_delete_returns_no_car(self, engine, service):
        result = await engine.delete(AVAILABLE)
        assert result.car is None
        assert result.refresh_required
        service.delete_car.assert_awaited_once_with("car-1")

    @pytest.mark.asyncio
    async def test_execute_dispatches_by_action(self, engine, service):
        result = await engine.execute(CarAction.RESERVE, AVAILABLE, customer=JANE)
        assert result.action is CarAction.RESERVE
        service.reserve_car.assert_awaited_once()


class TestRejectedTransitions:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call",
        [
            lambda e: e.update(SOLD, make_draft()),
            lambda e: e.reserve(SOLD, JANE),
            lambda e: e.sell(SOLD, JANE),
            lambda e: e.cancel_reservation(SOLD),
            lambda e: e.delete(SOLD),
        ],
    )
    async def test_sold_car_rejects_everything(self, engine, service, call):
        with pytest.raises(StateConflict):
            await call(engine)
        assert not any(
            getattr(service, name).await_count
            for name in (
                "update_car",
                "reserve_car",
                "sell_car",
                "cancel_reservation",
                "delete_car",
            )
        )

    @pytest.mark.asyncio
    async def test_sell_reserved_car_rejected(self, engine, service):
        with pytest.raises(StateConflict):
            await engine.sell(RESERVED, JANE)
        service.sell_car.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_reserved_car_rejected(self, engine, service):
        with pytest.raises(StateConflict):
            await engine.delete(RESERVED)
        service.delete_car.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_on_available_car_rejected(self, engine, service):
        with pytest.raises(StateConflict):
            await engine.cancel_reservation(AVAILABLE)
        service.cancel_reservation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_service_answering_wrong_status_is_a_conflict(self, engine, service):
        service.reserve_car.return_value = SOLD
        with pytest.raises(StateConflict):
            await engine.reserve(AVAILABLE, JANE)


class TestValidationBeforeNetwork:
    @pytest.mark.asyncio
    async def test_create_year_1899_never_reaches_service(self, engine, service):
        with pytest.raises(ValidationError) as exc_info:
            await engine.create(make_draft(year=1899))
        assert exc_info.value.field == "year"
        service.create_car.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_price_below_one_never_reaches_service(self, engine, service):
        with pytest.raises(ValidationError) as exc_info:
            await engine.update(AVAILABLE, make_draft(price=Decimal("0")))
        assert exc_info.value.field == "price"
        service.update_car.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_requires_picture(self, engine, service):
        with pytest.raises(ValidationError):
            await engine.create(make_draft(picture=None))
        service.create_car.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reserve_with_bad_customer_never_reaches_service(self, engine, service):
        with pytest.raises(ValidationError):
            await engine.reserve(
                AVAILABLE, Customer("Jane Doe", "not-an-email", "5551234567")
            )
        service.reserve_car.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_state_is_checked_before_fields(self, engine, service):
        with pytest.raises(StateConflict):
            await engine.update(SOLD, make_draft(year=1800))
