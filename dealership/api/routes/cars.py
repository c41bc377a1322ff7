"""
Car endpoints
=============

GET    /api/v1/cars/{status}                 -- list cars in one status
GET    /api/v1/cars/image/{picture_id}       -- picture payload
POST   /api/v1/cars                          -- create an available car (multipart)
PUT    /api/v1/cars/{car_id}                 -- replace details of an available car
DELETE /api/v1/cars/{car_id}                 -- delete an available car
POST   /api/v1/cars/{car_id}/reserve         -- attach a customer, -> reserved
POST   /api/v1/cars/{car_id}/sell            -- attach a customer, -> sold
POST   /api/v1/cars/{car_id}/cancel-reservation -- clear customer, -> available
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    Response,
    UploadFile,
)
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.api.dependencies import get_db
from dealership.api.middleware import limiter
from dealership.api.schemas import CarResponse, CustomerRequest, ErrorResponse
from dealership.config import settings
from dealership.domain.entities import CarDraft, PictureUpload
from dealership.domain.enums import CarAction, CarStatus
from dealership.domain.exceptions import StateConflict, ValidationError
from dealership.domain.transitions import ensure_transition
from dealership.domain.validation import customer_errors, vehicle_errors
from dealership.infrastructure.repositories import (
    CarRepository,
    PictureRepository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cars", tags=["cars"])


# ── Helpers ───────────────────────────────────────────────────────────


def _validation_failed(errors: list[ValidationError]) -> HTTPException:
    detail: dict[str, str] = {}
    for error in errors:
        detail.setdefault(error.field, error.reason)
    return HTTPException(status_code=400, detail=detail)


def _conflict(exc: StateConflict) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={
            "message": str(exc),
            "status": getattr(exc.status, "value", exc.status),
            "action": getattr(exc.action, "value", exc.action),
        },
    )


def _car_not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Car not found")


async def _read_draft(
    make: str,
    model: str,
    year: str,
    price: str,
    picture: Optional[UploadFile],
) -> tuple[CarDraft, list[ValidationError]]:
    """Parse multipart fields; unparsable numbers become field errors."""
    errors: list[ValidationError] = []

    parsed_year = None
    if year.strip():
        try:
            parsed_year = int(year)
        except ValueError:
            errors.append(ValidationError("year", "year must be a whole number"))

    parsed_price = None
    if price.strip():
        try:
            parsed_price = Decimal(price)
        except InvalidOperation:
            errors.append(ValidationError("price", "price must be a number"))

    upload = None
    if picture is not None and picture.filename:
        data = await picture.read()
        if len(data) > settings.max_picture_bytes:
            errors.append(
                ValidationError(
                    "picture",
                    f"picture must not exceed {settings.max_picture_bytes} bytes",
                )
            )
        upload = PictureUpload(
            filename=picture.filename,
            data=data,
            content_type=picture.content_type,
        )

    draft = CarDraft(
        make=make.strip(),
        model=model.strip(),
        year=parsed_year,
        price=parsed_price,
        picture=upload,
    )
    return draft, errors


async def _apply_transition(
    db: AsyncSession,
    car_id: str,
    action: CarAction,
    body: Optional[CustomerRequest] = None,
) -> CarResponse:
    customer = None
    if body is not None:
        customer = body.to_customer()
        errors = customer_errors(customer)
        if errors:
            raise _validation_failed(errors)

    repo = CarRepository(db)
    car = await repo.get_by_id(car_id)
    if car is None:
        raise _car_not_found()

    current = CarStatus(car.status)
    try:
        target = ensure_transition(car_id, current, action)
    except StateConflict as exc:
        raise _conflict(exc) from exc

    if not await repo.transition(car_id, current, target, customer):
        # Another request moved the car between our read and the update.
        refreshed = await repo.get_by_id(car_id, refresh=True)
        if refreshed is None:
            raise _car_not_found()
        raise _conflict(StateConflict(car_id, refreshed.status, action))

    logger.info("Car %s: %s -> %s", car_id, current.value, target.value)
    return CarResponse.from_model(await repo.get_by_id(car_id, refresh=True))


# ── Queries ───────────────────────────────────────────────────────────


@router.get(
    "/image/{picture_id}",
    summary="Fetch a car picture",
    responses={
        200: {"content": {"image/jpeg": {}, "image/png": {}}},
        404: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def get_car_image(
    request: Request,
    picture_id: str,
    db: AsyncSession = Depends(get_db),
):
    picture = await PictureRepository(db).get_by_id(picture_id)
    if picture is None:
        raise HTTPException(status_code=404, detail="Picture not found")
    return Response(content=picture.data, media_type=picture.content_type)


@router.get(
    "/{status}",
    response_model=list[CarResponse],
    response_model_exclude_none=True,
    summary="List cars by status",
    responses={400: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def list_cars(
    request: Request,
    status: str,
    db: AsyncSession = Depends(get_db),
):
    try:
        car_status = CarStatus(status)
    except ValueError:
        raise HTTPException(
            status_code=400, detail="Invalid status provided"
        ) from None
    cars = await CarRepository(db).list_by_status(car_status)
    return [CarResponse.from_model(c) for c in cars]


# ── Mutations ─────────────────────────────────────────────────────────


@router.post(
    "",
    status_code=201,
    response_model=CarResponse,
    response_model_exclude_none=True,
    summary="Create an available car",
)
@limiter.limit(settings.rate_limit)
async def create_car(
    request: Request,
    make: str = Form(""),
    model: str = Form(""),
    year: str = Form(""),
    price: str = Form(""),
    status: Optional[str] = Form(None),
    picture: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
):
    if status and status != CarStatus.AVAILABLE.value:
        logger.info("Ignoring requested status %r on create", status)

    draft, errors = await _read_draft(make, model, year, price, picture)
    errors += vehicle_errors(draft, require_picture=True)
    if errors:
        raise _validation_failed(errors)

    stored = await PictureRepository(db).create(
        filename=draft.picture.filename,
        content_type=draft.picture.content_type,
        data=draft.picture.data,
    )
    car = await CarRepository(db).create_car(
        make=draft.make,
        model=draft.model,
        year=draft.year,
        price=draft.price,
        picture_id=stored.id,
    )
    logger.info("Created car %s (%s %s)", car.id, car.make, car.model)
    return CarResponse.from_model(car)


@router.put(
    "/{car_id}",
    response_model=CarResponse,
    response_model_exclude_none=True,
    summary="Update an available car",
    description=(
        "Replaces make, model, year and price.  A new picture replaces the "
        "stored one.  Only available cars can be updated."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_car(
    request: Request,
    car_id: str,
    make: str = Form(""),
    model: str = Form(""),
    year: str = Form(""),
    price: str = Form(""),
    status: Optional[str] = Form(None),
    picture: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
):
    draft, errors = await _read_draft(make, model, year, price, picture)
    errors += vehicle_errors(draft, require_picture=False)
    if errors:
        raise _validation_failed(errors)

    cars = CarRepository(db)
    pictures = PictureRepository(db)

    car = await cars.get_by_id(car_id)
    if car is None:
        raise _car_not_found()
    try:
        ensure_transition(car_id, CarStatus(car.status), CarAction.UPDATE)
    except StateConflict as exc:
        raise _conflict(exc) from exc

    old_picture_id = car.picture_id
    new_picture_id = None
    if draft.picture is not None:
        stored = await pictures.create(
            filename=draft.picture.filename,
            content_type=draft.picture.content_type,
            data=draft.picture.data,
        )
        new_picture_id = stored.id

    updated = await cars.update_details(
        car_id,
        make=draft.make,
        model=draft.model,
        year=draft.year,
        price=draft.price,
        picture_id=new_picture_id,
    )
    if not updated:
        refreshed = await cars.get_by_id(car_id, refresh=True)
        if refreshed is None:
            raise _car_not_found()
        raise _conflict(StateConflict(car_id, refreshed.status, CarAction.UPDATE))

    if new_picture_id is not None:
        await pictures.delete(old_picture_id)

    logger.info("Updated car %s", car_id)
    return CarResponse.from_model(await cars.get_by_id(car_id, refresh=True))


@router.delete(
    "/{car_id}",
    status_code=204,
    summary="Delete an available car",
)
@limiter.limit(settings.rate_limit)
async def delete_car(
    request: Request,
    car_id: str,
    db: AsyncSession = Depends(get_db),
):
    cars = CarRepository(db)
    car = await cars.get_by_id(car_id)
    if car is None:
        raise _car_not_found()
    try:
        ensure_transition(car_id, CarStatus(car.status), CarAction.DELETE)
    except StateConflict as exc:
        raise _conflict(exc) from exc

    picture_id = car.picture_id
    if not await cars.delete_available(car_id):
        refreshed = await cars.get_by_id(car_id, refresh=True)
        if refreshed is None:
            raise _car_not_found()
        raise _conflict(StateConflict(car_id, refreshed.status, CarAction.DELETE))
    await PictureRepository(db).delete(picture_id)

    logger.info("Deleted car %s", car_id)
    return Response(status_code=204)


@router.post(
    "/{car_id}/reserve",
    response_model=CarResponse,
    response_model_exclude_none=True,
    summary="Reserve an available car for a customer",
)
@limiter.limit(settings.rate_limit)
async def reserve_car(
    request: Request,
    car_id: str,
    body: CustomerRequest,
    db: AsyncSession = Depends(get_db),
):
    return await _apply_transition(db, car_id, CarAction.RESERVE, body)


@router.post(
    "/{car_id}/sell",
    response_model=CarResponse,
    response_model_exclude_none=True,
    summary="Sell an available car to a customer",
    description="Irreversible: a sold car can no longer be changed.",
)
@limiter.limit(settings.rate_limit)
async def sell_car(
    request: Request,
    car_id: str,
    body: CustomerRequest,
    db: AsyncSession = Depends(get_db),
):
    return await _apply_transition(db, car_id, CarAction.SELL, body)


@router.post(
    "/{car_id}/cancel-reservation",
    response_model=CarResponse,
    response_model_exclude_none=True,
    summary="Cancel the reservation of a reserved car",
)
@limiter.limit(settings.rate_limit)
async def cancel_reservation(
    request: Request,
    car_id: str,
    db: AsyncSession = Depends(get_db),
):
    return await _apply_transition(db, car_id, CarAction.CANCEL_RESERVATION)
