"""
SQLAlchemy ORM models.

Tables
------
* ``pictures`` -- uploaded car images (binary payload + content type)
* ``cars``     -- inventory records; customer columns are filled exactly
  while the car is reserved or sold

Indexes
-------
* **B-Tree** on ``cars.status``: every inventory tab lists by status.
"""

import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    Numeric,
    String,
    func,
)

from .database import Base
from dealership.domain.enums import CarStatus


def _new_id() -> str:
    return uuid.uuid4().hex


class PictureModel(Base):
    __tablename__ = "pictures"

    id = Column(String(32), primary_key=True, default=_new_id)
    filename = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=False)
    data = Column(LargeBinary, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CarModel(Base):
    __tablename__ = "cars"

    id = Column(String(32), primary_key=True, default=_new_id)
    make = Column(String(120), nullable=False)
    model = Column(String(120), nullable=False)
    year = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    status = Column(Enum(CarStatus), default=CarStatus.AVAILABLE, nullable=False)
    picture_id = Column(String(32), ForeignKey("pictures.id"), nullable=False)

    customer_full_name = Column(String(200), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone_number = Column(String(40), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("year >= 1900", name="ck_cars_year_min"),
        CheckConstraint("price >= 1", name="ck_cars_price_min"),
        Index("idx_cars_status", "status"),
    )
