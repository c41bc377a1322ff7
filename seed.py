"""
Seed script -- populates the database with sample inventory for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 8 sample cars (mix of available, reserved and sold)
  - 1 placeholder picture per car
"""

import asyncio
import base64
from decimal import Decimal

from sqlalchemy import text

from dealership.domain.enums import CarStatus
from dealership.infrastructure.database import async_session_factory, engine
from dealership.infrastructure.models import CarModel, PictureModel

# 1x1 transparent PNG
PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


CARS = [
    {"make": "Toyota", "model": "Corolla", "year": 2020, "price": "15000"},
    {"make": "Honda", "model": "Civic", "year": 2019, "price": "14250.50"},
    {"make": "Ford", "model": "Focus", "year": 2018, "price": "9900"},
    {"make": "Volkswagen", "model": "Golf", "year": 2021, "price": "21400"},
    {"make": "Skoda", "model": "Octavia", "year": 2022, "price": "24990"},
    {
        "make": "Mazda", "model": "3", "year": 2017, "price": "11500",
        "status": CarStatus.RESERVED,
        "customer": ("Jane Doe", "jane@example.com", "5551234567"),
    },
    {
        "make": "Peugeot", "model": "308", "year": 2020, "price": "16800",
        "status": CarStatus.RESERVED,
        "customer": ("Marko Ilic", "marko@example.com", "381641234567"),
    },
    {
        "make": "Renault", "model": "Clio", "year": 2016, "price": "7300",
        "status": CarStatus.SOLD,
        "customer": ("Ana Petrovic", "ana@example.com", "381601112223"),
    },
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM cars"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        for c in CARS:
            picture = PictureModel(
                filename=f"{c['make'].lower()}-{c['model'].lower()}.png",
                content_type="image/png",
                data=PLACEHOLDER_PNG,
            )
            session.add(picture)
            await session.flush()

            full_name, email, phone = c.get("customer", (None, None, None))
            session.add(
                CarModel(
                    make=c["make"],
                    model=c["model"],
                    year=c["year"],
                    price=Decimal(c["price"]),
                    status=c.get("status", CarStatus.AVAILABLE),
                    picture_id=picture.id,
                    customer_full_name=full_name,
                    customer_email=email,
                    customer_phone_number=phone,
                )
            )
        await session.flush()
        print(f"  Created {len(CARS)} cars")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
