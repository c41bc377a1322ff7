"""
FastAPI application factory.

* Registers routes for cars and admin.
* Disposes of the database engine on shutdown via lifespan events.
* Applies rate-limiting and CORS middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from dealership.api.middleware import limiter
from dealership.api.routes import admin, cars
from dealership.config import settings
from dealership.infrastructure.database import engine

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup; release pooled DB connections on shutdown."""
    logger.info("Car record service starting")
    yield
    await engine.dispose()
    logger.info("Car record service stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Car Dealership Record Service",
        description=(
            "Stores the dealership's car inventory and enforces its "
            "life-cycle: available cars can be edited, reserved, sold or "
            "deleted; reservations can be cancelled; sold cars are final."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Content-Type", "Content-Length", "Authorization"],
    )

    # Routers
    app.include_router(cars.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
