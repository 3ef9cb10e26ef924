"""
FastAPI application factory.

* Registers routes for tow trucks, companies and admin.
* Starts / stops the reference-data sync worker via lifespan events.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from towmatch.api.middleware import limiter
from towmatch.api.routes import admin, companies, tow_trucks
from towmatch.infrastructure.redis_client import close_redis
from towmatch.workers import reference_sync as _reference_sync

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the reference sync worker on startup; stop on shutdown."""
    await _reference_sync.start_sync_loop()
    yield
    await _reference_sync.stop_sync_loop()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Tow Truck Finder API",
        description=(
            "Directory of towing companies and their tow trucks.  Finds the "
            "nearest active trucks for a user by widening the search from "
            "district to province to the whole country."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(tow_trucks.router, prefix="/api/v1")
    app.include_router(companies.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
