"""
FastAPI application factory.

* Registers routes for fleet (admin decisions), hosts and admin.
* Maps coverage errors to HTTP status codes.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from host_coverage.api.exception_handlers import register_exception_handlers
from host_coverage.api.middleware import limiter
from host_coverage.api.routes import admin, hosts, insurance
from host_coverage.config import settings

logging.basicConfig(level=settings.log_level)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Host Insurance Coverage API",
        description=(
            "Approves, rejects and removes host insurance coverage and keeps "
            "each host's earnings tier and commission rate in step with it.  "
            "Only one of a host's P2P and commercial coverages is active at "
            "a time."
        ),
        version="1.0.0",
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Routers
    app.include_router(insurance.router, prefix="/api/v1")
    app.include_router(hosts.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
