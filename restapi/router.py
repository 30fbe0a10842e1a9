"""Application configuration and router setup."""

import logging

import fastapi
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware import cors
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from components.core import init_db
from components.core.config import get_settings
from components.core.exceptions import CreditServiceError
from restapi.endpoints import (
    auth,
    clients,
    credit,
    fund_pool,
    health_check,
    payment,
    summary,
    user,
)

logger = logging.getLogger(__name__)
settings = get_settings()

TITLE = "Microcredit API"
DESCRIPTION = "Credit requests, approvals, repayments and the fund pool of a microfinance institution"


def _register_exception_handlers(app: fastapi.FastAPI) -> None:
    @app.exception_handler(CreditServiceError)
    async def credit_service_error_handler(request: fastapi.Request, exc: CreditServiceError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: fastapi.Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid input data", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: fastapi.Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = fastapi.FastAPI(
        title=TITLE,
        description=DESCRIPTION,
        version=settings.API_VERSION,
        lifespan=init_db.lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    # Include routers
    app.include_router(health_check.router)
    app.include_router(auth.router)
    app.include_router(user.router)
    app.include_router(credit.router)
    app.include_router(payment.router)
    app.include_router(fund_pool.router)
    app.include_router(summary.router)
    app.include_router(clients.router)

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        openapi_schema = get_openapi(
            title=TITLE,
            version=settings.API_VERSION,
            description=DESCRIPTION,
            routes=app.routes,
        )
        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi

    return app
