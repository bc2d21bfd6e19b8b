# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.routers import (
    item_router,
    sales_order_router,
    delivery_order_router,
    backlog_router,
    purchase_order_router,
    activity_router,
)

from app.core.config import APP_ENV, APP_VERSION, CORS_ORIGINS, STRICT_LINE_MATCHING
from app.core.db import init_models
from app.core.error_handlers import register_exception_handlers
from app.core.logging import setup_logging
from app.middleware.request_logging import request_logging_middleware
from app.utils.response import ErrorResponse

APP_NAME = "Fulfillment Ledger API"
SERVICE_NAME = "fulfillment-ledger-api"

ROUTERS = (
    item_router,
    sales_order_router,
    delivery_order_router,
    backlog_router,
    purchase_order_router,
    activity_router,
)

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Starting %s %s (env=%s, strict matching=%s)",
        SERVICE_NAME,
        APP_VERSION,
        APP_ENV,
        STRICT_LINE_MATCHING,
    )

    # tables are created here only in development; other envs run migrations
    if APP_ENV == "development":
        await init_models()
        logger.info("Ledger tables ensured (development)")

    yield

    logger.info("Stopping %s", SERVICE_NAME)


def create_app() -> FastAPI:
    app = FastAPI(
        title=APP_NAME,
        description="Stock reservation, backorder and delivery ledger for sales and purchase orders",
        version=APP_VERSION,
        docs_url="/docs" if APP_ENV != "production" else None,
        redoc_url=None,
        lifespan=lifespan,
        responses={
            status: {"model": ErrorResponse}
            for status in (400, 404, 409, 422, 500)
        },
    )

    register_exception_handlers(app)

    app.middleware("http")(request_logging_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["Health"])
    async def health_check():
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "environment": APP_ENV,
            "version": APP_VERSION,
            "strict_line_matching": STRICT_LINE_MATCHING,
        }

    for router in ROUTERS:
        app.include_router(router)

    return app


app = create_app()
