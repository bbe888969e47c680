import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from chatinsights.core.config import settings, validate_config, cors_origins
from chatinsights.core.logging import configure_logging
from chatinsights.core.metrics import catalog_metrics
from chatinsights.core.middleware.metrics import MetricsMiddleware
from chatinsights.core.middleware.request_id import RequestIdMiddleware
from chatinsights.core.middleware.tracing import TracingMiddleware
from chatinsights.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_error_handler,
    unhandled_exception_handler,
)
from chatinsights.core.tracing import setup_tracing
from chatinsights.api import custom_insights, formulas, health, insights, metrics, prometheus
from chatinsights.features.formulas.catalog import METRIC_CATALOG

configure_logging(settings.ENV)
validate_config(strict=settings.CONFIG_STRICT)
setup_tracing(enabled=settings.OTEL_ENABLED)
catalog_metrics.set(len(METRIC_CATALOG))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("chatinsights")
    logger.info("Starting chatinsights...")
    try:
        yield
    finally:
        logging.getLogger("chatinsights").info("Stopping chatinsights...")


app = FastAPI(title="chatinsights", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(TracingMiddleware)
app.add_middleware(MetricsMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(insights.router)
app.include_router(formulas.router)
app.include_router(metrics.router)
app.include_router(custom_insights.router)
app.include_router(health.root_router)
app.include_router(prometheus.router)
