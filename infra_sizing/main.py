"""
Main FastAPI application bootstrap.
Configures logging and middleware and includes routers.
"""
import logging

from fastapi import FastAPI

from infra_sizing.core.config import config
from infra_sizing.api.sizing import router as sizing_router
from infra_sizing.middleware.request_size_limiter import RequestSizeLimiterMiddleware


# Validate configuration on startup
try:
    config.validate()
except ValueError as error:
    raise RuntimeError(f"Configuration error: {error}") from error

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title=config.APP_TITLE,
    description="Kubernetes sizing, low-code pricing and growth projection",
)

app.add_middleware(RequestSizeLimiterMiddleware)

app.include_router(sizing_router)

logger.info(
    f"Sizing API ready (max body {config.MAX_REQUEST_BODY_SIZE} bytes, "
    f"max {config.MAX_PROJECTION_YEARS} projection years)"
)


@app.get("/health")
def health() -> dict:
    """Liveness check."""
    return {"status": "ok"}
