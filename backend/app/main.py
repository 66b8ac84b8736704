from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.app.api.v1.router import router as v1_router
from backend.app.core.config import get_settings
from backend.app.core.logging import configure_logging
from backend.app.db.session import dispose_engine
from backend.services.exceptions import (
    AuditViolationError,
    InventoryError,
    InventoryNotFoundError,
    InventorySyncError,
    InventoryValidationError,
    StoreUnavailableError,
)

logger = structlog.get_logger(__name__)

_STATUS_BY_ERROR: list[tuple[type[InventoryError], int]] = [
    (InventoryNotFoundError, 404),
    (InventoryValidationError, 400),
    (AuditViolationError, 409),
    (StoreUnavailableError, 503),
    (InventorySyncError, 500),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    logger.info("app.startup")
    yield
    dispose_engine()
    logger.info("app.shutdown")


async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    status_code = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break

    body = {"code": exc.code, "detail": exc.message}
    if isinstance(exc, InventorySyncError):
        body["failed"] = list(exc.failed)
        body["completed"] = list(exc.completed)

    if status_code >= 500:
        logger.error("api.inventory_error", path=request.url.path, code=exc.code, detail=exc.message)
    return JSONResponse(status_code=status_code, content=body)


app = FastAPI(title="CEMENT SHOPS INVENTORY", version="0.1.0", lifespan=lifespan)
app.add_exception_handler(InventoryError, inventory_error_handler)
app.include_router(v1_router, prefix="/v1")
