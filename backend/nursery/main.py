import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from nursery import __version__
from nursery.config import get_settings
from nursery.database import engine, get_db
from nursery.errors import NurseryError
from nursery.routers import (
    analytics_router, audit_router, auth_router, batches_router,
    measurements_router, species_router, users_router, zones_router,
)

settings = get_settings()
logger = logging.getLogger("nursery.api")
logging.basicConfig(level=settings.log_level.upper())

HTTP_ERROR_CODES = {
    400: "ValidationError",
    401: "Unauthenticated",
    403: "Forbidden",
    404: "NotFound",
    405: "MethodNotAllowed",
    409: "Conflict",
}


def _json(data: dict[str, Any]) -> str:
    return json.dumps(data, default=str)


def _error(status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    content = {"success": False, "error": code, "message": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan for startup/shutdown events."""
    logger.info(f"Nursery API starting (env={settings.app_env})")
    yield
    engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="Nursery Production API",
    description="Batch lifecycle, bed capacity and growth measurements for plant nurseries",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Set basic security headers for all API responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.middleware("http")
async def structured_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    req_id = request.headers.get("X-Request-ID", str(uuid4()))
    request.state.request_id = req_id

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = str(req_id)
        return response
    finally:
        payload = {
            "request_id": str(req_id),
            "path": request.url.path,
            "method": request.method,
            "status": status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        }
        logger.info(_json(payload))


# ── Error envelopes ───────────────────────────────────────────
@app.exception_handler(NurseryError)
async def nursery_error_handler(request: Request, exc: NurseryError):
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = HTTP_ERROR_CODES.get(exc.status_code, "HttpError")
    response = _error(exc.status_code, code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return _error(status.HTTP_400_BAD_REQUEST, "ValidationError", "Validation failed", details)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception(f"Unhandled error on {request.method} {request.url.path} (request_id={req_id})")
    message = "Internal server error" if settings.is_production else f"Internal server error: {exc}"
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "InternalError", message)


# Include routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(species_router)
app.include_router(zones_router)
app.include_router(batches_router)
app.include_router(measurements_router)
app.include_router(analytics_router)
app.include_router(audit_router)

Instrumentator().instrument(app).expose(app, include_in_schema=False, should_gzip=True)


@app.get("/health")
def health(db: Session = Depends(get_db)):
    """Health check endpoint for Docker."""
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: database unreachable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "degraded", "db": "error", "version": __version__},
        )
    return {"status": "healthy", "db": "ok", "version": __version__}
