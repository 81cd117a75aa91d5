"""
backend/app/main.py

Purpose:
    FastAPI application bootstrap: middleware/router wiring, database
    lifecycle, dev question seeding, and the translation of every failure
    into a JSON `{"message": ...}` body.

Dependencies:
    - app.database
    - app.routers.battles
"""

import logging
from contextlib import asynccontextmanager

from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    OperationFailure,
    ServerSelectionTimeoutError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

import app.database as _db
from app.config import settings
from app.database import close_db, connect_db
from app.errors import BattleError
from app.middleware.logging import StructuredLoggingMiddleware, setup_logging

logger = logging.getLogger("nova")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    await connect_db()
    if settings.SEED_QUESTIONS:
        from app.seed import seed_question_bank

        seeded = await seed_question_bank()
        logger.info("Question bank seeded on startup: %d inserted", seeded)

    yield

    await close_db()


app = FastAPI(
    title="Nova Learn Battles",
    description="Live quiz duels for the Nova Learn platform",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS (session cookie travels with every call)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
from app.routers.battles import router as battles_router

app.include_router(battles_router)


def _message(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, **extra})


@app.exception_handler(BattleError)
async def battle_error_handler(request: Request, exc: BattleError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return _message(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _message(exc.status_code, str(exc.detail))


@app.exception_handler(InvalidId)
async def invalid_object_id_handler(request: Request, exc: InvalidId):
    return _message(404, "Battle not found.")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return clean validation errors without leaking internal field paths."""
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        # Strip the "body" / "query" prefix for cleaner messages
        field = ".".join(str(l) for l in loc[1:]) if len(loc) > 1 else str(loc[-1]) if loc else "unknown"
        errors.append({"field": field, "message": err.get("msg", "Invalid value.")})
    return _message(400, "Validation error.", errors=errors)


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return _message(409, "Duplicate entry.")


@app.exception_handler(ServerSelectionTimeoutError)
async def db_timeout_handler(request: Request, exc: ServerSelectionTimeoutError):
    logger.error("Database timeout: %s %s", request.method, request.url.path)
    return _message(503, "Service temporarily unavailable.")


@app.exception_handler(ConnectionFailure)
async def db_connection_handler(request: Request, exc: ConnectionFailure):
    logger.error("Database connection failure: %s %s", request.method, request.url.path)
    return _message(503, "Service temporarily unavailable.")


@app.exception_handler(OperationFailure)
async def db_operation_handler(request: Request, exc: OperationFailure):
    logger.error("Database operation error on %s %s: %s", request.method, request.url.path, exc)
    return _message(500, "An internal error occurred.")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _message(500, "An internal error occurred.")


@app.get("/health")
async def health():
    """Health check -- verifies the DB connection."""
    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except Exception:
        db_ok = False

    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
    }
