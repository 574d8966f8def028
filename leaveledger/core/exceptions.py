"""
Domain errors for the balance ledger and global exception handlers.

Handlers keep stack traces away from clients; every error body has the
shape ``{"detail": ..., "success": false}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class LedgerError(Exception):
    """Base class for ledger rule violations."""

    status_code: int = 400

    def __init__(self, message: str, *, employee_id: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.employee_id = employee_id


class MonthConsumedError(LedgerError):
    """A closed month cannot be re-closed while a later month is closed."""

    status_code = 409


class OutOfOrderCloseError(LedgerError):
    """The previous month must be closed (and current) before this one."""

    status_code = 409


class MonthNotClosedError(LedgerError):
    status_code = 409


class MonthClosedError(LedgerError):
    """Grants and permissions of a closed month are frozen."""

    status_code = 409


class SeedConflictError(LedgerError):
    status_code = 409


# ── Handlers ────────────────────────────────────────────────────────
async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
    )


async def _ledger_error_handler(_request: Request, exc: LedgerError) -> JSONResponse:
    logger.warning("Ledger rule rejected request: %s", exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "success": False},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(LedgerError, _ledger_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
