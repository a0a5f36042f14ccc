"""
Translate ledger exceptions into ``{code, message, details}`` responses.

    ValidationError          422
    UnknownReferenceError    404
    OverSettlementError      409
    LedgerStateError         409
    ConcurrentModification   409
    LedgerInconsistencyError 500
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bullion_kernel.exceptions import (
    BullionLedgerError,
    ConcurrentModificationError,
    LedgerInconsistencyError,
    LedgerStateError,
    OverSettlementError,
    UnknownReferenceError,
    ValidationError,
)
from bullion_kernel.logging_config import get_logger

logger = get_logger("api.errors")


def status_for(exc: BullionLedgerError) -> int:
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, UnknownReferenceError):
        return 404
    if isinstance(exc, (OverSettlementError, LedgerStateError, ConcurrentModificationError)):
        return 409
    if isinstance(exc, LedgerInconsistencyError):
        return 500
    return 400


def _jsonable(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def error_details(exc: BullionLedgerError) -> dict[str, Any]:
    return {
        key: _jsonable(value)
        for key, value in vars(exc).items()
        if not key.startswith("_") and key != "args"
    }


def error_body(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"code": code, "message": message, "details": details or {}}


async def ledger_error_handler(request: Request, exc: BullionLedgerError) -> JSONResponse:
    status = status_for(exc)
    log = logger.error if status >= 500 else logger.info
    log(
        "request_rejected",
        extra={"path": request.url.path, "error_code": exc.code, "status": status},
    )
    return JSONResponse(
        status_code=status,
        content=error_body(exc.code, str(exc), error_details(exc)),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "reason": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=error_body(ValidationError.code, "Request body failed validation", {"errors": errors}),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BullionLedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
