"""Global exception handlers that map coverage errors to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from host_coverage.api.schemas import ErrorResponse
from host_coverage.domain.errors import (
    ConcurrencyConflict,
    CoverageError,
    EmitterUnavailable,
    HostNotFound,
    IncompleteSubmission,
    InvalidState,
    MissingReason,
    StoreUnavailable,
)

STATUS_FOR_ERROR: dict[type[CoverageError], int] = {
    HostNotFound: 404,
    InvalidState: 409,
    ConcurrencyConflict: 409,
    IncompleteSubmission: 422,
    MissingReason: 422,
    StoreUnavailable: 503,
    EmitterUnavailable: 503,
}


async def coverage_error_handler(_request: Request, exc: CoverageError) -> JSONResponse:
    status_code = STATUS_FOR_ERROR.get(type(exc), 500)
    body = ErrorResponse(detail=str(exc), code=exc.code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    """Register coverage exception handlers on the FastAPI app."""
    app.add_exception_handler(CoverageError, coverage_error_handler)
