"""Global exception handlers for the FastAPI application.

Every error leaves as ``{"error": {"code", "message", "details"}}``. Refused
ledger mutations are logged with the route and the entity they targeted.
"""

from typing import TYPE_CHECKING, cast

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from src.core.exceptions import (
    AppError,
    ConflictError,
    ErrorDetails,
    ImportRejectedError,
    NotFoundError,
    ReadOnlyError,
    UnbalancedSessionError,
    ValidationError,
)

if TYPE_CHECKING:
    type ErrorPayload = dict[str, dict[str, str | ErrorDetails]]


def _error_payload(
    code: str,
    message: str,
    details: ErrorDetails | None = None,
) -> "ErrorPayload":
    """Build consistent error response payload."""
    return {"error": {"code": code, "message": message, "details": details or {}}}


def _error_response(status_code: int, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(exc.code, exc.message, exc.details),
    )


def _route(request: Request) -> str:
    return f"{request.method} {request.url.path}"


def _target(request: Request, exc: AppError) -> str:
    target = exc.details.get("target")
    return str(target) if target is not None else request.url.path


def register_exception_handlers(app: FastAPI) -> None:
    """Register all global exception handlers on the FastAPI app.

    Note: The nested handler functions are registered via decorators and used by FastAPI
    at runtime, but static analysis tools cannot detect this usage pattern.
    """

    @app.exception_handler(NotFoundError)
    def not_found_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: NotFoundError
    ) -> JSONResponse:
        logger.debug(f"{_route(request)}: {exc.message}")
        return _error_response(404, exc)

    @app.exception_handler(ImportRejectedError)
    def import_rejected_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: ImportRejectedError
    ) -> JSONResponse:
        errors = exc.details.get("errors") or []
        logger.warning(f"{_route(request)} rejected import: {exc.message}")
        for entry in errors:
            if isinstance(entry, dict):
                logger.debug(f"  line {entry.get('line')}: {entry.get('message')}")
        return _error_response(422, exc)

    @app.exception_handler(ValidationError)
    def validation_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        logger.warning(f"{_route(request)} invalid: {exc.message}")
        return _error_response(422, exc)

    @app.exception_handler(ReadOnlyError)
    def read_only_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: ReadOnlyError
    ) -> JSONResponse:
        logger.info(
            f"{_route(request)} refused: {_target(request, exc)} is imported history"
        )
        return _error_response(409, exc)

    @app.exception_handler(UnbalancedSessionError)
    def unbalanced_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: UnbalancedSessionError
    ) -> JSONResponse:
        logger.warning(
            f"{_route(request)} refused: {_target(request, exc)} is off by "
            + f"{exc.details.get('difference')}; resend with force to accept"
        )
        return _error_response(409, exc)

    @app.exception_handler(ConflictError)
    def conflict_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: ConflictError
    ) -> JSONResponse:
        logger.warning(
            f"{_route(request)} refused ({exc.code}): {_target(request, exc)}"
        )
        return _error_response(409, exc)

    @app.exception_handler(AppError)
    def app_error_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: AppError
    ) -> JSONResponse:
        logger.warning(f"{_route(request)} failed: {exc.message}")
        return _error_response(400, exc)

    @app.exception_handler(RequestValidationError)
    def request_validation_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.debug(f"{_route(request)} request validation failed: {exc.errors()}")
        errors = [
            {
                "loc": ".".join(str(part) for part in err.get("loc", ())),
                "msg": str(err.get("msg", "")),
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload(
                "request_validation_error",
                "Request validation failed",
                cast("ErrorDetails", {"errors": errors}),
            ),
        )

    @app.exception_handler(SQLAlchemyError)
    def sqlalchemy_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: SQLAlchemyError
    ) -> JSONResponse:
        logger.exception(f"{_route(request)} snapshot storage error: {exc}")
        return JSONResponse(
            status_code=500,
            content=_error_payload("database_error", "Database error"),
        )

    @app.exception_handler(Exception)
    def unhandled_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(f"{_route(request)} unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content=_error_payload("internal_error", "Internal server error"),
        )
