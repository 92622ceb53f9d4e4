"""Error response schemas for API documentation."""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Body of every refused ledger request (404, 409, 422)."""

    code: str
    message: str
    details: dict[
        str,
        str | int | float | bool | list[str] | list[dict[str, str | int | None]] | None,
    ] = {}


class ErrorResponse(BaseModel):
    """Standard error response wrapper."""

    error: ErrorDetail


ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    404: {"model": ErrorResponse, "description": "Unknown player or session"},
    409: {"model": ErrorResponse, "description": "Refused by the ledger state"},
    422: {"model": ErrorResponse, "description": "Invalid request"},
}
