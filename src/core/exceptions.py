"""Exception classes raised by the HTTP layer when a ledger operation is refused."""

from dataclasses import dataclass, field

# Shared type alias for error detail values
type ErrorDetails = dict[
    str,
    str | int | float | bool | list[str] | list[dict[str, str | int | None]] | None,
]


@dataclass
class AppError(Exception):
    """Base exception for all application errors."""

    code: str = "app_error"
    message: str = "An application error occurred"
    details: ErrorDetails = field(default_factory=dict)

    def __str__(self) -> str:  # pyright: ignore[reportImplicitOverride]
        return self.message


@dataclass
class NotFoundError(AppError):
    """Raised when a player, session or player session id is unknown."""

    code: str = "not_found"
    message: str = "Resource not found"


@dataclass
class ValidationError(AppError):
    """Raised when domain validation fails."""

    code: str = "validation_error"
    message: str = "Validation failed"


@dataclass
class ImportRejectedError(ValidationError):
    """Raised when a spreadsheet import has blocking errors."""

    code: str = "import_rejected"
    message: str = "Import has blocking errors"


@dataclass
class ConflictError(AppError):
    """Raised when an operation conflicts with the current ledger state."""

    code: str = "conflict"
    message: str = "Ledger state conflict"


@dataclass
class ReadOnlyError(ConflictError):
    """Raised when a live-game operation targets imported data."""

    code: str = "read_only"
    message: str = "Imported sessions are read-only"


@dataclass
class UnbalancedSessionError(ConflictError):
    """Raised when ending a session whose net results do not sum to zero."""

    code: str = "unbalanced_session"
    message: str = "Session does not sum to zero"
