"""Translate refused ledger mutations into HTTP errors."""

from src.core.exceptions import (
    ConflictError,
    NotFoundError,
    ReadOnlyError,
    UnbalancedSessionError,
)
from src.services.ledger_store import LedgerResult


def raise_for_result(
    result: LedgerResult, target: str, *, difference: float | None = None
) -> None:
    """Raise the AppError matching a refused mutation; do nothing on OK.

    ``target`` names the refused entity and travels in the error details.
    """
    match result:
        case LedgerResult.OK:
            return
        case LedgerResult.NOT_FOUND:
            raise NotFoundError(
                message=f"{target} not found", details={"target": target}
            )
        case LedgerResult.READ_ONLY:
            raise ReadOnlyError(
                message=f"{target} belongs to an imported session and is read-only",
                details={"target": target},
            )
        case LedgerResult.DUPLICATE:
            raise ConflictError(
                code="duplicate",
                message=f"{target} already exists",
                details={"target": target},
            )
        case LedgerResult.UNBALANCED:
            raise UnbalancedSessionError(
                message=f"{target} does not sum to zero",
                details={"target": target, "difference": difference},
            )
        case LedgerResult.INVALID_STATE:
            raise ConflictError(
                code="invalid_state",
                message=f"{target} cannot change in its state",
                details={"target": target},
            )
