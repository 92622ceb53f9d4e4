from typing import Annotated

from fastapi import Depends, Request

from src.services.ledger_store import LedgerStore
from src.services.sync_service import SyncLoop


def get_store(request: Request) -> LedgerStore:
    """Provide the application's ledger store for dependency injection."""
    return request.app.state.ledger_store


def get_sync_loop(request: Request) -> SyncLoop | None:
    """Provide the running sync loop, or None when syncing is disabled."""
    return getattr(request.app.state, "sync_loop", None)


StoreDep = Annotated[LedgerStore, Depends(get_store)]
SyncLoopDep = Annotated[SyncLoop | None, Depends(get_sync_loop)]
