from fastapi import APIRouter

from src.api.deps import SyncLoopDep
from src.schemas.schemas import SyncStatusResponse

router = APIRouter()


def _status(sync_loop: SyncLoopDep) -> SyncStatusResponse:
    if sync_loop is None:
        return SyncStatusResponse(
            enabled=False, is_syncing=False, has_unsynced_changes=False
        )
    status = sync_loop.status
    return SyncStatusResponse(
        enabled=True,
        is_syncing=status.is_syncing,
        has_unsynced_changes=status.has_unsynced_changes,
        last_sync_time=status.last_sync_time,
        error=status.error,
    )


@router.get("/", response_model=SyncStatusResponse)
async def read_sync_status(sync_loop: SyncLoopDep) -> SyncStatusResponse:
    return _status(sync_loop)


@router.post("/", response_model=SyncStatusResponse)
async def sync_now(sync_loop: SyncLoopDep) -> SyncStatusResponse:
    """Run one pull-and-reconcile pass immediately."""
    if sync_loop is not None:
        await sync_loop.sync_once()
    return _status(sync_loop)
