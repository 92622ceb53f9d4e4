"""FastAPI application for the poker ledger with snapshot persistence and sync."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from src.api.v1.router import api_router
from src.core.config import SYNC_ENABLED
from src.core.db import create_db_and_tables, engine
from src.core.error_handlers import register_exception_handlers
from src.core.logging_config import configure_logging
from src.dao.snapshot_dao import SqlSnapshotSink
from src.services.ledger_store import LedgerStore
from src.services.sync_service import SyncLoop


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load the stored ledger on startup and keep it synced until shutdown."""
    configure_logging()
    logger.info("Starting poker ledger application...")
    create_db_and_tables()

    sink = SqlSnapshotSink(engine)
    store = LedgerStore()
    snapshot = await asyncio.to_thread(sink.load)
    if snapshot is not None:
        store.load_snapshot(snapshot)
        logger.success(
            f"Loaded ledger: {len(store.players)} players, "
            + f"{len(store.sessions)} sessions"
        )
    app.state.ledger_store = store

    sync_task: asyncio.Task[None] | None = None
    sync_loop: SyncLoop | None = None
    if SYNC_ENABLED:
        sync_loop = SyncLoop(store, sink)
        sync_task = asyncio.create_task(sync_loop.run())
    app.state.sync_loop = sync_loop

    logger.success("Application startup complete")
    yield
    logger.info("Shutting down poker ledger application...")
    if sync_loop is not None and sync_task is not None:
        await sync_loop.stop()
        sync_task.cancel()
        with suppress(asyncio.CancelledError):
            await sync_task


app = FastAPI(title="Poker Ledger", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router)


@app.get("/")
def read_root() -> dict[str, str]:
    """Return welcome message for the root endpoint."""
    logger.debug("Root endpoint accessed")
    return {"message": "Welcome to the Poker Ledger API"}
