"""Keep the in-memory ledger and the persistence sink converged.

The sink is the source of truth when several clients edit the same game.
The loop pulls the stored snapshot every ``poll_interval`` seconds, skips
the work when content hashes match, merges by player name and session
``updated_at`` while honouring deletions and the newest import, and pushes
the merge back if it differs from what was stored. Local edits are
pushed after ``debounce`` seconds of quiet, and pulls are held off for
``cooldown`` seconds after a local edit or push so a stale read cannot
clobber the write that is still landing.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
import time
from typing import Protocol

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from src.core.config import SYNC_COOLDOWN, SYNC_DEBOUNCE, SYNC_POLL_INTERVAL
from src.models import LedgerSnapshot, PlayerSession, Session, utcnow
from src.services.ledger_store import LedgerStore
from src.services.reconcile_service import reconcile_players, remap_player_sessions


class SnapshotSink(Protocol):
    """Where snapshots are stored; calls may block."""

    def load(self) -> LedgerSnapshot | None: ...

    def save(self, snapshot: LedgerSnapshot) -> None: ...


@dataclass
class SyncStatus:
    is_syncing: bool = False
    has_unsynced_changes: bool = False
    last_sync_time: datetime | None = None
    last_hash: str | None = None
    error: str | None = None


_NO_GENERATION = datetime.min.replace(tzinfo=UTC)


def _generation(snapshot: LedgerSnapshot) -> datetime:
    return snapshot.imported_generation or _NO_GENERATION


def merge_snapshots(local: LedgerSnapshot, remote: LedgerSnapshot) -> LedgerSnapshot:
    """Merge a remote snapshot into the local one.

    Players are reconciled by name with local ids winning, and remote player
    sessions are re-pointed at those ids. Sessions deleted on either side
    stay deleted. Imported sessions are taken as one block from the side
    with the newer ``imported_generation``; when both sides carry the same
    generation they merge like live sessions. Each remaining session is
    taken whole from the side with the newer ``updated_at`` (local on a
    tie), together with its player sessions. Sessions present on only one
    side are kept.
    """
    reconciled = reconcile_players(remote.players, local.players)
    remote_player_sessions = remap_player_sessions(
        remote.player_sessions, reconciled.id_map
    )

    deleted = set(local.deleted_session_ids) | set(remote.deleted_session_ids)
    local_generation = _generation(local)
    remote_generation = _generation(remote)

    def keep(session: Session, *, from_remote: bool) -> bool:
        if session.id in deleted:
            return False
        if not session.is_imported or local_generation == remote_generation:
            return True
        return from_remote == (remote_generation > local_generation)

    local_sessions = {s.id: s for s in local.sessions if keep(s, from_remote=False)}
    sessions: list[Session] = []
    remote_winners: set[str] = set()

    for remote_session in remote.sessions:
        if not keep(remote_session, from_remote=True):
            continue
        local_session = local_sessions.pop(remote_session.id, None)
        if local_session is None or remote_session.updated_at > local_session.updated_at:
            sessions.append(remote_session)
            remote_winners.add(remote_session.id)
        else:
            sessions.append(local_session)
    sessions.extend(local_sessions.values())

    kept_ids = {s.id for s in sessions}
    player_sessions: list[PlayerSession] = [
        ps for ps in remote_player_sessions if ps.session_id in remote_winners
    ]
    player_sessions.extend(
        ps
        for ps in local.player_sessions
        if ps.session_id in kept_ids and ps.session_id not in remote_winners
    )

    generations = [
        g for g in (local.imported_generation, remote.imported_generation) if g
    ]
    return LedgerSnapshot(
        players=reconciled.players,
        sessions=sessions,
        player_sessions=player_sessions,
        deleted_session_ids=sorted(deleted),
        imported_generation=max(generations, default=None),
    )


class SyncLoop:
    """Debounced push plus periodic pull-and-reconcile against a sink."""

    def __init__(
        self,
        store: LedgerStore,
        sink: SnapshotSink,
        *,
        poll_interval: float = SYNC_POLL_INTERVAL,
        cooldown: float = SYNC_COOLDOWN,
        debounce: float = SYNC_DEBOUNCE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.sink = sink
        self.poll_interval = poll_interval
        self.cooldown = cooldown
        self.debounce = debounce
        self.clock = clock
        self.status = SyncStatus()
        self._last_write_at: float | None = None
        self._pending: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        store.subscribe(self.notify_local_change)

    def notify_local_change(self) -> None:
        """Schedule a push; a newer change supersedes one still waiting."""
        self.status.has_unsynced_changes = True
        self._last_write_at = self.clock()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (scripts, tests): the next push picks it up
            return
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = loop.create_task(self._push_after_debounce())

    @property
    def push_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def in_cooldown(self) -> bool:
        if self._last_write_at is None:
            return False
        return self.clock() - self._last_write_at < self.cooldown

    async def _push_after_debounce(self) -> None:
        await asyncio.sleep(self.debounce)
        try:
            await self.push()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Debounced push failed: {e!s}")
            self.status.error = str(e)

    async def push(self) -> bool:
        """Save local state unless it matches what was last synced."""
        snapshot = self.store.to_snapshot()
        content_hash = snapshot.content_hash()
        if content_hash == self.status.last_hash:
            logger.debug("Ledger unchanged since last sync, skipping push")
            self.status.has_unsynced_changes = False
            return False

        self.status.is_syncing = True
        try:
            await asyncio.to_thread(self.sink.save, snapshot)
        finally:
            self.status.is_syncing = False
        self._record_sync(content_hash)
        self._last_write_at = self.clock()
        logger.info(f"Pushed ledger snapshot {content_hash[:12]}")
        return True

    async def pull(self) -> bool:
        """Reconcile against the stored snapshot. Returns True if the store changed."""
        if self.push_pending or self.in_cooldown():
            logger.debug("Skipping pull: local write still settling")
            return False

        self.status.is_syncing = True
        try:
            remote = await asyncio.to_thread(self.sink.load)
        finally:
            self.status.is_syncing = False

        if remote is None:
            logger.info("Sink is empty, seeding it with local ledger")
            await self.push()
            return False

        # Nothing below awaits, so the store cannot change under the merge
        remote_hash = remote.content_hash()
        local = self.store.to_snapshot()
        if remote_hash == local.content_hash():
            self._record_sync(remote_hash)
            return False

        if remote_hash == self.status.last_hash:
            # Sink unchanged since our last sync: only local edits are new
            await self.push()
            return False

        merged = merge_snapshots(local, remote)
        merged_hash = merged.content_hash()
        changed = merged_hash != local.content_hash()
        if changed:
            self.store.load_snapshot(merged)
            logger.info(f"Merged remote ledger {remote_hash[:12]} into local state")

        if merged_hash != remote_hash:
            await self.push()
        else:
            self._record_sync(merged_hash)
        return changed

    def _record_sync(self, content_hash: str) -> None:
        self.status.last_hash = content_hash
        self.status.last_sync_time = utcnow()
        self.status.has_unsynced_changes = False
        self.status.error = None

    async def sync_once(self) -> bool:
        """One pull-and-reconcile pass that logs failures instead of raising them."""
        try:
            return await self.pull()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Ledger sync failed: {e!s}")
            self.status.error = str(e)
            return False

    async def run(self) -> None:
        """Poll until ``stop`` is called."""
        logger.info(
            f"Sync loop started (poll={self.poll_interval}s, "
            + f"cooldown={self.cooldown}s, debounce={self.debounce}s)"
        )
        while not self._stopping.is_set():
            await self.sync_once()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
            except TimeoutError:
                continue
        logger.info("Sync loop stopped")

    async def stop(self) -> None:
        """Stop polling and flush any change still waiting for its debounce."""
        self._stopping.set()
        if self.push_pending and self._pending is not None:
            self._pending.cancel()
            self._pending = None
            await self.push()
