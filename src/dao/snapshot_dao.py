"""Data Access Object for stored ledger snapshots."""

from loguru import logger
from sqlalchemy import Engine
from sqlmodel import Session, col, select

from src.models import LedgerSnapshot, LedgerSnapshotRecord

# Older rows are history only; the newest row is the current state
DEFAULT_SNAPSHOTS_KEPT = 20


def get_latest_snapshot_record(session: Session) -> LedgerSnapshotRecord | None:
    """Get the most recently written snapshot row."""
    return session.exec(
        select(LedgerSnapshotRecord).order_by(col(LedgerSnapshotRecord.id).desc())
    ).first()


def create_snapshot_record(
    session: Session, record: LedgerSnapshotRecord
) -> LedgerSnapshotRecord:
    """Create a new snapshot row and return it with ID populated."""
    session.add(record)
    session.flush()
    return record


def prune_snapshot_records(session: Session, keep: int = DEFAULT_SNAPSHOTS_KEPT) -> int:
    """Delete all but the newest ``keep`` rows. Returns the number deleted."""
    stale = session.exec(
        select(LedgerSnapshotRecord)
        .order_by(col(LedgerSnapshotRecord.id).desc())
        .offset(keep)
    ).all()
    for record in stale:
        session.delete(record)
    return len(stale)


def snapshot_to_record(snapshot: LedgerSnapshot) -> LedgerSnapshotRecord:
    return LedgerSnapshotRecord(
        version=snapshot.version,
        content_hash=snapshot.content_hash(),
        payload=snapshot.model_dump_json(by_alias=True),
        last_modified=snapshot.last_modified,
    )


def record_to_snapshot(record: LedgerSnapshotRecord) -> LedgerSnapshot:
    return LedgerSnapshot.model_validate_json(record.payload)


class SqlSnapshotSink:
    """Persistence sink backed by the ``ledgersnapshotrecord`` table."""

    def __init__(self, engine: Engine, keep: int = DEFAULT_SNAPSHOTS_KEPT) -> None:
        self.engine = engine
        self.keep = keep

    def load(self) -> LedgerSnapshot | None:
        """Return the newest stored snapshot, or None if nothing was saved yet."""
        with Session(self.engine) as session:
            record = get_latest_snapshot_record(session)
            if record is None:
                logger.debug("No stored ledger snapshot found")
                return None
            return record_to_snapshot(record)

    def save(self, snapshot: LedgerSnapshot) -> None:
        with Session(self.engine) as session:
            record = create_snapshot_record(session, snapshot_to_record(snapshot))
            pruned = prune_snapshot_records(session, self.keep)
            session.commit()
            logger.info(
                f"Saved ledger snapshot #{record.id} ({record.content_hash[:12]}), "
                + f"pruned {pruned} old rows"
            )
