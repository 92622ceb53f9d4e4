"""Unit tests for snapshot persistence."""

import datetime as dt

from sqlmodel import Session, select

from src.dao.snapshot_dao import (
    SqlSnapshotSink,
    get_latest_snapshot_record,
    prune_snapshot_records,
    snapshot_to_record,
)
from src.models import LedgerSnapshot, LedgerSnapshotRecord, Player
from src.services.ledger_store import LedgerStore


class TestSqlSnapshotSink:
    """Tests for the SQL-backed snapshot sink."""

    def test_empty_sink_loads_none(self, sink):
        assert sink.load() is None

    def test_save_then_load_returns_same_content(self, sink, live_store):
        store, session_id, _, _ = live_store
        snapshot = store.to_snapshot()

        sink.save(snapshot)
        loaded = sink.load()

        assert loaded is not None
        assert loaded.content_hash() == snapshot.content_hash()
        assert loaded.sessions[0].id == session_id
        assert loaded.sessions[0].date == dt.date(2025, 3, 14)
        assert loaded.player_sessions[0].total_buy_ins == 50.0

    def test_newest_snapshot_wins(self, sink):
        sink.save(LedgerSnapshot(players=[Player(name="Old")]))
        sink.save(LedgerSnapshot(players=[Player(name="New")]))

        loaded = sink.load()

        assert [p.name for p in loaded.players] == ["New"]

    def test_old_rows_are_pruned(self, test_engine):
        sink = SqlSnapshotSink(test_engine, keep=2)
        for name in ["a", "b", "c", "d"]:
            sink.save(LedgerSnapshot(players=[Player(name=name)]))

        with Session(test_engine) as session:
            rows = session.exec(select(LedgerSnapshotRecord)).all()

        assert len(rows) == 2
        assert [p.name for p in sink.load().players] == ["d"]

    def test_loaded_snapshot_feeds_store(self, sink, imported_store):
        sink.save(imported_store.to_snapshot())
        store = LedgerStore()

        store.load_snapshot(sink.load())

        assert len(store.sessions) == 2
        assert len(store.player_sessions) == 4


class TestSnapshotRecords:
    """Tests for the record helpers."""

    def test_payload_uses_camel_case(self, live_store):
        store, _, _, _ = live_store

        record = snapshot_to_record(store.to_snapshot())

        assert '"playerSessions"' in record.payload
        assert '"netResult"' in record.payload
        assert '"lastModified"' in record.payload
        assert len(record.content_hash) == 64

    def test_prune_with_nothing_to_delete(self, test_engine):
        with Session(test_engine) as session:
            assert prune_snapshot_records(session, keep=5) == 0
            assert get_latest_snapshot_record(session) is None
