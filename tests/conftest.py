"""Pytest configuration and shared fixtures."""

import datetime as dt

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from src.dao.snapshot_dao import SqlSnapshotSink
from src.models import BuyIn, Player, PlayerSession, Session
from src.services.import_service import commit_import, import_grid
from src.services.ledger_store import LedgerStore


@pytest.fixture
def test_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def sink(test_engine) -> SqlSnapshotSink:
    """Snapshot sink backed by the in-memory database."""
    return SqlSnapshotSink(test_engine)


@pytest.fixture
def sample_grid() -> list[list[str]]:
    """Two balanced games between two players, plus legacy stat columns."""
    return [
        ["Players", "1/2/2025", "1/8/2025", "Total", "Average"],
        ["Zach", "-30.00", "-26.50", "-56.50", "-28.25"],
        ["Jack", "30.00", "26.50", "56.50", "28.25"],
    ]


@pytest.fixture
def store() -> LedgerStore:
    return LedgerStore()


@pytest.fixture
def imported_store(sample_grid) -> LedgerStore:
    """Store holding the sample grid as imported history."""
    store = LedgerStore()
    commit_import(store, import_grid(sample_grid))
    return store


@pytest.fixture
def live_store() -> tuple[LedgerStore, str, str, str]:
    """Store with a live session and two seated players.

    Returns (store, session_id, alice_player_session_id, bob_player_session_id).
    """
    store = LedgerStore()
    session_id = store.create_session(date=dt.date(2025, 3, 14), name="Friday Game")
    alice = store.add_player("Alice")
    bob = store.add_player("Bob")
    store.add_player_to_session(session_id, alice, 50.0)
    store.add_player_to_session(session_id, bob, 50.0)
    alice_ps = store.find_player_session(session_id, alice)
    bob_ps = store.find_player_session(session_id, bob)
    assert alice_ps is not None
    assert bob_ps is not None
    return store, session_id, alice_ps.id, bob_ps.id


def _build_player_session(
    player: Player,
    session: Session,
    net: float,
    *,
    buy_ins: list[float] | None = None,
    cash_out: float | None = None,
) -> PlayerSession:
    """Build a player session with explicit numbers for statistics tests."""
    return PlayerSession(
        player_id=player.id,
        session_id=session.id,
        buy_ins=[BuyIn(amount=amount) for amount in (buy_ins or [0.0])],
        cash_out=cash_out,
        net_result=net,
    )


@pytest.fixture
def make_player_session():
    """Factory for player sessions with explicit numbers."""
    return _build_player_session
