"""Ledger data models.

Entities are pydantic models serialized with camelCase aliases so that a
snapshot written to the persistence sink has the external JSON shape
(``playerSessions``, ``netResult`` ...). Only the snapshot row itself is a
SQLModel table.
"""

import datetime as dt
from datetime import UTC, datetime
import hashlib
import json
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from pydantic.alias_generators import to_camel
from sqlmodel import Field, SQLModel  # type: ignore

SNAPSHOT_VERSION = "1.0"

# Currency-unit tolerance for the zero-sum law
ZERO_SUM_TOLERANCE = 0.01

GameType = Literal["cash", "tournament"]


def new_id() -> str:
    """Generate a fresh entity id."""
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


class LedgerModel(BaseModel):
    """Base for ledger entities: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Player(LedgerModel):
    """A person who plays in the game. Matched across sources by case-folded name."""

    id: str = PydanticField(default_factory=new_id)
    name: str
    created_at: datetime = PydanticField(default_factory=utcnow)
    updated_at: datetime = PydanticField(default_factory=utcnow)

    @property
    def name_key(self) -> str:
        return self.name.strip().casefold()


class Session(LedgerModel):
    """A single poker game on a given date."""

    id: str = PydanticField(default_factory=new_id)
    name: str | None = None
    date: dt.date
    game_type: GameType = "cash"
    stakes: str | None = None
    location: str | None = None
    is_complete: bool = False
    is_imported: bool = False  # Read-only to live-game operations
    created_at: datetime = PydanticField(default_factory=utcnow)
    updated_at: datetime = PydanticField(default_factory=utcnow)


class BuyIn(LedgerModel):
    """Cash put on the table by one player. Never modified after recording."""

    id: str = PydanticField(default_factory=new_id)
    amount: float
    timestamp: datetime = PydanticField(default_factory=utcnow)


class PlayerSession(LedgerModel):
    """Link between Player and Session with the money that player moved."""

    id: str = PydanticField(default_factory=new_id)
    player_id: str
    session_id: str
    buy_ins: list[BuyIn] = PydanticField(default_factory=list)
    cash_out: float | None = None
    # 0 until cash_out is set; means "not settled", not "broke even"
    net_result: float = 0.0
    timestamp: datetime = PydanticField(default_factory=utcnow)

    @property
    def total_buy_ins(self) -> float:
        return sum(buy_in.amount for buy_in in self.buy_ins)

    @property
    def is_cashed_out(self) -> bool:
        return self.cash_out is not None


class DateRangeFilter(LedgerModel):
    """Inclusive date range; either bound may be open."""

    start_date: dt.date | None = None
    end_date: dt.date | None = None

    @property
    def is_active(self) -> bool:
        return self.start_date is not None or self.end_date is not None

    def contains(self, day: dt.date) -> bool:
        if self.start_date is not None and day < self.start_date:
            return False
        return not (self.end_date is not None and day > self.end_date)


class BalanceHistoryEntry(LedgerModel):
    date: dt.date
    balance: float
    session_id: str


class PlayerStatistics(LedgerModel):
    """Aggregate results for one player over a (possibly filtered) history."""

    player_id: str
    player_name: str
    total_profit: float = 0.0
    session_count: int = 0
    win_rate: float = 0.0
    avg_win_loss: float = 0.0
    best_session: float = 0.0
    worst_session: float = 0.0
    variance: float = 0.0
    standard_deviation: float = 0.0
    roi: float = 0.0
    total_buy_ins: float = 0.0
    balance_history: list[BalanceHistoryEntry] = PydanticField(default_factory=list)


class ZeroSumResult(LedgerModel):
    is_valid: bool
    difference: float


class ImportErrorEntry(LedgerModel):
    """Blocking import problem, located by 1-based line number."""

    line: int
    message: str
    data: str | None = None


class ImportWarningEntry(LedgerModel):
    """Advisory import problem, located by session date label (or 'N/A')."""

    session_date: str
    message: str


class LedgerSnapshot(LedgerModel):
    """Serializable state exchanged with the persistence sink."""

    version: str = SNAPSHOT_VERSION
    players: list[Player] = PydanticField(default_factory=list)
    sessions: list[Session] = PydanticField(default_factory=list)
    player_sessions: list[PlayerSession] = PydanticField(default_factory=list)
    # Removal records, so a peer cannot bring deleted data back on merge
    deleted_session_ids: list[str] = PydanticField(default_factory=list)
    # Bumped whenever the imported sessions change; newest block wins a merge
    imported_generation: datetime | None = None
    last_modified: datetime = PydanticField(default_factory=utcnow)

    def content_hash(self) -> str:
        """SHA-256 of the ledger content, ignoring ``lastModified``."""
        payload = self.model_dump(
            mode="json", by_alias=True, exclude={"last_modified", "version"}
        )
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class LedgerSnapshotRecord(SQLModel, table=True):
    """A stored snapshot. The newest row is the current remote state."""

    id: int | None = Field(default=None, primary_key=True)
    version: str = Field(default=SNAPSHOT_VERSION)
    content_hash: str = Field(index=True)
    payload: str = Field(description="Snapshot JSON with camelCase keys")
    last_modified: datetime = Field(default_factory=utcnow, index=True)
