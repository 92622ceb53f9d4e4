"""Pydantic request/response schemas for API endpoints."""

import datetime as dt
from typing import Annotated, Self

from pydantic import Field, StringConstraints, model_validator

from src.core.config import DEFAULT_BUY_IN
from src.models import (
    GameType,
    ImportErrorEntry,
    ImportWarningEntry,
    LedgerModel,
    PlayerSession,
    Session,
    ZeroSumResult,
)
from src.services.parsing import CellValue

PositiveAmount = Annotated[float, Field(gt=0, allow_inf_nan=False)]
NonNegativeAmount = Annotated[float, Field(ge=0, allow_inf_nan=False)]
PlayerName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
]


class ImportReport(LedgerModel):
    """Summary of one spreadsheet import."""

    success: bool
    sessions_imported: int
    players_imported: int
    errors: list[ImportErrorEntry]
    warnings: list[ImportWarningEntry]


class FileUploadResult(LedgerModel):
    """Result of a single file upload."""

    filename: str
    status: str
    message: str
    report: ImportReport | None = None


class GridImportRequest(LedgerModel):
    """A sheet already fetched by the caller, header row first."""

    grid: list[list[CellValue]]
    replace: bool = False


class ErrorLogRequest(LedgerModel):
    errors: list[ImportErrorEntry] = []
    warnings: list[ImportWarningEntry] = []


class PlayerCreate(LedgerModel):
    name: PlayerName


class PlayerUpdate(LedgerModel):
    name: PlayerName


class SessionCreate(LedgerModel):
    date: dt.date
    game_type: GameType = "cash"
    name: str | None = None
    stakes: str | None = None
    location: str | None = None


class AddPlayerToSessionRequest(LedgerModel):
    """Seat an existing player, or create one by name and seat them."""

    player_id: str | None = None
    new_player_name: PlayerName | None = None
    buy_in_amount: PositiveAmount = DEFAULT_BUY_IN

    @model_validator(mode="after")
    def check_one_player_source(self) -> Self:
        if (self.player_id is None) == (self.new_player_name is None):
            msg = "Provide exactly one of playerId or newPlayerName"
            raise ValueError(msg)
        return self


class BuyInRequest(LedgerModel):
    amount: PositiveAmount


class CashOutRequest(LedgerModel):
    amount: NonNegativeAmount


class SheetWriteBackRequest(LedgerModel):
    """The current ledger sheet, header row first."""

    grid: list[list[CellValue]]


class CompleteSessionRequest(LedgerModel):
    force: bool = False


class SessionDetail(LedgerModel):
    """A session with its seats and settlement state."""

    session: Session
    player_sessions: list[PlayerSession]
    all_cashed_out: bool
    zero_sum: ZeroSumResult


class SyncStatusResponse(LedgerModel):
    enabled: bool
    is_syncing: bool
    has_unsynced_changes: bool
    last_sync_time: dt.datetime | None = None
    error: str | None = None
