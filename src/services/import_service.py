"""Spreadsheet ledger import.

The source sheet has one row per player and one column per game date:

    Players, 1/2/2025, 1/8/2025, Total, Average
    Zach,    -30.00,   -26.50,   ...
    Jack,     30.00,    26.50,   ...

Every cell holds a player's net result for that game. Date columns run from
column 1 up to the first header that is not a date; everything after that
(legacy totals and averages) is ignored.
"""

from collections.abc import Sequence
import csv
from dataclasses import dataclass, field
import datetime as dt
from enum import Enum
import io
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from src.models import (
    ZERO_SUM_TOLERANCE,
    BuyIn,
    ImportErrorEntry,
    ImportWarningEntry,
    Player,
    PlayerSession,
    Session,
    utcnow,
)
from src.schemas.schemas import ImportReport
from src.services.parsing import (
    CellValue,
    format_session_date,
    is_blank,
    parse_header_date,
    parse_money,
)
from src.services.reconcile_service import remap_player_sessions

if TYPE_CHECKING:
    from src.services.ledger_store import LedgerStore

type Grid = Sequence[Sequence[CellValue]]

# Header row plus at least one player row
MIN_GRID_ROWS = 2


class ImportResult(Enum):
    """Result of committing a parsed ledger to the store."""

    SUCCESS = "success"
    REJECTED = "rejected"


@dataclass
class ParsedLedger:
    """Everything read from one sheet, before it touches the store."""

    players: list[Player] = field(default_factory=list)
    sessions: list[Session] = field(default_factory=list)
    player_sessions: list[PlayerSession] = field(default_factory=list)
    errors: list[ImportErrorEntry] = field(default_factory=list)
    warnings: list[ImportWarningEntry] = field(default_factory=list)


def _cell(row: Sequence[CellValue], index: int) -> CellValue:
    return row[index] if index < len(row) else None


def _header_text(header: Sequence[CellValue]) -> str:
    return ",".join("" if cell is None else str(cell) for cell in header)


def _detect_date_columns(header: Sequence[CellValue]) -> list[tuple[int, dt.date]]:
    """Collect (column index, date) pairs until the first non-date header."""
    date_columns: list[tuple[int, dt.date]] = []
    for index in range(1, len(header)):
        day = parse_header_date(header[index])
        if day is None:
            break
        date_columns.append((index, day))
    return date_columns


def _session_timestamp(day: dt.date) -> dt.datetime:
    return dt.datetime.combine(day, dt.time.min, tzinfo=dt.UTC)


def import_grid(grid: Grid) -> ParsedLedger:
    """Build sessions, players and results from a header row plus player rows.

    Problems are collected rather than raised so a single pass reports all of
    them. Errors mean the import must not be committed; warnings (duplicate
    names, sessions that do not sum to zero) are advisory.
    """
    parsed = ParsedLedger()

    if len(grid) < MIN_GRID_ROWS:
        parsed.errors.append(
            ImportErrorEntry(
                line=1,
                message="CSV must have at least a header row and one data row",
            )
        )
        return parsed

    header = grid[0]
    date_columns = _detect_date_columns(header)
    if not date_columns:
        parsed.errors.append(
            ImportErrorEntry(
                line=1,
                message="No valid date columns found. Expected format: MM/DD/YYYY",
                data=_header_text(header),
            )
        )
        return parsed

    now = utcnow()
    for _, day in date_columns:
        parsed.sessions.append(
            Session(
                date=day,
                game_type="cash",
                is_complete=True,
                is_imported=True,
                created_at=now,
                updated_at=now,
            )
        )
    session_totals = {session.id: 0.0 for session in parsed.sessions}
    players_by_name: dict[str, Player] = {}

    for line, row in enumerate(grid[1:], start=2):
        first_cell = _cell(row, 0)
        player_name = "" if first_cell is None else str(first_cell).strip()
        if not player_name:
            continue

        key = player_name.casefold()
        player = players_by_name.get(key)
        if player is None:
            player = Player(name=player_name, created_at=now, updated_at=now)
            players_by_name[key] = player
            parsed.players.append(player)
        else:
            # Same name twice is not necessarily the same person; keep both rows
            parsed.warnings.append(
                ImportWarningEntry(
                    session_date="N/A",
                    message=f'Duplicate player name found: "{player_name}"',
                )
            )

        for (column, _), session in zip(date_columns, parsed.sessions, strict=True):
            cell = _cell(row, column)
            if is_blank(cell):
                continue  # Did not play

            amount = parse_money(cell)
            if amount is None:
                parsed.errors.append(
                    ImportErrorEntry(
                        line=line,
                        message=(
                            f'Invalid amount for "{player_name}" on '
                            + format_session_date(session.date)
                        ),
                        data=str(cell),
                    )
                )
                continue

            timestamp = _session_timestamp(session.date)
            # Only totals are known, so the buy-in is a zero placeholder
            parsed.player_sessions.append(
                PlayerSession(
                    player_id=player.id,
                    session_id=session.id,
                    buy_ins=[BuyIn(amount=0.0, timestamp=timestamp)],
                    cash_out=None,
                    net_result=amount,
                    timestamp=timestamp,
                )
            )
            session_totals[session.id] += amount

    for session in parsed.sessions:
        total = session_totals[session.id]
        if abs(total) > ZERO_SUM_TOLERANCE:
            parsed.warnings.append(
                ImportWarningEntry(
                    session_date=format_session_date(session.date),
                    message=f"Session does not sum to zero. Difference: ${total:.2f}",
                )
            )

    logger.info(
        f"Parsed ledger grid: {len(parsed.sessions)} sessions, "
        + f"{len(parsed.players)} players, {len(parsed.player_sessions)} results, "
        + f"{len(parsed.errors)} errors, {len(parsed.warnings)} warnings"
    )
    return parsed


def parse_csv_text(text: str) -> tuple[list[list[str]], list[ImportErrorEntry]]:
    """Split CSV text into a grid, skipping empty lines."""
    grid: list[list[str]] = []
    errors: list[ImportErrorEntry] = []
    reader = csv.reader(io.StringIO(text))
    try:
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            grid.append(row)
    except csv.Error as e:
        logger.error(f"CSV parsing stopped at line {reader.line_num}: {e!s}")
        errors.append(ImportErrorEntry(line=reader.line_num, message=str(e)))
    return grid, errors


def import_csv_text(text: str) -> ParsedLedger:
    """Parse CSV text and import the resulting grid."""
    grid, csv_errors = parse_csv_text(text)
    parsed = import_grid(grid)
    parsed.errors[:0] = csv_errors
    return parsed


def import_csv_file(csv_file: Path) -> ParsedLedger:
    """Read and import a CSV export of the ledger sheet."""
    logger.info(f"Reading ledger sheet: {csv_file.name}")
    # utf-8-sig drops the BOM spreadsheet exports like to prepend
    text = csv_file.read_text(encoding="utf-8-sig")
    return import_csv_text(text)


def generate_import_report(parsed: ParsedLedger) -> ImportReport:
    """Summarize a parse; warnings alone never make it unsuccessful."""
    return ImportReport(
        success=not parsed.errors,
        sessions_imported=len(parsed.sessions),
        players_imported=len(parsed.players),
        errors=parsed.errors,
        warnings=parsed.warnings,
    )


def sort_sessions_by_date(sessions: Sequence[Session]) -> list[Session]:
    """Chronological order; same-date sessions keep their column order."""
    return sorted(sessions, key=lambda session: session.date)


def commit_import(
    store: "LedgerStore", parsed: ParsedLedger, *, replace: bool = False
) -> ImportResult:
    """Write a parsed ledger into the store.

    A first import only adds unknown players. A resync (``replace=True``)
    merges players, keeping local ids on name matches, and swaps out every
    previously imported session while leaving live sessions alone.

    Returns:
        REJECTED, without touching the store, when the parse had errors.
    """
    if parsed.errors:
        logger.error(
            f"Import rejected with {len(parsed.errors)} error(s); nothing committed"
        )
        return ImportResult.REJECTED

    if replace:
        id_map = store.merge_players(parsed.players)
        player_sessions = remap_player_sessions(parsed.player_sessions, id_map)
        store.replace_imported_sessions(parsed.sessions, player_sessions)
    else:
        id_map = store.import_players(parsed.players)
        player_sessions = remap_player_sessions(parsed.player_sessions, id_map)
        store.import_sessions(parsed.sessions, player_sessions)

    logger.success(
        f"Committed import: {len(parsed.sessions)} sessions, "
        + f"{len(player_sessions)} results ({'resync' if replace else 'first import'})"
    )
    return ImportResult.SUCCESS
