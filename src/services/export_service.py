"""Plain-text and spreadsheet renderings of import problems, statistics and results."""

from collections.abc import Mapping, Sequence
import csv
import datetime as dt
import io
from typing import TYPE_CHECKING

from loguru import logger

from src.models import ImportErrorEntry, ImportWarningEntry, PlayerStatistics
from src.services.parsing import CellValue, format_session_date, parse_header_date

if TYPE_CHECKING:
    from src.services.ledger_store import LedgerStore

STATISTICS_HEADERS = [
    "Player",
    "Total P/L",
    "Sessions",
    "Win Rate",
    "Avg Win/Loss",
    "Best Session",
    "Worst Session",
    "Variance",
    "Std Dev",
    "ROI",
    "Total Buy-Ins",
]

IN_PROGRESS_SUFFIX = " In Progress"


def generate_error_log(
    errors: Sequence[ImportErrorEntry], warnings: Sequence[ImportWarningEntry]
) -> str:
    """Render import errors then warnings as a downloadable text log."""
    lines = ["CSV Import Error Log", "=====================", ""]

    if errors:
        lines.append("ERRORS:")
        for error in errors:
            lines.append(f"Line {error.line}: {error.message}")
            if error.data:
                lines.append(f"  Data: {error.data}")
        lines.append("")

    if warnings:
        lines.extend(
            ["WARNINGS:"]
            + [f"Session {w.session_date}: {w.message}" for w in warnings]
        )

    if not errors and not warnings:
        lines.append("No errors or warnings.")

    return "\n".join(lines) + "\n"


def export_statistics_csv(stats: Sequence[PlayerStatistics]) -> str:
    """One row per player, rounded the way the results table shows them."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(STATISTICS_HEADERS)
    for s in stats:
        writer.writerow(
            [
                s.player_name,
                f"{s.total_profit:.2f}",
                s.session_count,
                f"{s.win_rate:.1f}",
                f"{s.avg_win_loss:.2f}",
                f"{s.best_session:.2f}",
                f"{s.worst_session:.2f}",
                f"{s.variance:.2f}",
                f"{s.standard_deviation:.2f}",
                f"{s.roi:.1f}",
                f"{s.total_buy_ins:.2f}",
            ]
        )
    return buffer.getvalue()


def collect_session_results(
    store: "LedgerStore", session_id: str, *, in_progress: bool = False
) -> dict[str, float]:
    """Map player name to net result (or total buy-in while the game runs)."""
    results: dict[str, float] = {}
    for ps in store.session_player_sessions(session_id):
        player = store.get_player(ps.player_id)
        if player is None:
            logger.warning(f"Player session {ps.id} points at unknown player")
            continue
        results[player.name] = ps.total_buy_ins if in_progress else ps.net_result
    return results


def _find_session_column(
    header: Sequence[CellValue], session_date: dt.date, label: str
) -> int | None:
    for index in range(1, len(header)):
        cell = header[index]
        text = "" if cell is None else str(cell).strip()
        if text in {label, label + IN_PROGRESS_SUFFIX}:
            return index
        if parse_header_date(cell) == session_date:
            return index
    return None


def append_session_column(
    grid: Sequence[Sequence[CellValue]],
    session_date: dt.date,
    results: Mapping[str, float],
    *,
    in_progress: bool = False,
) -> list[list[CellValue]]:
    """Write one game into a copy of the ledger sheet.

    The column whose header already names this date (plain, in-progress or
    as a serial number) is overwritten; otherwise a new column is added to
    the right of the widest row. Players are matched case-insensitively,
    non-participants get a blank cell and unknown players are appended as
    new rows.
    """
    if not grid:
        msg = "Ledger sheet is empty"
        raise ValueError(msg)

    rows: list[list[CellValue]] = [list(row) for row in grid]
    label = format_session_date(session_date)
    column = _find_session_column(rows[0], session_date, label)
    if column is None:
        column = max(len(row) for row in rows)

    by_name = {name.strip().casefold(): value for name, value in results.items()}
    known: set[str] = set()

    def put(row: list[CellValue], value: CellValue) -> None:
        if len(row) <= column:
            row.extend([""] * (column + 1 - len(row)))
        row[column] = value

    put(rows[0], label + IN_PROGRESS_SUFFIX if in_progress else label)
    for row in rows[1:]:
        name = str(row[0]).strip().casefold() if row and row[0] is not None else ""
        if name:
            known.add(name)
        put(row, by_name.get(name, "") if name else "")

    for name, value in results.items():
        if name.strip().casefold() in known:
            continue
        new_row: list[CellValue] = [name]
        put(new_row, value)
        rows.append(new_row)

    logger.debug(f"Wrote session {label} into sheet column {column}")
    return rows
