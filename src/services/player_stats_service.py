"""Service for calculating player aggregate statistics."""

from collections.abc import Sequence
import math

from loguru import logger

from src.models import (
    ZERO_SUM_TOLERANCE,
    BalanceHistoryEntry,
    DateRangeFilter,
    Player,
    PlayerSession,
    PlayerStatistics,
    Session,
    ZeroSumResult,
)

PERCENT = 100.0


def _estimate_buy_ins(player_session: PlayerSession) -> float:
    """Money a player put in for one session.

    Recorded buy-ins are used when they add up to something. Imported sheets
    only carry a zero placeholder, so the amount is reconstructed as
    ``cash_out - net_result`` when the cash-out is known, and otherwise
    floored at ``abs(net_result)``. That floor understates the buy-in of any
    winning player, which inflates ROI on imported history.
    """
    actual = player_session.total_buy_ins
    if actual > 0:
        return actual
    if player_session.cash_out is not None:
        return player_session.cash_out - player_session.net_result
    return abs(player_session.net_result)


def compute_player_statistics(
    player: Player,
    sessions: Sequence[Session],
    player_sessions: Sequence[PlayerSession],
    date_filter: DateRangeFilter | None = None,
) -> PlayerStatistics:
    """Aggregate one player's completed sessions.

    This calculates:
    - total_profit, session_count, avg_win_loss
    - win_rate: share of sessions with a positive net, in percent
    - best_session / worst_session: max / min single-session net
    - variance: population variance of the session nets (divisor n)
    - standard_deviation
    - total_buy_ins and roi (0 when nothing was bought in)
    - balance_history: running total in date order

    Args:
        player: Player to report on
        sessions: All sessions; used for dates and completion state
        player_sessions: All player sessions; filtered to this player
        date_filter: Optional inclusive range on the session date

    Returns:
        Statistics record. A player without completed sessions gets an
        all-zero record with an empty history.
    """
    session_map = {session.id: session for session in sessions}

    relevant = [ps for ps in player_sessions if ps.player_id == player.id]

    if date_filter is not None and date_filter.is_active:
        relevant = [
            ps
            for ps in relevant
            if (session := session_map.get(ps.session_id)) is not None
            and date_filter.contains(session.date)
        ]

    # In-progress games never count
    completed = [
        ps
        for ps in relevant
        if (session := session_map.get(ps.session_id)) is not None
        and session.is_complete
    ]

    if not completed:
        return PlayerStatistics(player_id=player.id, player_name=player.name)

    results = [ps.net_result for ps in completed]
    session_count = len(results)
    total_profit = sum(results)
    winning_sessions = sum(1 for result in results if result > 0)
    avg_win_loss = total_profit / session_count

    total_buy_ins = sum(_estimate_buy_ins(ps) for ps in completed)
    roi = total_profit / total_buy_ins * PERCENT if total_buy_ins > 0 else 0.0

    variance = sum((result - avg_win_loss) ** 2 for result in results) / session_count

    # sorted() is stable: same-day sessions keep their original order
    chronological = sorted(completed, key=lambda ps: session_map[ps.session_id].date)
    balance_history: list[BalanceHistoryEntry] = []
    running_balance = 0.0
    for ps in chronological:
        running_balance += ps.net_result
        balance_history.append(
            BalanceHistoryEntry(
                date=session_map[ps.session_id].date,
                balance=running_balance,
                session_id=ps.session_id,
            )
        )

    return PlayerStatistics(
        player_id=player.id,
        player_name=player.name,
        total_profit=total_profit,
        session_count=session_count,
        win_rate=winning_sessions / session_count * PERCENT,
        avg_win_loss=avg_win_loss,
        best_session=max(results),
        worst_session=min(results),
        variance=variance,
        standard_deviation=math.sqrt(variance),
        roi=roi,
        total_buy_ins=total_buy_ins,
        balance_history=balance_history,
    )


def compute_all_statistics(
    players: Sequence[Player],
    sessions: Sequence[Session],
    player_sessions: Sequence[PlayerSession],
    date_filter: DateRangeFilter | None = None,
) -> list[PlayerStatistics]:
    """Statistics for every player with at least one qualifying session."""
    all_stats = [
        compute_player_statistics(player, sessions, player_sessions, date_filter)
        for player in players
    ]
    with_history = [stats for stats in all_stats if stats.session_count > 0]
    logger.debug(
        f"Computed statistics for {len(with_history)} of {len(players)} players"
    )
    return with_history


def validate_zero_sum(
    session_id: str, player_sessions: Sequence[PlayerSession]
) -> ZeroSumResult:
    """Check that a session's net results cancel out within one cent."""
    difference = sum(
        ps.net_result for ps in player_sessions if ps.session_id == session_id
    )
    return ZeroSumResult(
        is_valid=abs(difference) < ZERO_SUM_TOLERANCE, difference=difference
    )


def _sort_key_for(column: str) -> str:
    """Resolve a snake_case or camelCase column name to a statistics field."""
    for name, info in PlayerStatistics.model_fields.items():
        if column in {name, info.alias} and name != "balance_history":
            return name
    msg = f"Cannot sort statistics by: {column}"
    raise ValueError(msg)


def sort_statistics(
    stats: Sequence[PlayerStatistics],
    column: str = "total_profit",
    *,
    descending: bool = True,
) -> list[PlayerStatistics]:
    """Order a results table by one column (default: total profit, highest first).

    Raises:
        ValueError: if ``column`` is not a sortable statistics field.
    """
    key = _sort_key_for(column)
    if key == "player_name":
        return sorted(
            stats, key=lambda s: s.player_name.casefold(), reverse=descending
        )
    return sorted(stats, key=lambda s: getattr(s, key), reverse=descending)
