"""
Player statistics endpoints.

All figures are computed on request from completed sessions, optionally
limited to an inclusive date range.
"""

import datetime as dt
from typing import Annotated

from fastapi import APIRouter, Query
from fastapi.responses import Response

from src.api.deps import StoreDep
from src.core.exceptions import NotFoundError, ValidationError
from src.models import DateRangeFilter, PlayerStatistics
from src.schemas.errors import ERROR_RESPONSES
from src.services.export_service import export_statistics_csv
from src.services.player_stats_service import (
    compute_all_statistics,
    compute_player_statistics,
    sort_statistics,
)

router = APIRouter(responses=ERROR_RESPONSES)

StartDate = Annotated[dt.date | None, Query(description="Inclusive lower bound")]
EndDate = Annotated[dt.date | None, Query(description="Inclusive upper bound")]


def _date_filter(
    start_date: dt.date | None, end_date: dt.date | None
) -> DateRangeFilter:
    if start_date and end_date and start_date > end_date:
        raise ValidationError(
            message="start_date must not be after end_date",
            details={
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        )
    return DateRangeFilter(start_date=start_date, end_date=end_date)


def _sorted_statistics(
    store: StoreDep,
    start_date: dt.date | None,
    end_date: dt.date | None,
    sort: str,
    order: str,
) -> list[PlayerStatistics]:
    stats = compute_all_statistics(
        store.players,
        store.sessions,
        store.player_sessions,
        _date_filter(start_date, end_date),
    )
    try:
        return sort_statistics(stats, sort, descending=order == "desc")
    except ValueError as e:
        raise ValidationError(message=str(e), details={"sort": sort}) from e


@router.get("/", response_model=list[PlayerStatistics])
async def read_statistics(
    store: StoreDep,
    start_date: StartDate = None,
    end_date: EndDate = None,
    sort: str = "totalProfit",
    order: Annotated[str, Query(pattern="^(asc|desc)$")] = "desc",
) -> list[PlayerStatistics]:
    """Statistics for every player with completed sessions in range."""
    return _sorted_statistics(store, start_date, end_date, sort, order)


@router.get("/export", response_class=Response)
async def export_statistics(
    store: StoreDep,
    start_date: StartDate = None,
    end_date: EndDate = None,
    sort: str = "totalProfit",
    order: Annotated[str, Query(pattern="^(asc|desc)$")] = "desc",
) -> Response:
    """Download the results table as CSV."""
    stats = _sorted_statistics(store, start_date, end_date, sort, order)
    return Response(
        content=export_statistics_csv(stats),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="poker-statistics.csv"'},
    )


@router.get("/{player_id}", response_model=PlayerStatistics)
async def read_player_statistics(
    player_id: str,
    store: StoreDep,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> PlayerStatistics:
    """One player's statistics, including the zeroed record for no history."""
    player = store.get_player(player_id)
    if player is None:
        raise NotFoundError(message=f"Player {player_id} not found")
    return compute_player_statistics(
        player,
        store.sessions,
        store.player_sessions,
        _date_filter(start_date, end_date),
    )
