"""
Live-game endpoints.

Seat players, record buy-ins and cash-outs, and end, resume or delete a
session. Imported sessions are read-only here; only a resync replaces them.
"""

from fastapi import APIRouter, status
from loguru import logger

from src.api.deps import StoreDep
from src.api.results import raise_for_result
from src.core.exceptions import NotFoundError, ValidationError
from src.models import Player, PlayerSession, Session, ZeroSumResult
from src.schemas.errors import ERROR_RESPONSES
from src.schemas.schemas import (
    AddPlayerToSessionRequest,
    BuyInRequest,
    CashOutRequest,
    CompleteSessionRequest,
    SessionCreate,
    SessionDetail,
    SheetWriteBackRequest,
)
from src.services.export_service import (
    append_session_column,
    collect_session_results,
)
from src.services.import_service import sort_sessions_by_date
from src.services.ledger_store import LedgerResult, LedgerStore
from src.services.parsing import CellValue

router = APIRouter(responses=ERROR_RESPONSES)


def _session_detail(store: LedgerStore, session_id: str) -> SessionDetail:
    session = store.get_session(session_id)
    if session is None:
        raise NotFoundError(message=f"Session {session_id} not found")
    return SessionDetail(
        session=session,
        player_sessions=store.session_player_sessions(session_id),
        all_cashed_out=store.all_cashed_out(session_id),
        zero_sum=store.validate_zero_sum(session_id),
    )


def _player_session(store: LedgerStore, player_session_id: str) -> PlayerSession:
    player_session = store.get_player_session(player_session_id)
    if player_session is None:
        raise NotFoundError(message=f"Player session {player_session_id} not found")
    return player_session


@router.get("/", response_model=list[Session])
async def read_sessions(store: StoreDep) -> list[Session]:
    """All sessions, oldest first."""
    return sort_sessions_by_date(store.sessions)


@router.get("/active", response_model=SessionDetail | None)
async def read_active_session(store: StoreDep) -> SessionDetail | None:
    if store.active_session_id is None:
        return None
    return _session_detail(store, store.active_session_id)


@router.post("/", response_model=SessionDetail, status_code=status.HTTP_201_CREATED)
async def create_session(body: SessionCreate, store: StoreDep) -> SessionDetail:
    """Start a live game; it becomes the active session."""
    session_id = store.create_session(
        date=body.date,
        game_type=body.game_type,
        name=body.name,
        stakes=body.stakes,
        location=body.location,
    )
    return _session_detail(store, session_id)


@router.get("/{session_id}", response_model=SessionDetail)
async def read_session(session_id: str, store: StoreDep) -> SessionDetail:
    return _session_detail(store, session_id)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, store: StoreDep) -> None:
    raise_for_result(store.delete_session(session_id), f"Session {session_id}")


@router.get("/{session_id}/available-players", response_model=list[Player])
async def read_available_players(session_id: str, store: StoreDep) -> list[Player]:
    """Players who can still be seated in this session."""
    if store.get_session(session_id) is None:
        raise NotFoundError(message=f"Session {session_id} not found")
    return store.available_players(session_id)


@router.post(
    "/{session_id}/players",
    response_model=PlayerSession,
    status_code=status.HTTP_201_CREATED,
)
async def add_player_to_session(
    session_id: str, body: AddPlayerToSessionRequest, store: StoreDep
) -> PlayerSession:
    """Seat a player with an initial buy-in, creating the player if named."""
    if store.get_session(session_id) is None:
        raise NotFoundError(message=f"Session {session_id} not found")

    if body.new_player_name is not None:
        player_id = store.add_player(body.new_player_name)
    else:
        player_id = body.player_id or ""

    result = store.add_player_to_session(session_id, player_id, body.buy_in_amount)
    target = (
        f"Session {session_id}"
        if result == LedgerResult.READ_ONLY
        else f"Player {player_id} in session {session_id}"
    )
    raise_for_result(result, target)

    player_session = store.find_player_session(session_id, player_id)
    if player_session is None:
        raise NotFoundError(message=f"Player {player_id} not seated")
    logger.info(f"Seated player {player_id} in {session_id} for {body.buy_in_amount}")
    return player_session


@router.delete(
    "/player-sessions/{player_session_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def remove_player_from_session(player_session_id: str, store: StoreDep) -> None:
    """Unseat a player who has not cashed out yet."""
    raise_for_result(
        store.remove_player_from_session(player_session_id),
        f"Player session {player_session_id}",
    )


@router.post(
    "/player-sessions/{player_session_id}/buy-ins", response_model=PlayerSession
)
async def add_buy_in(
    player_session_id: str, body: BuyInRequest, store: StoreDep
) -> PlayerSession:
    raise_for_result(
        store.add_buy_in(player_session_id, body.amount),
        f"Player session {player_session_id}",
    )
    return _player_session(store, player_session_id)


@router.put(
    "/player-sessions/{player_session_id}/cash-out", response_model=PlayerSession
)
async def set_cash_out(
    player_session_id: str, body: CashOutRequest, store: StoreDep
) -> PlayerSession:
    """Record or correct a cash-out; the net result is recomputed."""
    raise_for_result(
        store.set_cash_out(player_session_id, body.amount),
        f"Player session {player_session_id}",
    )
    return _player_session(store, player_session_id)


@router.get("/{session_id}/zero-sum", response_model=ZeroSumResult)
async def read_zero_sum(session_id: str, store: StoreDep) -> ZeroSumResult:
    if store.get_session(session_id) is None:
        raise NotFoundError(message=f"Session {session_id} not found")
    return store.validate_zero_sum(session_id)


@router.post("/{session_id}/complete", response_model=SessionDetail)
async def complete_session(
    session_id: str, store: StoreDep, body: CompleteSessionRequest | None = None
) -> SessionDetail:
    """End a game once everyone has cashed out.

    An unbalanced game is refused with 409 unless ``force`` is set.
    """
    force = body.force if body is not None else False
    result = store.end_session(session_id, force=force)
    raise_for_result(
        result,
        f"Session {session_id}",
        difference=store.validate_zero_sum(session_id).difference,
    )
    return _session_detail(store, session_id)


@router.post("/{session_id}/resume", response_model=SessionDetail)
async def resume_session(session_id: str, store: StoreDep) -> SessionDetail:
    """Reopen a finished live game. All cash-outs in it are cleared."""
    raise_for_result(
        store.resume_completed_session(session_id), f"Session {session_id}"
    )
    return _session_detail(store, session_id)


@router.post("/{session_id}/sheet", response_model=list[list[CellValue]])
async def write_session_to_sheet(
    session_id: str, body: SheetWriteBackRequest, store: StoreDep
) -> list[list[CellValue]]:
    """Return the ledger sheet with this session written into its date column.

    An unfinished game is written as total buy-ins under an
    "In Progress" header; a finished one as net results.
    """
    session = store.get_session(session_id)
    if session is None:
        raise NotFoundError(message=f"Session {session_id} not found")
    if not body.grid:
        raise ValidationError(message="Ledger sheet is empty")

    in_progress = not session.is_complete
    results = collect_session_results(store, session_id, in_progress=in_progress)
    return append_session_column(
        body.grid, session.date, results, in_progress=in_progress
    )
