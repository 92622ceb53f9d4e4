from fastapi import APIRouter, status
from loguru import logger

from src.api.deps import StoreDep
from src.api.results import raise_for_result
from src.core.exceptions import NotFoundError
from src.models import Player
from src.schemas.errors import ERROR_RESPONSES
from src.schemas.schemas import PlayerCreate, PlayerUpdate

router = APIRouter(responses=ERROR_RESPONSES)


def _get_player(store: StoreDep, player_id: str) -> Player:
    player = store.get_player(player_id)
    if player is None:
        raise NotFoundError(message=f"Player {player_id} not found")
    return player


@router.get("/", response_model=list[Player])
async def read_players(store: StoreDep) -> list[Player]:
    """List players in ledger order."""
    logger.debug(f"Listing {len(store.players)} players")
    return store.players


@router.post("/", response_model=Player, status_code=status.HTTP_201_CREATED)
async def create_player(body: PlayerCreate, store: StoreDep) -> Player:
    """Create a player; an existing case-insensitive name match is returned instead."""
    player_id = store.add_player(body.name)
    return _get_player(store, player_id)


@router.get("/{player_id}", response_model=Player)
async def read_player(player_id: str, store: StoreDep) -> Player:
    return _get_player(store, player_id)


@router.patch("/{player_id}", response_model=Player)
async def rename_player(player_id: str, body: PlayerUpdate, store: StoreDep) -> Player:
    raise_for_result(store.update_player(player_id, body.name), f"Player {body.name!r}")
    return _get_player(store, player_id)


@router.delete("/{player_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_player(player_id: str, store: StoreDep) -> None:
    """Delete a player that has no recorded results."""
    raise_for_result(store.delete_player(player_id), f"Player {player_id}")
