"""Merge an incoming player list into the local one by case-insensitive name."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from loguru import logger

from src.models import Player, PlayerSession


@dataclass
class ReconcileResult:
    """Merged players plus the ids that were folded into a local record.

    ``id_map`` maps an incoming player id to the local id that replaced it,
    so incoming player sessions can be re-pointed before they are stored.
    """

    players: list[Player]
    id_map: dict[str, str] = field(default_factory=dict)
    added: int = 0


def _index_by_name(players: Iterable[Player]) -> dict[str, Player]:
    index: dict[str, Player] = {}
    for player in players:
        # First record wins when the local list itself holds a duplicate
        index.setdefault(player.name_key, player)
    return index


def reconcile_players(
    remote: Sequence[Player], local: Sequence[Player]
) -> ReconcileResult:
    """Merge remote players with local ones, keeping the local record on a name match.

    Local ids may already be referenced by in-flight player sessions (an
    active game, pending buy-ins), so they must survive a sync. Local players
    missing from the remote list are kept, never deleted.

    Returns:
        Remote order first, then local-only players in their original order.
    """
    local_by_name = _index_by_name(local)
    merged: list[Player] = []
    seen: set[str] = set()
    id_map: dict[str, str] = {}
    added = 0

    for incoming in remote:
        key = incoming.name_key
        existing = local_by_name.get(key)
        if existing is not None:
            if key not in seen:
                merged.append(existing)
            if incoming.id != existing.id:
                id_map[incoming.id] = existing.id
        else:
            merged.append(incoming)
            added += 1
        seen.add(key)

    merged.extend(player for player in local if player.name_key not in seen)

    logger.debug(
        f"Reconciled {len(remote)} remote with {len(local)} local players: "
        + f"{added} added, {len(id_map)} ids remapped"
    )
    return ReconcileResult(players=merged, id_map=id_map, added=added)


def import_players(
    incoming: Sequence[Player], local: Sequence[Player]
) -> ReconcileResult:
    """Append incoming players whose name is not known locally.

    Used for a first-time import. Incoming duplicates are dropped; their ids
    are still reported in ``id_map`` so imported results are not orphaned.
    """
    local_by_name = _index_by_name(local)
    merged = list(local)
    id_map: dict[str, str] = {}
    added = 0

    for player in incoming:
        existing = local_by_name.get(player.name_key)
        if existing is not None:
            if player.id != existing.id:
                id_map[player.id] = existing.id
            continue
        merged.append(player)
        local_by_name[player.name_key] = player
        added += 1

    logger.debug(f"Imported {added} new players, skipped {len(incoming) - added}")
    return ReconcileResult(players=merged, id_map=id_map, added=added)


def remap_player_sessions(
    player_sessions: Iterable[PlayerSession], id_map: dict[str, str]
) -> list[PlayerSession]:
    """Return player sessions re-pointed at surviving player ids."""
    if not id_map:
        return list(player_sessions)
    return [
        ps.model_copy(update={"player_id": id_map[ps.player_id]})
        if ps.player_id in id_map
        else ps
        for ps in player_sessions
    ]
