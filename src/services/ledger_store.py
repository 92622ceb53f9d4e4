"""In-memory ledger of players, sessions and player sessions.

Mutations never raise on a bad precondition. They return a ``LedgerResult``
and leave the ledger untouched when refused, so the caller decides whether a
refusal is an error. Creation operations return the new entity id directly.
"""

from collections.abc import Callable, Sequence
import datetime as dt
from enum import Enum

from loguru import logger

from src.models import (
    BuyIn,
    GameType,
    LedgerSnapshot,
    Player,
    PlayerSession,
    Session,
    ZeroSumResult,
    utcnow,
)
from src.services.player_stats_service import validate_zero_sum
from src.services.reconcile_service import import_players, reconcile_players


class LedgerResult(Enum):
    """Outcome of a ledger mutation."""

    OK = "ok"
    NOT_FOUND = "not_found"
    READ_ONLY = "read_only"
    DUPLICATE = "duplicate"
    INVALID_STATE = "invalid_state"
    UNBALANCED = "unbalanced"


type ChangeListener = Callable[[], None]


class LedgerStore:
    """Owns every ledger collection; entities refer to each other by id only."""

    def __init__(
        self,
        players: Sequence[Player] = (),
        sessions: Sequence[Session] = (),
        player_sessions: Sequence[PlayerSession] = (),
        active_session_id: str | None = None,
    ) -> None:
        self.players: list[Player] = list(players)
        self.sessions: list[Session] = list(sessions)
        self.player_sessions: list[PlayerSession] = list(player_sessions)
        self.active_session_id = active_session_id
        self.deleted_session_ids: list[str] = []
        self.imported_generation: dt.datetime | None = None
        self.revision = 0
        self._listeners: list[ChangeListener] = []

    # -- change notification ------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> None:
        """Call ``listener`` after every applied local mutation."""
        self._listeners.append(listener)

    def _changed(self) -> None:
        self.revision += 1
        for listener in self._listeners:
            listener()

    def _reject(self, result: LedgerResult, reason: str) -> LedgerResult:
        logger.debug(f"Ledger mutation refused ({result.value}): {reason}")
        return result

    # -- lookups ------------------------------------------------------------

    def get_player(self, player_id: str) -> Player | None:
        return next((p for p in self.players if p.id == player_id), None)

    def find_player_by_name(self, name: str) -> Player | None:
        key = name.strip().casefold()
        return next((p for p in self.players if p.name_key == key), None)

    def get_session(self, session_id: str) -> Session | None:
        return next((s for s in self.sessions if s.id == session_id), None)

    def get_player_session(self, player_session_id: str) -> PlayerSession | None:
        return next(
            (ps for ps in self.player_sessions if ps.id == player_session_id), None
        )

    def find_player_session(
        self, session_id: str, player_id: str
    ) -> PlayerSession | None:
        return next(
            (
                ps
                for ps in self.player_sessions
                if ps.session_id == session_id and ps.player_id == player_id
            ),
            None,
        )

    def session_player_sessions(self, session_id: str) -> list[PlayerSession]:
        return [ps for ps in self.player_sessions if ps.session_id == session_id]

    @property
    def active_session(self) -> Session | None:
        if self.active_session_id is None:
            return None
        return self.get_session(self.active_session_id)

    def available_players(self, session_id: str) -> list[Player]:
        """Players not yet seated in the session."""
        seated = {ps.player_id for ps in self.session_player_sessions(session_id)}
        return [p for p in self.players if p.id not in seated]

    def all_cashed_out(self, session_id: str) -> bool:
        return all(ps.is_cashed_out for ps in self.session_player_sessions(session_id))

    def validate_zero_sum(self, session_id: str) -> ZeroSumResult:
        return validate_zero_sum(session_id, self.player_sessions)

    # -- players ------------------------------------------------------------

    def add_player(self, name: str) -> str:
        """Create a player, or return the id of the one already using this name."""
        existing = self.find_player_by_name(name)
        if existing is not None:
            return existing.id
        player = Player(name=name.strip())
        self.players.append(player)
        self._changed()
        return player.id

    def update_player(self, player_id: str, name: str) -> LedgerResult:
        player = self.get_player(player_id)
        if player is None:
            return self._reject(LedgerResult.NOT_FOUND, f"player {player_id}")
        clash = self.find_player_by_name(name)
        if clash is not None and clash.id != player_id:
            return self._reject(LedgerResult.DUPLICATE, f"name {name!r} taken")
        player.name = name.strip()
        player.updated_at = utcnow()
        self._changed()
        return LedgerResult.OK

    def delete_player(self, player_id: str) -> LedgerResult:
        """Remove a player that has no results recorded anywhere."""
        if self.get_player(player_id) is None:
            return self._reject(LedgerResult.NOT_FOUND, f"player {player_id}")
        if any(ps.player_id == player_id for ps in self.player_sessions):
            return self._reject(
                LedgerResult.INVALID_STATE, f"player {player_id} has results"
            )
        self.players = [p for p in self.players if p.id != player_id]
        self._changed()
        return LedgerResult.OK

    def import_players(self, players: Sequence[Player]) -> dict[str, str]:
        """Add players with unknown names; returns incoming id -> kept local id."""
        result = import_players(players, self.players)
        self.players = result.players
        self._changed()
        return result.id_map

    def merge_players(self, players: Sequence[Player]) -> dict[str, str]:
        """Reconcile against a remote list, local ids winning on name matches."""
        result = reconcile_players(players, self.players)
        self.players = result.players
        self._changed()
        return result.id_map

    # -- sessions -----------------------------------------------------------

    def create_session(
        self,
        date: dt.date,
        game_type: GameType = "cash",
        name: str | None = None,
        stakes: str | None = None,
        location: str | None = None,
    ) -> str:
        """Start a live game. It becomes the active session."""
        session = Session(
            name=name,
            date=date,
            game_type=game_type,
            stakes=stakes,
            location=location,
            is_complete=False,
            is_imported=False,
        )
        self.sessions.append(session)
        self.active_session_id = session.id
        logger.info(f"Created session {session.id} for {date.isoformat()}")
        self._changed()
        return session.id

    def set_active_session(self, session_id: str | None) -> LedgerResult:
        if session_id is not None and self.get_session(session_id) is None:
            return self._reject(LedgerResult.NOT_FOUND, f"session {session_id}")
        self.active_session_id = session_id
        return LedgerResult.OK

    def _live_session(self, session_id: str) -> Session | LedgerResult:
        session = self.get_session(session_id)
        if session is None:
            return self._reject(LedgerResult.NOT_FOUND, f"session {session_id}")
        if session.is_imported:
            return self._reject(LedgerResult.READ_ONLY, f"session {session_id}")
        return session

    def _live_player_session(
        self, player_session_id: str
    ) -> tuple[PlayerSession, Session] | LedgerResult:
        player_session = self.get_player_session(player_session_id)
        if player_session is None:
            return self._reject(
                LedgerResult.NOT_FOUND, f"player session {player_session_id}"
            )
        session = self._live_session(player_session.session_id)
        if isinstance(session, LedgerResult):
            return session
        return player_session, session

    @staticmethod
    def _touch(session: Session) -> None:
        # Sync merges whole sessions by updated_at, so child edits bump it too
        session.updated_at = utcnow()

    def add_player_to_session(
        self, session_id: str, player_id: str, buy_in_amount: float
    ) -> LedgerResult:
        """Seat a player with an initial buy-in. A player can only be seated once."""
        session = self._live_session(session_id)
        if isinstance(session, LedgerResult):
            return session
        if self.get_player(player_id) is None:
            return self._reject(LedgerResult.NOT_FOUND, f"player {player_id}")
        if self.find_player_session(session_id, player_id) is not None:
            return self._reject(
                LedgerResult.DUPLICATE, f"player {player_id} already in {session_id}"
            )

        now = utcnow()
        self.player_sessions.append(
            PlayerSession(
                player_id=player_id,
                session_id=session_id,
                buy_ins=[BuyIn(amount=buy_in_amount, timestamp=now)],
                net_result=0.0,
                timestamp=now,
            )
        )
        self._touch(session)
        self._changed()
        return LedgerResult.OK

    def add_buy_in(self, player_session_id: str, amount: float) -> LedgerResult:
        """Append a buy-in. The amount is trusted; validate it before calling."""
        found = self._live_player_session(player_session_id)
        if isinstance(found, LedgerResult):
            return found
        player_session, session = found
        player_session.buy_ins.append(BuyIn(amount=amount))
        if player_session.cash_out is not None:
            player_session.net_result = (
                player_session.cash_out - player_session.total_buy_ins
            )
        self._touch(session)
        self._changed()
        return LedgerResult.OK

    def set_cash_out(self, player_session_id: str, amount: float) -> LedgerResult:
        """Record (or correct) a cash-out and recompute the net result."""
        found = self._live_player_session(player_session_id)
        if isinstance(found, LedgerResult):
            return found
        player_session, session = found
        player_session.cash_out = amount
        player_session.net_result = amount - player_session.total_buy_ins
        self._touch(session)
        self._changed()
        return LedgerResult.OK

    def complete_session(self, session_id: str) -> LedgerResult:
        """Mark a session complete without checking cash-outs or balance."""
        session = self.get_session(session_id)
        if session is None:
            return self._reject(LedgerResult.NOT_FOUND, f"session {session_id}")
        session.is_complete = True
        self._touch(session)
        if self.active_session_id == session_id:
            self.active_session_id = None
        logger.info(f"Completed session {session_id}")
        self._changed()
        return LedgerResult.OK

    def end_session(self, session_id: str, *, force: bool = False) -> LedgerResult:
        """Complete a live session once everyone has cashed out.

        An unbalanced session is refused with UNBALANCED unless ``force`` is
        set; the organizer may still accept rake or a recording error.
        """
        session = self._live_session(session_id)
        if isinstance(session, LedgerResult):
            return session
        if session.is_complete:
            return self._reject(LedgerResult.INVALID_STATE, "already complete")
        if not self.all_cashed_out(session_id):
            return self._reject(LedgerResult.INVALID_STATE, "players still seated")

        zero_sum = self.validate_zero_sum(session_id)
        if not zero_sum.is_valid:
            if not force:
                return self._reject(
                    LedgerResult.UNBALANCED,
                    f"difference {zero_sum.difference:.2f} in {session_id}",
                )
            logger.warning(
                f"Completing unbalanced session {session_id}, "
                + f"difference {zero_sum.difference:.2f}"
            )
        return self.complete_session(session_id)

    def resume_completed_session(self, session_id: str) -> LedgerResult:
        """Reopen a finished live game. Every cash-out in it is cleared."""
        session = self._live_session(session_id)
        if isinstance(session, LedgerResult):
            return session
        if not session.is_complete:
            return self._reject(LedgerResult.INVALID_STATE, "session not complete")

        session.is_complete = False
        self._touch(session)
        self.active_session_id = session.id
        for player_session in self.session_player_sessions(session_id):
            player_session.cash_out = None
            player_session.net_result = 0.0
        logger.info(f"Resumed session {session_id}; cash-outs cleared")
        self._changed()
        return LedgerResult.OK

    def delete_session(self, session_id: str) -> LedgerResult:
        """Delete a live session and every player session in it."""
        session = self._live_session(session_id)
        if isinstance(session, LedgerResult):
            return session
        self.sessions = [s for s in self.sessions if s.id != session_id]
        self.player_sessions = [
            ps for ps in self.player_sessions if ps.session_id != session_id
        ]
        self.deleted_session_ids = sorted({*self.deleted_session_ids, session_id})
        if self.active_session_id == session_id:
            self.active_session_id = None
        logger.info(f"Deleted session {session_id}")
        self._changed()
        return LedgerResult.OK

    def remove_player_from_session(self, player_session_id: str) -> LedgerResult:
        """Unseat a player who has not cashed out from a game still in progress."""
        found = self._live_player_session(player_session_id)
        if isinstance(found, LedgerResult):
            return found
        player_session, session = found
        if session.is_complete or player_session.is_cashed_out:
            return self._reject(
                LedgerResult.INVALID_STATE, f"player session {player_session_id}"
            )
        self.player_sessions = [
            ps for ps in self.player_sessions if ps.id != player_session_id
        ]
        self._touch(session)
        self._changed()
        return LedgerResult.OK

    # -- bulk import --------------------------------------------------------

    def import_sessions(
        self, sessions: Sequence[Session], player_sessions: Sequence[PlayerSession]
    ) -> None:
        self.sessions.extend(sessions)
        self.player_sessions.extend(player_sessions)
        if sessions:
            self._bump_imported_generation()
        self._changed()

    def replace_imported_sessions(
        self, sessions: Sequence[Session], player_sessions: Sequence[PlayerSession]
    ) -> None:
        """Swap all imported data for a fresh import; live sessions are kept."""
        imported_ids = {s.id for s in self.sessions if s.is_imported}
        self.sessions = [s for s in self.sessions if not s.is_imported]
        self.player_sessions = [
            ps for ps in self.player_sessions if ps.session_id not in imported_ids
        ]
        self.sessions.extend(sessions)
        self.player_sessions.extend(player_sessions)
        self._bump_imported_generation()
        logger.info(
            f"Replaced {len(imported_ids)} imported sessions with {len(sessions)}"
        )
        self._changed()

    def _bump_imported_generation(self) -> None:
        """Mark the imported block as changed; generations only move forward."""
        now = utcnow()
        if self.imported_generation is not None and now <= self.imported_generation:
            now = self.imported_generation + dt.timedelta(microseconds=1)
        self.imported_generation = now

    # -- snapshots ----------------------------------------------------------

    def to_snapshot(self) -> LedgerSnapshot:
        """Deep copy of the current state for the persistence sink."""
        return LedgerSnapshot(
            players=[p.model_copy(deep=True) for p in self.players],
            sessions=[s.model_copy(deep=True) for s in self.sessions],
            player_sessions=[ps.model_copy(deep=True) for ps in self.player_sessions],
            deleted_session_ids=list(self.deleted_session_ids),
            imported_generation=self.imported_generation,
        )

    def load_snapshot(self, snapshot: LedgerSnapshot) -> None:
        """Replace the ledger with a stored snapshot without notifying listeners.

        The active session survives if it is still open; otherwise the most
        recently created open live session becomes active.
        """
        self.players = [p.model_copy(deep=True) for p in snapshot.players]
        self.sessions = [s.model_copy(deep=True) for s in snapshot.sessions]
        self.player_sessions = [
            ps.model_copy(deep=True) for ps in snapshot.player_sessions
        ]
        self.deleted_session_ids = list(snapshot.deleted_session_ids)
        self.imported_generation = snapshot.imported_generation

        active = self.active_session
        if active is None or active.is_complete:
            open_sessions = [
                s for s in self.sessions if not s.is_complete and not s.is_imported
            ]
            self.active_session_id = (
                max(open_sessions, key=lambda s: s.created_at).id
                if open_sessions
                else None
            )
        self.revision += 1
