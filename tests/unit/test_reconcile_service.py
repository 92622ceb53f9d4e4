"""Unit tests for player reconciliation."""

from src.models import Player, PlayerSession
from src.services.reconcile_service import (
    import_players,
    reconcile_players,
    remap_player_sessions,
)


class TestReconcilePlayers:
    """Tests for reconcile_players."""

    def test_local_id_survives_case_insensitive_match(self):
        """Test that a remote "zach" folds into the local "Zach" record."""
        local = [Player(id="A", name="Zach")]
        remote = [Player(id="B", name="zach")]

        result = reconcile_players(remote, local)

        assert [p.id for p in result.players] == ["A"]
        assert result.players[0].name == "Zach"
        assert result.id_map == {"B": "A"}
        assert result.added == 0

    def test_remote_order_then_local_only_players(self):
        local = [Player(id="L1", name="Alice"), Player(id="L2", name="Bob")]
        remote = [Player(id="R1", name="Carol"), Player(id="R2", name="BOB")]

        result = reconcile_players(remote, local)

        assert [p.id for p in result.players] == ["R1", "L2", "L1"]
        assert result.id_map == {"R2": "L2"}
        assert result.added == 1

    def test_never_deletes_local_players(self):
        local = [Player(id="L1", name="Alice")]

        result = reconcile_players([], local)

        assert [p.id for p in result.players] == ["L1"]

    def test_same_id_is_not_remapped(self):
        local = [Player(id="A", name="Zach")]
        remote = [Player(id="A", name="Zach")]

        result = reconcile_players(remote, local)

        assert result.id_map == {}
        assert len(result.players) == 1

    def test_remote_duplicates_collapse_to_one_local(self):
        local = [Player(id="A", name="Zach")]
        remote = [Player(id="B", name="Zach"), Player(id="C", name=" ZACH ")]

        result = reconcile_players(remote, local)

        assert [p.id for p in result.players] == ["A"]
        assert result.id_map == {"B": "A", "C": "A"}


class TestImportPlayers:
    """Tests for import_players."""

    def test_only_unknown_names_are_added(self):
        local = [Player(id="A", name="Zach")]
        incoming = [Player(id="B", name="ZACH"), Player(id="C", name="Jack")]

        result = import_players(incoming, local)

        assert [p.id for p in result.players] == ["A", "C"]
        assert result.added == 1
        assert result.id_map == {"B": "A"}

    def test_incoming_duplicates_keep_first(self):
        incoming = [Player(id="B", name="Jack"), Player(id="C", name="jack")]

        result = import_players(incoming, [])

        assert [p.id for p in result.players] == ["B"]
        assert result.id_map == {"C": "B"}


class TestRemapPlayerSessions:
    """Tests for remap_player_sessions."""

    def test_repoints_mapped_ids_without_mutating_input(self):
        original = PlayerSession(player_id="B", session_id="S1")
        untouched = PlayerSession(player_id="X", session_id="S1")

        remapped = remap_player_sessions([original, untouched], {"B": "A"})

        assert [ps.player_id for ps in remapped] == ["A", "X"]
        assert original.player_id == "B"
        assert remapped[0].id == original.id

    def test_empty_map_returns_copy_of_list(self):
        player_sessions = [PlayerSession(player_id="B", session_id="S1")]

        remapped = remap_player_sessions(player_sessions, {})

        assert remapped == player_sessions
        assert remapped is not player_sessions
