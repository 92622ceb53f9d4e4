"""Unit tests for player statistics."""

import datetime as dt

import pytest

from src.models import DateRangeFilter, Player, PlayerStatistics, Session
from src.services.player_stats_service import (
    compute_all_statistics,
    compute_player_statistics,
    sort_statistics,
    validate_zero_sum,
)


@pytest.fixture
def players() -> tuple[Player, Player]:
    return Player(name="Zach"), Player(name="Jack")


@pytest.fixture
def sessions() -> list[Session]:
    return [
        Session(date=dt.date(2025, 1, 2), is_complete=True, is_imported=True),
        Session(date=dt.date(2025, 1, 8), is_complete=True, is_imported=True),
    ]


class TestComputePlayerStatistics:
    """Tests for compute_player_statistics."""

    def test_imported_example(self, players, sessions, make_player_session):
        """Test the two-session example: -30 and -26.50."""
        zach, _ = players
        player_sessions = [
            make_player_session(zach, sessions[0], -30.0),
            make_player_session(zach, sessions[1], -26.5),
        ]

        stats = compute_player_statistics(zach, sessions, player_sessions)

        assert stats.total_profit == pytest.approx(-56.5)
        assert stats.session_count == 2
        assert stats.win_rate == pytest.approx(0.0)
        assert stats.avg_win_loss == pytest.approx(-28.25)
        assert stats.best_session == pytest.approx(-26.5)
        assert stats.worst_session == pytest.approx(-30.0)
        assert stats.variance == pytest.approx(3.0625)
        assert stats.standard_deviation == pytest.approx(1.75)
        # Buy-ins estimated from |net| for imported rows
        assert stats.total_buy_ins == pytest.approx(56.5)
        assert stats.roi == pytest.approx(-100.0)
        assert [entry.balance for entry in stats.balance_history] == pytest.approx(
            [-30.0, -56.5]
        )

    def test_winning_sessions_and_win_rate(self, players, sessions, make_player_session):
        _, jack = players
        player_sessions = [
            make_player_session(jack, sessions[0], 30.0),
            make_player_session(jack, sessions[1], 0.0),
        ]

        stats = compute_player_statistics(jack, sessions, player_sessions)

        assert stats.win_rate == pytest.approx(50.0)

    def test_no_sessions_gives_zero_record(self, players, sessions):
        zach, _ = players

        stats = compute_player_statistics(zach, sessions, [])

        assert stats.session_count == 0
        assert stats.total_profit == 0.0
        assert stats.balance_history == []
        assert stats.player_name == "Zach"

    def test_single_session_has_zero_variance(
        self, players, sessions, make_player_session
    ):
        zach, _ = players

        stats = compute_player_statistics(
            zach, sessions, [make_player_session(zach, sessions[0], 12.0)]
        )

        assert stats.variance == 0.0
        assert stats.standard_deviation == 0.0

    def test_incomplete_sessions_are_excluded(
        self, players, sessions, make_player_session
    ):
        zach, _ = players
        live = Session(date=dt.date(2025, 1, 15))
        all_sessions = [*sessions, live]
        player_sessions = [
            make_player_session(zach, sessions[0], -30.0),
            make_player_session(zach, live, 500.0, buy_ins=[50.0]),
        ]

        stats = compute_player_statistics(zach, all_sessions, player_sessions)

        assert stats.session_count == 1
        assert stats.total_profit == pytest.approx(-30.0)

    def test_date_filter_is_inclusive(self, players, sessions, make_player_session):
        zach, _ = players
        player_sessions = [
            make_player_session(zach, sessions[0], -30.0),
            make_player_session(zach, sessions[1], -26.5),
        ]

        only_first = compute_player_statistics(
            zach,
            sessions,
            player_sessions,
            DateRangeFilter(end_date=dt.date(2025, 1, 2)),
        )
        only_second = compute_player_statistics(
            zach,
            sessions,
            player_sessions,
            DateRangeFilter(start_date=dt.date(2025, 1, 8)),
        )

        assert only_first.total_profit == pytest.approx(-30.0)
        assert only_second.total_profit == pytest.approx(-26.5)

    def test_recorded_buy_ins_are_used(self, players, sessions, make_player_session):
        zach, _ = players
        player_sessions = [
            make_player_session(zach, sessions[0], 20.0, buy_ins=[50.0, 50.0]),
        ]

        stats = compute_player_statistics(zach, sessions, player_sessions)

        assert stats.total_buy_ins == pytest.approx(100.0)
        assert stats.roi == pytest.approx(20.0)

    def test_buy_in_reconstructed_from_cash_out(
        self, players, sessions, make_player_session
    ):
        zach, _ = players
        player_sessions = [
            make_player_session(zach, sessions[0], 20.0, cash_out=120.0),
        ]

        stats = compute_player_statistics(zach, sessions, player_sessions)

        assert stats.total_buy_ins == pytest.approx(100.0)

    def test_roi_is_zero_without_buy_ins(self, players, sessions, make_player_session):
        zach, _ = players
        player_sessions = [make_player_session(zach, sessions[0], 0.0)]

        stats = compute_player_statistics(zach, sessions, player_sessions)

        assert stats.total_buy_ins == 0.0
        assert stats.roi == 0.0

    def test_balance_history_is_chronological_and_stable(
        self, players, make_player_session
    ):
        zach, _ = players
        late = Session(date=dt.date(2025, 2, 1), is_complete=True)
        same_day_a = Session(date=dt.date(2025, 1, 5), is_complete=True)
        same_day_b = Session(date=dt.date(2025, 1, 5), is_complete=True)
        sessions = [late, same_day_a, same_day_b]
        player_sessions = [
            make_player_session(zach, late, 5.0),
            make_player_session(zach, same_day_a, 10.0),
            make_player_session(zach, same_day_b, -3.0),
        ]

        stats = compute_player_statistics(zach, sessions, player_sessions)

        assert [e.session_id for e in stats.balance_history] == [
            same_day_a.id,
            same_day_b.id,
            late.id,
        ]
        assert [e.balance for e in stats.balance_history] == pytest.approx(
            [10.0, 7.0, 12.0]
        )


class TestComputeAllStatistics:
    """Tests for compute_all_statistics."""

    def test_players_without_sessions_are_omitted(
        self, players, sessions, make_player_session
    ):
        zach, jack = players
        bystander = Player(name="Sam")
        player_sessions = [
            make_player_session(zach, sessions[0], -30.0),
            make_player_session(jack, sessions[0], 30.0),
        ]

        stats = compute_all_statistics(
            [zach, jack, bystander], sessions, player_sessions
        )

        assert [s.player_name for s in stats] == ["Zach", "Jack"]

    def test_profits_sum_to_zero_over_balanced_sessions(
        self, imported_store
    ):
        stats = compute_all_statistics(
            imported_store.players,
            imported_store.sessions,
            imported_store.player_sessions,
        )

        assert sum(s.total_profit for s in stats) == pytest.approx(0.0, abs=0.01)


class TestValidateZeroSum:
    """Tests for validate_zero_sum."""

    def test_within_tolerance(self, players, sessions, make_player_session):
        zach, jack = players
        player_sessions = [
            make_player_session(zach, sessions[0], -30.0),
            make_player_session(jack, sessions[0], 30.005),
        ]

        result = validate_zero_sum(sessions[0].id, player_sessions)

        assert result.is_valid is True

    def test_reports_difference(self, players, sessions, make_player_session):
        zach, jack = players
        player_sessions = [
            make_player_session(zach, sessions[0], -30.0),
            make_player_session(jack, sessions[0], 25.0),
            make_player_session(jack, sessions[1], 99.0),
        ]

        result = validate_zero_sum(sessions[0].id, player_sessions)

        assert result.is_valid is False
        assert result.difference == pytest.approx(-5.0)

    def test_empty_session_is_valid(self, sessions):
        assert validate_zero_sum(sessions[0].id, []).is_valid is True


class TestSortStatistics:
    """Tests for sort_statistics."""

    @pytest.fixture
    def table(self) -> list[PlayerStatistics]:
        return [
            PlayerStatistics(player_id="1", player_name="bob", total_profit=10.0),
            PlayerStatistics(player_id="2", player_name="Alice", total_profit=-5.0),
            PlayerStatistics(player_id="3", player_name="carol", total_profit=40.0),
        ]

    def test_default_is_total_profit_descending(self, table):
        assert [s.player_id for s in sort_statistics(table)] == ["3", "1", "2"]

    def test_camel_case_column_ascending(self, table):
        ordered = sort_statistics(table, "totalProfit", descending=False)

        assert [s.player_id for s in ordered] == ["2", "1", "3"]

    def test_player_name_is_case_insensitive(self, table):
        ordered = sort_statistics(table, "player_name", descending=False)

        assert [s.player_name for s in ordered] == ["Alice", "bob", "carol"]

    @pytest.mark.parametrize("column", ["nope", "balanceHistory"])
    def test_unknown_column_is_rejected(self, table, column):
        with pytest.raises(ValueError, match="Cannot sort"):
            sort_statistics(table, column)
