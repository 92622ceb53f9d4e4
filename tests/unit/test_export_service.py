"""Unit tests for exports and sheet write-back."""

import datetime as dt

import pytest

from src.models import ImportErrorEntry, ImportWarningEntry, PlayerStatistics
from src.services.export_service import (
    STATISTICS_HEADERS,
    append_session_column,
    collect_session_results,
    export_statistics_csv,
    generate_error_log,
)


class TestGenerateErrorLog:
    """Tests for generate_error_log."""

    def test_errors_and_warnings(self):
        log = generate_error_log(
            [ImportErrorEntry(line=3, message="Invalid amount", data="lots")],
            [ImportWarningEntry(session_date="1/2/2025", message="Off by $5")],
        )

        assert log == (
            "CSV Import Error Log\n"
            "=====================\n"
            "\n"
            "ERRORS:\n"
            "Line 3: Invalid amount\n"
            "  Data: lots\n"
            "\n"
            "WARNINGS:\n"
            "Session 1/2/2025: Off by $5\n"
        )

    def test_error_without_data_has_no_data_line(self):
        log = generate_error_log([ImportErrorEntry(line=1, message="Too short")], [])

        assert "Line 1: Too short" in log
        assert "Data:" not in log
        assert "WARNINGS:" not in log

    def test_clean_import(self):
        log = generate_error_log([], [])

        assert log.endswith("No errors or warnings.\n")
        assert "ERRORS:" not in log


class TestExportStatisticsCsv:
    """Tests for export_statistics_csv."""

    def test_rows_are_rounded(self):
        stats = [
            PlayerStatistics(
                player_id="1",
                player_name="Zach",
                total_profit=-56.5,
                session_count=2,
                avg_win_loss=-28.25,
                best_session=-26.5,
                worst_session=-30.0,
                variance=3.0625,
                standard_deviation=1.75,
                roi=-100.0,
                total_buy_ins=56.5,
            )
        ]

        lines = export_statistics_csv(stats).splitlines()

        assert lines[0] == ",".join(STATISTICS_HEADERS)
        assert lines[1] == (
            "Zach,-56.50,2,0.0,-28.25,-26.50,-30.00,3.06,1.75,-100.0,56.50"
        )

    def test_names_with_commas_are_quoted(self):
        stats = [PlayerStatistics(player_id="1", player_name="Smith, J")]

        lines = export_statistics_csv(stats).splitlines()

        assert lines[1].startswith('"Smith, J",')


class TestCollectSessionResults:
    """Tests for collect_session_results."""

    def test_net_results_and_in_progress_buy_ins(self, live_store):
        store, session_id, alice_ps, bob_ps = live_store
        store.add_buy_in(bob_ps, 25.0)
        store.set_cash_out(alice_ps, 90.0)

        assert collect_session_results(store, session_id) == pytest.approx(
            {"Alice": 40.0, "Bob": 0.0}
        )
        assert collect_session_results(store, session_id, in_progress=True) == (
            pytest.approx({"Alice": 50.0, "Bob": 75.0})
        )


class TestAppendSessionColumn:
    """Tests for append_session_column."""

    def test_appends_new_column_and_rows(self):
        grid = [["Players", "1/2/2025"], ["Zach", "-30"], ["Jack", "30"]]

        rows = append_session_column(
            grid, dt.date(2025, 1, 8), {"zach": -10.0, "Sam": 10.0}
        )

        assert rows[0] == ["Players", "1/2/2025", "1/8/2025"]
        assert rows[1] == ["Zach", "-30", -10.0]
        assert rows[2] == ["Jack", "30", ""]
        assert rows[3] == ["Sam", "", 10.0]
        assert grid[0] == ["Players", "1/2/2025"]

    def test_overwrites_in_progress_column(self):
        grid = [
            ["Players", "1/2/2025", "1/8/2025 In Progress"],
            ["Zach", "-30", "50"],
            ["Jack", "30", "50"],
        ]

        rows = append_session_column(
            grid, dt.date(2025, 1, 8), {"Zach": -20.0, "Jack": 20.0}
        )

        assert rows[0] == ["Players", "1/2/2025", "1/8/2025"]
        assert rows[1][2] == -20.0
        assert rows[2][2] == 20.0

    def test_marks_in_progress_header(self):
        grid = [["Players", "1/2/2025"], ["Zach", "-30"]]

        rows = append_session_column(
            grid, dt.date(2025, 1, 8), {"Zach": 50.0}, in_progress=True
        )

        assert rows[0][2] == "1/8/2025 In Progress"

    def test_matches_serial_date_header(self):
        grid = [["Players", 45659], ["Zach", -30]]

        rows = append_session_column(grid, dt.date(2025, 1, 2), {"Zach": -25.0})

        assert rows[0] == ["Players", "1/2/2025"]
        assert rows[1] == ["Zach", -25.0]

    def test_new_column_goes_after_widest_row(self):
        grid = [["Players", "1/2/2025"], ["Zach", "-30", "note"]]

        rows = append_session_column(grid, dt.date(2025, 1, 8), {"Zach": 1.0})

        assert rows[0] == ["Players", "1/2/2025", "", "1/8/2025"]
        assert rows[1] == ["Zach", "-30", "note", 1.0]

    def test_empty_sheet_is_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            append_session_column([], dt.date(2025, 1, 8), {})
