"""Unit tests for uploaded ledger sheets."""

from io import BytesIO
from unittest.mock import MagicMock

from fastapi import UploadFile

from src.services.ledger_store import LedgerStore
from src.services.upload_service import process_uploaded_file

SHEET = b"Players,1/2/2025,1/8/2025,Total\nZach,-30.00,-26.50,-56.50\nJack,30.00,26.50,56.50\n"


def _upload(filename: str | None, content: bytes = SHEET) -> MagicMock:
    file = MagicMock(spec=UploadFile)
    file.filename = filename
    file.file = BytesIO(content)
    return file


class TestProcessUploadedFile:
    """Tests for process_uploaded_file."""

    def test_missing_filename(self, store):
        """Test that an upload without a filename is refused."""
        result = process_uploaded_file(_upload(None), store)

        assert result.status == "error"
        assert result.filename == "unknown"
        assert store.revision == 0

    def test_non_csv_is_refused(self, store):
        result = process_uploaded_file(_upload("ledger.xlsx"), store)

        assert result.status == "error"
        assert "CSV" in result.message

    def test_undecodable_bytes(self, store):
        result = process_uploaded_file(_upload("ledger.csv", b"\xff\xfe\x00bad"), store)

        assert result.status == "error"
        assert store.players == []

    def test_successful_import(self, store):
        result = process_uploaded_file(_upload("Ledger.CSV"), store)

        assert result.status == "success"
        assert result.message == "Successfully imported"
        assert result.report.sessions_imported == 2
        assert len(store.sessions) == 2
        assert len(store.player_sessions) == 4

    def test_warnings_are_counted_in_message(self, store):
        sheet = b"Players,1/2/2025\nZach,-30\nJack,25\n"

        result = process_uploaded_file(_upload("ledger.csv", sheet), store)

        assert result.status == "success"
        assert result.message == "Successfully imported with 1 warning(s)"

    def test_errors_reject_whole_import(self, store):
        sheet = b"Players,1/2/2025\nZach,-30\nJack,lots\n"

        result = process_uploaded_file(_upload("ledger.csv", sheet), store)

        assert result.status == "error"
        assert len(result.report.errors) == 1
        assert store.sessions == []

    def test_resync_replaces_imported_sessions(self):
        store = LedgerStore()
        process_uploaded_file(_upload("ledger.csv"), store)
        sheet = b"Players,1/2/2025\nZach,-30\nJack,30\n"

        result = process_uploaded_file(_upload("ledger.csv", sheet), store, replace=True)

        assert result.status == "success"
        assert len(store.sessions) == 1
        assert len(store.players) == 2
