"""
Spreadsheet import endpoints.

A sheet can arrive as an uploaded CSV file or as a grid the client already
fetched. Either way the import is all-or-nothing: any error means nothing
is committed, while warnings are reported alongside a successful import.
"""

from typing import Annotated

from fastapi import APIRouter, File, Query, UploadFile
from fastapi.responses import PlainTextResponse
from loguru import logger

from src.api.deps import StoreDep
from src.core.exceptions import ImportRejectedError
from src.schemas.errors import ERROR_RESPONSES
from src.schemas.schemas import (
    ErrorLogRequest,
    FileUploadResult,
    GridImportRequest,
    ImportReport,
)
from src.services.export_service import generate_error_log
from src.services.import_service import (
    ImportResult,
    commit_import,
    generate_import_report,
    import_grid,
)
from src.services.upload_service import process_uploaded_file

router = APIRouter(responses=ERROR_RESPONSES)


@router.post("/upload", response_model=FileUploadResult)
async def upload_ledger(
    file: Annotated[UploadFile, File(description="CSV export of the ledger sheet")],
    store: StoreDep,
    replace: Annotated[
        bool, Query(description="Replace previously imported sessions (resync)")
    ] = False,
) -> FileUploadResult:
    """Import a CSV ledger sheet. Problems are reported in the result body."""
    logger.info(f"Received ledger upload: {file.filename}")
    return process_uploaded_file(file, store, replace=replace)


@router.post("/grid", response_model=ImportReport)
async def import_ledger_grid(body: GridImportRequest, store: StoreDep) -> ImportReport:
    """Import a sheet grid (header row first). Responds 422 if it has errors."""
    parsed = import_grid(body.grid)
    report = generate_import_report(parsed)
    if commit_import(store, parsed, replace=body.replace) == ImportResult.REJECTED:
        raise ImportRejectedError(
            message=f"Import has {len(report.errors)} error(s)",
            details={
                "errors": [
                    {"line": e.line, "message": e.message, "data": e.data}
                    for e in report.errors
                ],
                "warnings": [f"{w.session_date}: {w.message}" for w in report.warnings],
            },
        )
    return report


@router.post("/error-log", response_class=PlainTextResponse)
async def render_error_log(body: ErrorLogRequest) -> str:
    """Plain-text log of import errors and warnings for download."""
    return generate_error_log(body.errors, body.warnings)
