"""Upload handling for ledger spreadsheets."""

from fastapi import UploadFile
from loguru import logger

from src.schemas.schemas import FileUploadResult
from src.services.import_service import (
    ImportResult,
    commit_import,
    generate_import_report,
    import_csv_text,
)
from src.services.ledger_store import LedgerStore


def process_uploaded_file(
    file: UploadFile, store: LedgerStore, *, replace: bool = False
) -> FileUploadResult:
    """Import one uploaded CSV sheet. Returns result without raising exceptions."""
    if not file.filename:
        return FileUploadResult(
            filename="unknown",
            status="error",
            message="No filename provided",
        )

    filename = file.filename
    if not filename.lower().endswith(".csv"):
        return FileUploadResult(
            filename=filename,
            status="error",
            message="File must be a CSV",
        )

    try:
        text = file.file.read().decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.error(f"Could not decode {filename}: {e!s}")
        return FileUploadResult(
            filename=filename,
            status="error",
            message="File is not UTF-8 text",
        )

    logger.info(f"Starting import of {filename} (replace={replace})...")
    parsed = import_csv_text(text)
    report = generate_import_report(parsed)

    if commit_import(store, parsed, replace=replace) == ImportResult.REJECTED:
        return FileUploadResult(
            filename=filename,
            status="error",
            message=f"Import has {len(report.errors)} error(s); nothing was imported",
            report=report,
        )

    logger.success(f"Import completed for {filename}")
    message = "Successfully imported"
    if report.warnings:
        message += f" with {len(report.warnings)} warning(s)"
    return FileUploadResult(
        filename=filename,
        status="success",
        message=message,
        report=report,
    )
