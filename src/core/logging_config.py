"""Logging configuration for the poker ledger application."""

from pathlib import Path
import sys

from loguru import logger

from src.core.config import LOG_DIR, LOG_LEVEL

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
)

# Pushes, pulls and merges, kept apart so a diverging client can be traced
SYNC_LOGGER = "src.services.sync_service"


def configure_logging(level: str = LOG_LEVEL, logs_dir: Path | str = LOG_DIR) -> None:
    """Configure loguru with console output and rotating ledger log files."""
    logs_dir = Path(logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()

    logger.add(
        sink=sys.stdout,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>",
        level=level,
        colorize=True,
    )

    logger.add(
        sink=logs_dir / "ledger_{time:YYYY-MM-DD}.log",
        format=_FILE_FORMAT,
        level=level,
        rotation="00:00",
        retention="30 days",
        compression="zip",
        enqueue=True,
    )

    # Sync failures and rejected imports end up here
    logger.add(
        sink=logs_dir / "ledger_errors_{time:YYYY-MM-DD}.log",
        format=_FILE_FORMAT,
        level="ERROR",
        rotation="00:00",
        retention="90 days",
        compression="zip",
        enqueue=True,
    )

    logger.add(
        sink=logs_dir / "ledger_sync_{time:YYYY-MM-DD}.log",
        format=_FILE_FORMAT,
        level="DEBUG",
        filter=SYNC_LOGGER,
        rotation="10 MB",
        retention=5,
        enqueue=True,
    )

    logger.info(f"Logging configured at {level}: console + ledger, error, sync files")
