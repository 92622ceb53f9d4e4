from loguru import logger
from sqlmodel import SQLModel, create_engine

from src.core.config import DATABASE_URL


def normalize_database_url(url: str) -> str:
    """Rewrite hosted postgres URLs so SQLAlchemy uses the psycopg driver."""
    # Render provides postgres:// URLs, but SQLAlchemy needs postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://") and "+psycopg" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


POSTGRES_URL = normalize_database_url(DATABASE_URL)

logger.info(f"Initializing database engine with URL: {POSTGRES_URL.split('@')[-1]}")
engine = create_engine(POSTGRES_URL)


def create_db_and_tables() -> None:
    """Create database tables from SQLModel metadata."""
    logger.info("Creating database tables from SQLModel metadata...")
    SQLModel.metadata.create_all(engine)
    logger.success("Database tables created successfully")
