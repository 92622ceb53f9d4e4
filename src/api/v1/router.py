from fastapi import APIRouter
from loguru import logger

from src.api.v1.endpoints import imports, players, sessions, statistics, sync

logger.info("Initializing API v1 router")
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(players.router, prefix="/players", tags=["players"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(imports.router, prefix="/imports", tags=["imports"])
api_router.include_router(
    statistics.router, prefix="/statistics", tags=["statistics"]
)
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
logger.success("API v1 router initialized successfully")
