"""
Module routes/health.py
Rôle:
- Endpoints de santé (service OK + état du store et des WebSockets).
"""
from fastapi import APIRouter, Depends

from app.config.settings import settings
from app.deps.services import get_store, get_ws_manager
from app.services.store import CLUES, PLAYERS, ROOMS, GameStore
from app.services.ws_manager import WSManager

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health():
    """Renvoie un OK minimal avec le nom de service configuré."""
    return {"ok": True, "service": settings.APP_NAME}


@router.get("/store")
async def health_store(store: GameStore = Depends(get_store), ws: WSManager = Depends(get_ws_manager)):
    """Compteurs de lignes, abonnements actifs et connexions WS."""
    return {
        "ok": True,
        "rows": {table: store.count(table) for table in (ROOMS, PLAYERS, CLUES)},
        "subscriptions": store.subscriptions_count(),
        "generation_endpoint": settings.GENERATION_ENDPOINT,
        "ws": ws.stats(),
    }
