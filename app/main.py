"""
Application FastAPI : point d'entrée
====================================

Rôle
----
- `create_app()` instancie l'app FastAPI, configure le CORS pour le front,
  construit les collaborateurs (store, générateur, GameService, WebSockets) et
  monte tous les routeurs (REST + WebSocket).
- `app` : instance par défaut pour `uvicorn app.main:app`.

Notes
-----
- Aucun singleton de store : tout est déposé dans `app.state` et injecté dans
  les routes via `Depends` (les tests passent leur propre store en mémoire).
- Le pont store -> WebSocket relaie chaque changement aux sockets de la salle.
- À l'arrêt, les sockets restantes sont fermées et le relais détaché.
- ⚠️ Le middleware CORS doit être ajouté AVANT les include_router.
"""
import logging
import random
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config.settings import settings
from app.routes.generation import router as generation_router
from app.routes.health import router as health_router
from app.routes.players import router as players_router
from app.routes.rooms import router as rooms_router
from app.routes.websocket import router as ws_router
from app.services.game_service import GameService
from app.services.generation_client import ContentGenerator, build_generator
from app.services.store import GameStore, build_store
from app.services.ws_manager import WSManager, bind_store

logger = logging.getLogger(__name__)


def create_app(
    store: Optional[GameStore] = None,
    generator: Optional[ContentGenerator] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    logging.basicConfig(level=settings.LOG_LEVEL.upper())

    app = FastAPI(title=settings.APP_NAME)

    # ===========================
    # CORS (dev: permissif)
    # ===========================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ===========================
    # Collaborateurs injectés
    # ===========================
    if store is None:
        store = build_store(settings.DATA_DIR, settings.STORE_FILENAME, persist=settings.PERSIST_STORE)
    if generator is None:
        generator = build_generator(settings.GENERATION_ENDPOINT, rng=rng)

    app.state.store = store
    app.state.game_service = GameService(store, generator, rng=rng)
    app.state.ws_manager = WSManager()
    app.state.ws_subscription = bind_store(store, app.state.ws_manager)

    # ===========================
    # Montage des routers
    # ===========================
    app.include_router(rooms_router)
    app.include_router(players_router)
    app.include_router(generation_router)
    app.include_router(health_router)
    app.include_router(ws_router)  # WebSocket endpoint (/ws/rooms/{room_id})

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        """Ferme les sockets encore ouvertes et détache le relais du store."""
        stats = await app.state.ws_manager.close_all()
        app.state.ws_subscription.close()
        logger.info("App shutdown", extra={"ws": stats})

    # --- Racine utile pour "ping" simple (sans /health) ---
    @app.get("/")
    async def root():
        """Ping basique : permet de vérifier que l'app tourne."""
        return {"ok": True, "service": "akinator-bingo-backend"}

    logger.info(
        "App ready",
        extra={
            "generation_endpoint": settings.GENERATION_ENDPOINT,
            "store_path": str(store.path) if store.path else None,
            "routes": len(app.routes),
        },
    )
    return app


app = create_app()
