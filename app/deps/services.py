"""
Dépendances FastAPI (services injectés)
=======================================

Objectif
--------
Pas de singleton global : `create_app()` dépose le store, le GameService et le
gestionnaire WebSocket dans `app.state`. Les routes les récupèrent via `Depends`,
ce qui permet aux tests d'injecter un store en mémoire.

API exposée ici
---------------
- `get_store`, `get_game_service`, `get_ws_manager` : dependencies.
- `http_error(exc)` : traduit une erreur de jeu en HTTPException.

Codes retour
------------
- 404 : NotFoundError (salle / joueur absent)
- 400 : ValidationError (saisie refusée, aucune mutation)
- 500 : WriteError (écriture refusée par le store)
"""
from __future__ import annotations

from fastapi import HTTPException, Request
from starlette.requests import HTTPConnection

from app.services.errors import GameError, NotFoundError, ValidationError
from app.services.game_service import GameService
from app.services.store import GameStore
from app.services.ws_manager import WSManager


def get_store(request: Request) -> GameStore:
    return request.app.state.store


def get_game_service(request: Request) -> GameService:
    return request.app.state.game_service


def get_ws_manager(conn: HTTPConnection) -> WSManager:
    return conn.app.state.ws_manager


def http_error(exc: GameError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=exc.message)
    return HTTPException(status_code=500, detail=exc.message)
