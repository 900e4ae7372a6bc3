"""
Module routes/rooms.py
Rôle:
- Création d'une salle (l'appelant en devient l'hôte) et arrivée par code.
- Lecture de la salle / de ses joueurs, lancement de la partie, classement.

Notes:
- `POST /rooms/{room_id}/start` exige le `player_id` de l'hôte.
- Le classement n'inclut que les joueurs ayant trouvé leur cible.
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.deps.services import get_game_service, http_error
from app.models.player import Player
from app.models.room import Room
from app.services.errors import GameError
from app.services.game_service import GameService

router = APIRouter(prefix="/rooms", tags=["rooms"])


class CreateRoomPayload(BaseModel):
    name: str = Field("", description="Nom d'affichage de l'hôte")


class JoinRoomPayload(BaseModel):
    name: str = ""
    room_code: str = ""


class RoomJoinedResponse(BaseModel):
    room: Room
    player: Player


class StartGamePayload(BaseModel):
    player_id: Optional[str] = Field(None, description="player_id de l'hôte")


class StartGameResponse(BaseModel):
    ok: bool
    room: Room
    players_count: int


class LeaderboardEntry(BaseModel):
    rank: int
    player_id: str
    name: str
    clues_used: int
    found_at: str


@router.post("", response_model=RoomJoinedResponse)
async def create_room(payload: CreateRoomPayload, service: GameService = Depends(get_game_service)):
    """Crée une salle `waiting` + le joueur hôte."""
    try:
        room, player = service.create_room(payload.name)
    except GameError as exc:
        raise http_error(exc)
    return RoomJoinedResponse(room=room, player=player)


@router.post("/join", response_model=RoomJoinedResponse)
async def join_room(payload: JoinRoomPayload, service: GameService = Depends(get_game_service)):
    """Rejoint une salle existante via son code (insensible à la casse)."""
    try:
        room, player = service.join_room(payload.name, payload.room_code)
    except GameError as exc:
        raise http_error(exc)
    return RoomJoinedResponse(room=room, player=player)


@router.get("/code/{room_code}", response_model=Room)
async def room_by_code(room_code: str, service: GameService = Depends(get_game_service)):
    try:
        return service.get_room_by_code(room_code)
    except GameError as exc:
        raise http_error(exc)


@router.get("/{room_id}", response_model=Room)
async def get_room(room_id: str, service: GameService = Depends(get_game_service)):
    try:
        return service.get_room(room_id)
    except GameError as exc:
        raise http_error(exc)


@router.get("/{room_id}/players", response_model=List[Player])
async def room_players(room_id: str, service: GameService = Depends(get_game_service)):
    try:
        service.get_room(room_id)
        return service.list_players(room_id)
    except GameError as exc:
        raise http_error(exc)


@router.post("/{room_id}/start", response_model=StartGameResponse)
async def start_game(
    room_id: str,
    payload: StartGamePayload,
    service: GameService = Depends(get_game_service),
):
    """Assigne les cibles (cycle unique) puis passe la salle en `playing`."""
    try:
        assignments: Dict[str, str] = service.start_game(room_id, requester_id=payload.player_id)
        room = service.get_room(room_id)
    except GameError as exc:
        raise http_error(exc)
    return StartGameResponse(ok=True, room=room, players_count=len(assignments))


@router.get("/{room_id}/leaderboard")
async def leaderboard(room_id: str, service: GameService = Depends(get_game_service)):
    """Classement: moins d'indices d'abord, puis trouvé le plus tôt."""
    try:
        ranked = service.leaderboard(room_id)
    except GameError as exc:
        raise http_error(exc)
    entries = [
        LeaderboardEntry(
            rank=index + 1,
            player_id=p.id,
            name=p.name,
            clues_used=p.clues_used,
            found_at=p.found_at.isoformat(),
        )
        for index, p in enumerate(ranked)
    ]
    return {"leaderboard": entries}
