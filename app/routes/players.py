"""
Module routes/players.py
Rôle:
- Profil d'un joueur, sauvegarde de ses réponses.
- Pendant la partie : indices sur sa cible (lecture + demande du suivant) et
  proposition du nom de la cible.

Intégrations:
- GameService (injecté via Depends) ; la génération d'indice peut appeler le
  service distant, d'où des routes synchrones (exécutées en threadpool).
"""
from typing import Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.deps.services import get_game_service, http_error
from app.models.clue import Clue
from app.models.player import Player
from app.services.errors import GameError
from app.services.game_service import GameService, GuessResult

router = APIRouter(prefix="/players", tags=["players"])


class AnswersPayload(BaseModel):
    answers: Dict[str, str] = Field(default_factory=dict, description="{question: réponse}")


class GuessPayload(BaseModel):
    guess: str = ""


@router.get("/{player_id}", response_model=Player)
async def get_player(player_id: str, service: GameService = Depends(get_game_service)):
    try:
        return service.get_player(player_id)
    except GameError as exc:
        raise http_error(exc)


@router.put("/{player_id}/answers", response_model=Player)
async def save_answers(
    player_id: str,
    payload: AnswersPayload,
    service: GameService = Depends(get_game_service),
):
    """Enregistre le jeu complet de réponses (fin de la phase de collecte)."""
    try:
        return service.save_answers(player_id, payload.answers)
    except GameError as exc:
        raise http_error(exc)


@router.get("/{player_id}/clues", response_model=List[Clue])
async def player_clues(player_id: str, service: GameService = Depends(get_game_service)):
    """Indices déjà révélés sur la cible du joueur, triés par clue_number."""
    try:
        return service.clues_for_player(player_id)
    except GameError as exc:
        raise http_error(exc)


@router.post("/{player_id}/clues", response_model=Clue)
def request_clue(player_id: str, service: GameService = Depends(get_game_service)):
    """Demande l'indice suivant (clue_number = nb d'indices de la cible + 1)."""
    try:
        return service.request_clue(player_id)
    except GameError as exc:
        raise http_error(exc)


@router.post("/{player_id}/guess", response_model=GuessResult)
async def submit_guess(
    player_id: str,
    payload: GuessPayload,
    service: GameService = Depends(get_game_service),
):
    """Compare (sans casse) la proposition au nom de la cible ; pose found_at si juste."""
    try:
        return service.submit_guess(player_id, payload.guess)
    except GameError as exc:
        raise http_error(exc)
