"""
Module routes/generation.py
Rôle:
- `GET /questions` : questions de personnalisation pour la phase de collecte
  (service distant si configuré, sinon liste par défaut).
- `POST /generate/questions` et `POST /generate/clue` : implémentation locale du
  service de génération (même contrat que le service distant), utilisable
  comme `GENERATION_ENDPOINT` par d'autres instances.

Notes:
- `/generate/clue` attend `{"playerAnswers": {...}, "clueNumber": n}` et répond 400
  si l'un des deux manque ; un numéro décimal est tronqué puis borné à [1, 8].
"""
import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.deps.services import get_game_service
from app.models.clue import Question
from app.services.clue_engine import clue_level, default_questions, generate_clue
from app.services.game_service import GameService

router = APIRouter(tags=["generation"])


@router.get("/questions", response_model=List[Question])
def questions(service: GameService = Depends(get_game_service)):
    return service.questions()


@router.post("/generate/questions")
async def generate_questions():
    return {"questions": [q.model_dump() for q in default_questions()]}


@router.post("/generate/clue")
async def generate_clue_endpoint(payload: Optional[Dict[str, Any]] = Body(default=None)):
    payload = payload or {}
    answers = payload.get("playerAnswers")
    clue_number = payload.get("clueNumber")
    valid_number = (
        isinstance(clue_number, (int, float))
        and not isinstance(clue_number, bool)
        and math.isfinite(clue_number)
    )
    if not isinstance(answers, dict) or not valid_number:
        return JSONResponse(status_code=400, content={"error": "Missing playerAnswers or clueNumber"})
    return {"clue": generate_clue(answers, clue_level(clue_number))}
