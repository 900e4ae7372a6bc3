"""
Models / clue.py
Rôle:
- Un indice textuel (ligne de la table `clues`) et une question de personnalisation.

Notes:
- `player_id` désigne la CIBLE dont parlent les réponses, pas le joueur qui reçoit l'indice.
- `clue_number` commence à 1 et croît strictement par cible (append-only).
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Clue(BaseModel):
    id: str
    player_id: str
    content: str
    clue_number: int = Field(ge=1)
    created_at: Optional[datetime] = None


class Question(BaseModel):
    """Question posée en phase de collecte (+ catégorie indicative)."""
    question: str
    category: str
