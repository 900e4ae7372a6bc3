"""
Models / player.py
Rôle:
- Définir la structure d’un joueur (ligne de la table `players`).

Champs:
- id: identifiant unique (uuid4 émis par l'app).
- room_id: salle à laquelle le joueur appartient (une seule).
- name: nom d’affichage (celui qu'il faut deviner).
- answers: {question: réponse} saisies en phase de collecte.
- target_player_id: joueur à deviner, assigné une seule fois au lancement.
- clues_used: nombre d'indices demandés pour sa cible.
- found_at: horodatage de la bonne réponse (None tant que non trouvé).
"""
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class Player(BaseModel):
    """Profil joueur pour sérialisation/validation côté API."""
    id: str
    room_id: str
    name: str
    answers: Dict[str, str] = Field(default_factory=dict)
    target_player_id: Optional[str] = None  # None tant que la partie n'a pas démarré
    clues_used: int = Field(default=0, ge=0)
    found_at: Optional[datetime] = None  # posé une seule fois (joueur "finished")
    created_at: Optional[datetime] = None

    @property
    def has_answers(self) -> bool:
        return bool(self.answers)

    @property
    def finished(self) -> bool:
        return self.found_at is not None
