"""
Models / room.py
Rôle:
- Définir une salle de jeu (ligne de la table `rooms`).

Notes:
- `status` accepte les 4 valeurs historiques, mais seules `waiting` et `playing`
  sont réellement écrites (waiting → playing, jamais de retour arrière).
- `collecting` et `finished` sont des vues dérivées côté client.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

RoomStatus = Literal["waiting", "collecting", "playing", "finished"]

ROOM_WAITING = "waiting"
ROOM_COLLECTING = "collecting"
ROOM_PLAYING = "playing"
ROOM_FINISHED = "finished"

# Statuts pour lesquels la salle accepte encore des inscriptions
JOINABLE_STATUSES = (ROOM_WAITING, ROOM_COLLECTING)


class Room(BaseModel):
    id: str
    room_code: str
    status: RoomStatus = ROOM_WAITING
    created_by: str  # player_id de l'hôte
    created_at: Optional[datetime] = None
