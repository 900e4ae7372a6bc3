"""
Service: leaderboard.py
Rôle:
- Classer les joueurs ayant trouvé leur cible.

Règles:
- Seuls les joueurs avec `found_at` sont classés (les autres sont exclus, pas "derniers").
- Tri croissant sur `clues_used`, puis sur `found_at` (le plus rapide d'abord).
- `sorted` est stable: égalité parfaite => ordre d'origine conservé.
"""
from typing import Iterable, List

from app.models.player import Player


def rank_finishers(players: Iterable[Player]) -> List[Player]:
    finishers = [p for p in players if p.found_at is not None]
    return sorted(finishers, key=lambda p: (p.clues_used, p.found_at))
