"""
Service: targets.py
Rôle:
- Construire l'assignation "qui doit deviner qui" à partir des joueurs présents.

Comportement:
- Mélange uniforme (Fisher–Yates via `Random.shuffle`) d'une copie de la liste.
- Le joueur en position i vise le joueur en position (i + 1) mod n.
- Résultat: un unique cycle couvrant tous les joueurs, sans point fixe (n >= 2).

Notes d'implémentation:
- Ce n'est pas un dérangement uniforme (seuls les dérangements à un cycle sont
  produits), mais il est toujours valide dès 2 joueurs.
- `rng` permet de rejouer le tirage (déterministe pour tests).
"""
import random
from typing import Dict, List, Optional, Sequence


def assign_targets(player_ids: Sequence[str], rng: Optional[random.Random] = None) -> Dict[str, str]:
    """
    Retourne un mapping player_id -> target_player_id.

    Raises:
        ValueError: moins de 2 joueurs, ou identifiants dupliqués.
    """
    if len(player_ids) < 2:
        raise ValueError("At least 2 players are required to assign targets")
    if len(set(player_ids)) != len(player_ids):
        raise ValueError("Duplicate player ids")

    rng = rng or random
    pool: List[str] = list(player_ids)
    rng.shuffle(pool)  # mélange in-place sur la copie

    n = len(pool)
    return {pool[i]: pool[(i + 1) % n] for i in range(n)}


def cycle_of(assignments: Dict[str, str], start: str) -> List[str]:
    """Suit les cibles depuis `start` jusqu'au retour au point de départ."""
    cycle = [start]
    current = assignments[start]
    while current != start:
        cycle.append(current)
        current = assignments[current]
        if len(cycle) > len(assignments):
            raise ValueError("Assignments do not form a cycle")
    return cycle
