"""
Service: room_code.py
Rôle:
- Produire un code de salle court, facile à taper (A-Z + 0-9).

Notes:
- Fonction pure: aucune vérification d'unicité ici (cf. GameService.create_room
  qui retire un nouveau code en cas de collision).
- `rng` permet un tirage reproductible (tests).
"""
import random
import string
from typing import Optional

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_ROOM_CODE_LENGTH = 6


def generate_room_code(length: int = DEFAULT_ROOM_CODE_LENGTH, rng: Optional[random.Random] = None) -> str:
    """Tire `length` caractères dans l'alphabet majuscules + chiffres."""
    rng = rng or random
    length = max(1, int(length))
    return "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def normalize_room_code(code: Optional[str]) -> str:
    """Normalise une saisie utilisateur (espaces retirés, majuscules)."""
    return (code or "").strip().upper()
