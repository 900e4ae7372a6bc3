"""
Session storage
===============

Stockage clé/valeur local au client (équivalent du localStorage navigateur)
qui survit à un rechargement : player id, room id, room code, player name.

- En mémoire si `path` est None, sinon fichier JSON (orjson) réécrit à chaque
  modification.
- `clear()` retire les quatre identifiants en UNE seule écriture.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import Dict, Optional

from .io_utils import read_json, write_json

PLAYER_ID_KEY = "playerId"
ROOM_ID_KEY = "roomId"
ROOM_CODE_KEY = "roomCode"
PLAYER_NAME_KEY = "playerName"
SESSION_KEYS = (PLAYER_ID_KEY, ROOM_ID_KEY, ROOM_CODE_KEY, PLAYER_NAME_KEY)
# présence simultanée de ces trois clés = tentative de reprise de session
RESUME_KEYS = (PLAYER_ID_KEY, ROOM_ID_KEY, ROOM_CODE_KEY)


@dataclass
class SessionStorage:
    path: Optional[Path] = None
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)
    _values: Dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.path:
            data = read_json(self.path)
            if isinstance(data, dict):
                self._values = {str(k): str(v) for k, v in data.items() if v is not None}

    def _flush(self) -> None:
        if self.path:
            write_json(self.path, self._values)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def update(self, values: Dict[str, Optional[str]]) -> None:
        """Écrit plusieurs clés d'un coup (valeurs None ignorées)."""
        with self._lock:
            for key, value in values.items():
                if value is not None:
                    self._values[key] = value
            self._flush()

    def clear(self) -> None:
        with self._lock:
            for key in SESSION_KEYS:
                self._values.pop(key, None)
            self._flush()

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._values)

    def can_resume(self) -> bool:
        with self._lock:
            return all(self._values.get(key) for key in RESUME_KEYS)
