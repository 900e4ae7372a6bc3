"""
Service: game_service.py
Rôle :
- Toutes les opérations persistées du jeu, au-dessus du store partagé :
  création / arrivée dans une salle, réponses, lancement (assignation des cibles),
  demande d'indice, proposition de nom, classement.

Garde-fous :
- Validation locale AVANT toute écriture (ValidationError, aucune mutation).
- Les écritures multi-lignes (lancement, indice) passent par une transaction du
  store : tout ou rien. Un échec d'écriture devient une WriteError.
- Le store, le générateur et la source aléatoire sont injectés (pas de singleton).
"""
from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel

from app.config.settings import settings
from app.models.clue import Clue, Question
from app.models.player import Player
from app.models.room import JOINABLE_STATUSES, ROOM_PLAYING, ROOM_WAITING, Room
from app.services.clue_engine import generate_clue
from app.services.errors import NotFoundError, ValidationError, WriteError
from app.services.generation_client import ContentGenerator
from app.services.leaderboard import rank_finishers
from app.services.room_code import generate_room_code, normalize_room_code
from app.services.store import CLUES, PLAYERS, ROOMS, GameStore, StoreWriteError
from app.services.targets import assign_targets

logger = logging.getLogger(__name__)

INCORRECT_GUESS_MESSAGE = "Incorrect guess! Try requesting more clues."
# régénérations via le générateur avant repli sur l'échelle locale
CLUE_GENERATION_ATTEMPTS = 3


class GuessResult(BaseModel):
    correct: bool
    player: Player
    message: str = ""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameService:
    def __init__(
        self,
        store: GameStore,
        generator: Optional[ContentGenerator] = None,
        *,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
        room_code_length: int = settings.ROOM_CODE_LENGTH,
        room_code_max_attempts: int = settings.ROOM_CODE_MAX_ATTEMPTS,
        min_ready_players: int = settings.MIN_READY_PLAYERS,
        max_name_length: int = settings.MAX_NAME_LENGTH,
    ) -> None:
        self.store = store
        self.generator = generator or ContentGenerator(rng=rng)
        self.rng = rng
        self.clock = clock
        self.room_code_length = room_code_length
        self.room_code_max_attempts = max(1, room_code_max_attempts)
        # un cycle de cibles exige au moins 2 joueurs
        self.min_ready_players = max(2, min_ready_players)
        self.max_name_length = max_name_length

    # -----------------------------
    # Helpers
    # -----------------------------
    @contextmanager
    def _writing(self, action: str) -> Iterator[None]:
        """Traduit un refus du store en WriteError (message utilisateur)."""
        try:
            yield
        except StoreWriteError as exc:
            logger.error("Store write failed", exc_info=True, extra={"action": action})
            raise WriteError(f"Failed to {action}") from exc

    def _clean_name(self, name: Optional[str]) -> str:
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Please enter your name")
        return clean[: self.max_name_length]

    def _unique_room_code(self) -> str:
        for _ in range(self.room_code_max_attempts):
            code = generate_room_code(self.room_code_length, rng=self.rng)
            if self.store.count(ROOMS, room_code=code) == 0:
                return code
            logger.info("Room code collision, drawing again", extra={"room_code": code})
        raise WriteError("Failed to create room: no free room code")

    @staticmethod
    def _new_player_row(player_id: str, room_id: str, name: str) -> dict:
        return {
            "id": player_id,
            "room_id": room_id,
            "name": name,
            "answers": {},
            "target_player_id": None,
            "clues_used": 0,
            "found_at": None,
        }

    # -----------------------------
    # Lectures
    # -----------------------------
    def get_room(self, room_id: str) -> Room:
        row = self.store.get(ROOMS, room_id) if room_id else None
        if row is None:
            raise NotFoundError("Room not found")
        return Room.model_validate(row)

    def get_room_by_code(self, room_code: str) -> Room:
        row = self.store.first(ROOMS, room_code=normalize_room_code(room_code))
        if row is None:
            raise NotFoundError("Room not found")
        return Room.model_validate(row)

    def get_player(self, player_id: str) -> Player:
        row = self.store.get(PLAYERS, player_id) if player_id else None
        if row is None:
            raise NotFoundError("Player not found")
        return Player.model_validate(row)

    def list_players(self, room_id: str) -> List[Player]:
        rows = self.store.select(PLAYERS, room_id=room_id, order_by="created_at")
        return [Player.model_validate(r) for r in rows]

    def clues_for_target(self, target_id: str) -> List[Clue]:
        rows = self.store.select(CLUES, player_id=target_id, order_by="clue_number")
        return [Clue.model_validate(r) for r in rows]

    def clues_for_player(self, player_id: str) -> List[Clue]:
        """Indices visibles par `player_id` : ceux qui portent sur sa cible."""
        player = self.get_player(player_id)
        if not player.target_player_id:
            return []
        return self.clues_for_target(player.target_player_id)

    def questions(self) -> List[Question]:
        return self.generator.questions()

    def leaderboard(self, room_id: str) -> List[Player]:
        self.get_room(room_id)
        return rank_finishers(self.list_players(room_id))

    # -----------------------------
    # Salle
    # -----------------------------
    def create_room(self, name: Optional[str]) -> Tuple[Room, Player]:
        """Crée la salle + son hôte (une seule transaction)."""
        clean = self._clean_name(name)
        player_id = str(uuid4())
        with self._writing("create room"):
            with self.store.transaction():
                code = self._unique_room_code()
                room_row = self.store.insert(ROOMS, {
                    "room_code": code,
                    "created_by": player_id,
                    "status": ROOM_WAITING,
                })
                player_row = self.store.insert(PLAYERS, self._new_player_row(player_id, room_row["id"], clean))
        logger.info("Room created", extra={"room_id": room_row["id"], "room_code": code, "player_id": player_id})
        return Room.model_validate(room_row), Player.model_validate(player_row)

    def join_room(self, name: Optional[str], room_code: Optional[str]) -> Tuple[Room, Player]:
        clean = self._clean_name(name)
        code = normalize_room_code(room_code)
        if not code:
            raise ValidationError("Please enter room code")
        if len(code) < self.room_code_length:
            raise ValidationError(f"Room code must be {self.room_code_length} characters")

        player_id = str(uuid4())
        with self._writing("join room"):
            with self.store.transaction():
                room = self.get_room_by_code(code)
                if room.status not in JOINABLE_STATUSES:
                    raise ValidationError("Room is no longer accepting players")
                player_row = self.store.insert(PLAYERS, self._new_player_row(player_id, room.id, clean))
        logger.info("Player joined room", extra={"room_id": room.id, "player_id": player_id})
        return room, Player.model_validate(player_row)

    # -----------------------------
    # Collecte des réponses
    # -----------------------------
    def save_answers(self, player_id: str, answers: Mapping[str, str]) -> Player:
        cleaned: Dict[str, str] = {}
        for question, answer in (answers or {}).items():
            text = str(answer or "").strip()
            if not text:
                raise ValidationError("Please provide an answer")
            cleaned[str(question)] = text
        if not cleaned:
            raise ValidationError("Please provide an answer")

        self.get_player(player_id)
        with self._writing("save answers"):
            row = self.store.update(PLAYERS, player_id, {"answers": cleaned})
        logger.info("Answers saved", extra={"player_id": player_id, "answers_count": len(cleaned)})
        return Player.model_validate(row)

    # -----------------------------
    # Lancement
    # -----------------------------
    def start_game(self, room_id: str, requester_id: Optional[str] = None) -> Dict[str, str]:
        """
        Assigne une cible à chaque joueur présent puis passe la salle en `playing`.
        Tout se fait dans UNE transaction : un échec annule toutes les cibles.
        """
        with self._writing("start game"):
            with self.store.transaction():
                room = self.get_room(room_id)
                if room.status not in JOINABLE_STATUSES:
                    raise ValidationError("Game already started")
                if requester_id is not None and requester_id != room.created_by:
                    raise ValidationError("Only the host can start the game")

                players = self.list_players(room_id)
                ready = [p for p in players if p.has_answers]
                if len(ready) < self.min_ready_players:
                    raise ValidationError(
                        f"Need at least {self.min_ready_players} players with completed answers"
                    )

                assignments = assign_targets([p.id for p in players], rng=self.rng)
                for pid, target_id in assignments.items():
                    self.store.update(PLAYERS, pid, {"target_player_id": target_id})
                self.store.update(ROOMS, room_id, {"status": ROOM_PLAYING})

        logger.info("Game started", extra={"room_id": room_id, "players_count": len(assignments)})
        return assignments

    # -----------------------------
    # Partie
    # -----------------------------
    def _playing_player(self, player_id: str) -> Tuple[Player, Player]:
        player = self.get_player(player_id)
        room = self.get_room(player.room_id)
        if room.status != ROOM_PLAYING:
            raise ValidationError("Game has not started yet")
        if not player.target_player_id:
            raise ValidationError("No target assigned yet")
        return player, self.get_player(player.target_player_id)

    def request_clue(self, player_id: str) -> Clue:
        """
        Ajoute l'indice suivant sur la cible du joueur.
        clue_number = nombre d'indices existants pour la cible + 1.

        Si un autre indice arrive sur la même cible pendant la génération, le
        texte est régénéré (hors verrou) pour le nouveau numéro ; au-delà de
        `CLUE_GENERATION_ATTEMPTS`, l'échelle locale est utilisée sous verrou.
        """
        player, target = self._playing_player(player_id)
        if player.finished:
            raise ValidationError("You already found your target")

        number = self.store.count(CLUES, player_id=target.id) + 1
        # génération hors verrou (service distant possible)
        content = self.generator.clue(target.answers, number)
        attempts = 1
        clue_row = None

        while clue_row is None:
            with self._writing("request clue"):
                with self.store.transaction():
                    current = self.store.count(CLUES, player_id=target.id) + 1
                    if current != number and attempts >= CLUE_GENERATION_ATTEMPTS:
                        logger.warning(
                            "Clue number kept moving, using local clue ladder",
                            extra={"player_id": player.id, "target_id": target.id, "clue_number": current},
                        )
                        number = current
                        content = generate_clue(target.answers, number, rng=self.rng)
                    if current == number:
                        clue_row = self.store.insert(CLUES, {
                            "player_id": target.id,
                            "content": content,
                            "clue_number": number,
                        })
                        self.store.update(PLAYERS, player.id, {"clues_used": number})
            if clue_row is None:
                logger.info(
                    "Clue number moved during generation, regenerating",
                    extra={"target_id": target.id, "from": number, "to": current},
                )
                number = current
                content = self.generator.clue(target.answers, number)
                attempts += 1

        logger.info("Clue delivered", extra={"player_id": player.id, "target_id": target.id, "clue_number": number})
        return Clue.model_validate(clue_row)

    def submit_guess(self, player_id: str, guess: Optional[str]) -> GuessResult:
        text = (guess or "").strip()
        if not text:
            raise ValidationError("Please enter a guess")

        player, target = self._playing_player(player_id)
        if text.lower() != target.name.strip().lower():
            logger.info("Wrong guess", extra={"player_id": player.id})
            return GuessResult(correct=False, player=player, message=INCORRECT_GUESS_MESSAGE)

        if player.finished:
            # found_at n'est posé qu'une seule fois
            return GuessResult(correct=True, player=player)

        with self._writing("submit guess"):
            row = self.store.update(PLAYERS, player.id, {"found_at": self.clock().isoformat()})
        logger.info("Target found", extra={"player_id": player.id, "clues_used": player.clues_used})
        return GuessResult(correct=True, player=Player.model_validate(row))
