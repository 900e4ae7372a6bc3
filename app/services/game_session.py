"""
Service: game_session.py
Rôle :
- Machine à états côté client : quel écran afficher (lobby → collecting →
  waiting → playing → finished) à partir des lignes room/player du store.
- Reprise de session après rechargement via `SessionStorage`.

Abonnements (re-fetch complet à chaque notification, jamais de patch) :
- waiting : rooms (id = salle) + players (room_id = salle)
- playing / finished : players (room_id = salle) + clues (player_id = cible)
Quitter un écran (ou `close()`) ferme ses abonnements.

Erreurs :
- Aucune exception de jeu ne sort de la session : le message est exposé dans
  `error` (affiché par l'UI), l'utilisateur peut réessayer.
- Une reprise invalide (salle/joueur absents) renvoie au lobby et efface les
  quatre identifiants stockés en une seule fois.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from app.models.clue import Clue, Question
from app.models.player import Player
from app.models.room import ROOM_PLAYING, ROOM_WAITING, Room
from app.services.errors import GameError, NotFoundError
from app.services.game_service import GameService
from app.services.leaderboard import rank_finishers
from app.services.session_storage import (
    PLAYER_ID_KEY,
    PLAYER_NAME_KEY,
    ROOM_CODE_KEY,
    ROOM_ID_KEY,
    SessionStorage,
)
from app.services.store import CLUES, EVENT_INSERT, PLAYERS, ROOMS, ChangeEvent, Subscription

logger = logging.getLogger(__name__)

VIEW_LOBBY = "lobby"
VIEW_COLLECTING = "collecting"
VIEW_WAITING = "waiting"
VIEW_PLAYING = "playing"
VIEW_FINISHED = "finished"

NO_TARGET_MESSAGE = "No target assigned yet"


class GameSession:
    def __init__(self, service: GameService, storage: Optional[SessionStorage] = None) -> None:
        self.service = service
        self.storage = storage or SessionStorage()
        self.view = VIEW_LOBBY
        self.error: Optional[str] = None

        self.room_id: Optional[str] = None
        self.player_id: Optional[str] = None
        self.room_code: Optional[str] = None
        self.player_name: Optional[str] = None

        self.room: Optional[Room] = None
        self.player: Optional[Player] = None
        self.players: List[Player] = []
        self.target: Optional[Player] = None
        self.clues: List[Clue] = []

        # collecte pas à pas
        self.questions: List[Question] = []
        self.question_index = 0
        self.draft_answers: Dict[str, str] = {}

        self._subscriptions: List[Subscription] = []
        self._clues_subscription: Optional[Subscription] = None

    # -----------------------------
    # Dérivés
    # -----------------------------
    @property
    def is_host(self) -> bool:
        return bool(self.room and self.player_id and self.room.created_by == self.player_id)

    @property
    def ready_players(self) -> List[Player]:
        return [p for p in self.players if p.has_answers]

    @property
    def pending_players(self) -> List[Player]:
        return [p for p in self.players if not p.has_answers]

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.question_index < len(self.questions):
            return self.questions[self.question_index]
        return None

    def leaderboard(self) -> List[Player]:
        return rank_finishers(self.players)

    # -----------------------------
    # Helpers internes
    # -----------------------------
    def _fail(self, exc: GameError) -> bool:
        self.error = exc.message
        logger.warning(
            "Session operation failed",
            extra={"view": self.view, "player_id": self.player_id, "error": self.error},
        )
        return False

    def _bind(self, room: Room, player: Player) -> None:
        self.room, self.player = room, player
        self.room_id, self.player_id = room.id, player.id
        self.room_code, self.player_name = room.room_code, player.name
        self.storage.update({
            PLAYER_ID_KEY: player.id,
            ROOM_ID_KEY: room.id,
            ROOM_CODE_KEY: room.room_code,
            PLAYER_NAME_KEY: player.name,
        })

    def _close_subscriptions(self) -> None:
        for sub in self._subscriptions:
            sub.close()
        self._subscriptions = []
        if self._clues_subscription is not None:
            self._clues_subscription.close()
            self._clues_subscription = None

    def _subscribe(self, table: str, column: str, value: str, handler, event: Optional[str] = None) -> Subscription:
        sub = self.service.store.subscribe(table, handler, column=column, value=value, event=event)
        self._subscriptions.append(sub)
        return sub

    def _enter(self, view: str) -> None:
        """Change d'écran : ferme les abonnements de l'écran quitté, ouvre ceux du nouveau."""
        self._close_subscriptions()
        previous, self.view = self.view, view
        logger.info("Session view change", extra={"from": previous, "to": view, "player_id": self.player_id})

        if view == VIEW_WAITING:
            self._subscribe(ROOMS, "id", self.room_id, self._on_room_change)
            self._subscribe(PLAYERS, "room_id", self.room_id, self._on_waiting_players_change)
            self.refresh_waiting_room()
        elif view in (VIEW_PLAYING, VIEW_FINISHED):
            self._subscribe(PLAYERS, "room_id", self.room_id, self._on_playing_players_change)
            self.refresh_players()

    # -----------------------------
    # Lobby
    # -----------------------------
    def create_room(self, name: Optional[str]) -> bool:
        self.error = None
        try:
            room, player = self.service.create_room(name)
        except GameError as exc:
            return self._fail(exc)
        self._bind(room, player)
        self._start_collecting()
        return True

    def join_room(self, name: Optional[str], room_code: Optional[str]) -> bool:
        self.error = None
        try:
            room, player = self.service.join_room(name, room_code)
        except GameError as exc:
            return self._fail(exc)
        self._bind(room, player)
        self._start_collecting()
        return True

    def resume(self) -> str:
        """Reprise après rechargement ; renvoie l'écran résultant."""
        if not self.storage.can_resume():
            return self.view

        room_id = self.storage.get(ROOM_ID_KEY)
        player_id = self.storage.get(PLAYER_ID_KEY)
        try:
            room = self.service.get_room(room_id)
            player = self.service.get_player(player_id)
            if player.room_id != room.id:
                raise NotFoundError("Player not found")
        except GameError as exc:
            logger.info("Session resume failed, back to lobby", extra={"room_id": room_id, "reason": exc.message})
            self.reset_to_lobby()
            return self.view

        self._bind(room, player)
        if room.status == ROOM_WAITING:
            if player.has_answers:
                self._enter(VIEW_WAITING)
            else:
                self._start_collecting()
        elif room.status == ROOM_PLAYING:
            self._enter(VIEW_PLAYING)
        else:
            self._enter(VIEW_WAITING)
        return self.view

    def reset_to_lobby(self) -> None:
        self._close_subscriptions()
        self.storage.clear()
        self.view = VIEW_LOBBY
        self.room_id = self.player_id = self.room_code = self.player_name = None
        self.room = self.player = self.target = None
        self.players, self.clues = [], []
        self.questions, self.question_index, self.draft_answers = [], 0, {}

    def close(self) -> None:
        """Démontage : plus aucune notification ne touchera cette session."""
        self._close_subscriptions()

    # -----------------------------
    # Collecte
    # -----------------------------
    def _start_collecting(self) -> None:
        self._enter(VIEW_COLLECTING)
        self.question_index = 0
        self.draft_answers = {}

    def load_questions(self) -> List[Question]:
        self.questions = self.service.questions()
        self.question_index = 0
        return self.questions

    def answer_current(self, answer: Optional[str]) -> bool:
        """Enregistre la réponse courante ; la dernière déclenche la sauvegarde."""
        if not self.questions:
            self.load_questions()
        question = self.current_question
        if question is None:
            return False
        text = (answer or "").strip()
        if not text:
            self.error = "Please provide an answer"
            return False

        self.error = None
        self.draft_answers[question.question] = text
        if self.question_index < len(self.questions) - 1:
            self.question_index += 1
            return True
        return self.submit_answers(self.draft_answers)

    def previous_question(self) -> Optional[str]:
        """Revient à la question précédente et renvoie la réponse déjà saisie."""
        if self.question_index > 0:
            self.question_index -= 1
            self.error = None
        question = self.current_question
        return self.draft_answers.get(question.question) if question else None

    def submit_answers(self, answers: Dict[str, str]) -> bool:
        self.error = None
        try:
            self.player = self.service.save_answers(self.player_id, answers)
        except GameError as exc:
            return self._fail(exc)
        self._enter(VIEW_WAITING)
        return True

    # -----------------------------
    # Salle d'attente
    # -----------------------------
    def _on_room_change(self, change: ChangeEvent) -> None:
        self.refresh_waiting_room()

    def _on_waiting_players_change(self, change: ChangeEvent) -> None:
        self.refresh_waiting_room()

    def refresh_waiting_room(self) -> None:
        try:
            self.room = self.service.get_room(self.room_id)
            self.players = self.service.list_players(self.room_id)
        except GameError as exc:
            self._fail(exc)
            return
        if self.view == VIEW_WAITING and self.room.status == ROOM_PLAYING:
            self._enter(VIEW_PLAYING)

    def start_game(self) -> bool:
        self.error = None
        if not self.is_host:
            self.error = "Only the host can start the game"
            return False
        try:
            self.service.start_game(self.room_id, requester_id=self.player_id)
        except GameError as exc:
            return self._fail(exc)
        if self.view == VIEW_WAITING:
            self.refresh_waiting_room()
        return True

    # -----------------------------
    # Partie
    # -----------------------------
    def _on_playing_players_change(self, change: ChangeEvent) -> None:
        self.refresh_players()

    def _on_clues_change(self, change: ChangeEvent) -> None:
        self.refresh_clues()

    def _watch_target_clues(self, target_id: Optional[str]) -> None:
        current = self._clues_subscription
        if current is not None and current.value == target_id:
            return
        if current is not None:
            current.close()
            self._clues_subscription = None
        if target_id:
            self._clues_subscription = self.service.store.subscribe(
                CLUES, self._on_clues_change, column="player_id", value=target_id, event=EVENT_INSERT
            )

    def refresh_players(self) -> None:
        try:
            self.players = self.service.list_players(self.room_id)
        except GameError as exc:
            self._fail(exc)
            return

        me = next((p for p in self.players if p.id == self.player_id), None)
        if me is None:
            self.error = "Player not found"
            return
        self.player = me
        previous_target = self.target.id if self.target else None
        self.target = next((p for p in self.players if p.id == me.target_player_id), None)

        target_id = self.target.id if self.target else None
        self._watch_target_clues(target_id)
        if target_id != previous_target:
            self.refresh_clues()
        if me.finished and self.view == VIEW_PLAYING:
            self.view = VIEW_FINISHED
            logger.info("Session view change", extra={"from": VIEW_PLAYING, "to": VIEW_FINISHED, "player_id": me.id})

    def refresh_clues(self) -> None:
        if self.target is None:
            self.clues = []
            return
        try:
            self.clues = self.service.clues_for_target(self.target.id)
        except GameError as exc:
            self._fail(exc)

    def request_clue(self) -> bool:
        self.error = None
        if self.target is None:
            self.error = NO_TARGET_MESSAGE
            return False
        try:
            self.service.request_clue(self.player_id)
        except GameError as exc:
            return self._fail(exc)
        self.refresh_clues()
        return True

    def submit_guess(self, guess: Optional[str]) -> bool:
        self.error = None
        if self.target is None:
            self.error = NO_TARGET_MESSAGE
            return False
        if not (guess or "").strip():
            self.error = "Please enter a guess"
            return False
        try:
            result = self.service.submit_guess(self.player_id, guess)
        except GameError as exc:
            return self._fail(exc)
        if not result.correct:
            self.error = result.message
            return False
        self.player = result.player
        if self.view == VIEW_PLAYING:
            self.view = VIEW_FINISHED
        return True
