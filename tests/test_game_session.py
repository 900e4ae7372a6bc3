import random

import pytest

from app.services import game_service as game_service_module
from app.services import session_storage as session_storage_module
from app.services.clue_engine import DEFAULT_QUESTIONS
from app.services.game_service import INCORRECT_GUESS_MESSAGE, GameService
from app.services.game_session import (
    VIEW_COLLECTING,
    VIEW_FINISHED,
    VIEW_LOBBY,
    VIEW_PLAYING,
    VIEW_WAITING,
    GameSession,
)
from app.services.session_storage import (
    PLAYER_ID_KEY,
    PLAYER_NAME_KEY,
    ROOM_CODE_KEY,
    ROOM_ID_KEY,
    SessionStorage,
)
from app.services.store import GameStore


@pytest.fixture
def service():
    return GameService(GameStore(), rng=random.Random(5))


def _answer_all(session, prefix="answer"):
    for i in range(len(DEFAULT_QUESTIONS)):
        assert session.answer_current(f"{prefix} number {i} with several words")


# -----------------------------
# Lobby -> collecte -> attente
# -----------------------------
def test_create_room_binds_session_and_storage(service):
    storage = SessionStorage()
    session = GameSession(service, storage)

    assert session.create_room("Alice")

    assert session.view == VIEW_COLLECTING
    assert session.is_host
    assert storage.snapshot() == {
        PLAYER_ID_KEY: session.player_id,
        ROOM_ID_KEY: session.room_id,
        ROOM_CODE_KEY: session.room_code,
        PLAYER_NAME_KEY: "Alice",
    }


def test_validation_error_stays_in_lobby(service):
    session = GameSession(service)

    assert not session.join_room("Bob", "")
    assert session.view == VIEW_LOBBY
    assert session.error == "Please enter room code"
    assert session.storage.snapshot() == {}


def test_collecting_walks_questions_then_waits(service):
    session = GameSession(service)
    session.create_room("Alice")

    assert not session.answer_current("   ")
    assert session.error == "Please provide an answer"
    assert session.question_index == 0

    session.answer_current("first")
    assert session.question_index == 1
    assert session.previous_question() == "first"
    assert session.question_index == 0

    _answer_all(session)

    assert session.view == VIEW_WAITING
    assert len(session.player.answers) == len(DEFAULT_QUESTIONS)


def test_waiting_room_sees_other_players_live(service):
    host = GameSession(service)
    host.create_room("Alice")
    _answer_all(host)
    assert [p.name for p in host.players] == ["Alice"]

    guest = GameSession(service)
    guest.join_room("Bob", host.room_code)

    assert [p.name for p in host.players] == ["Alice", "Bob"]
    assert [p.name for p in host.pending_players] == ["Bob"]

    _answer_all(guest)

    assert [p.name for p in host.ready_players] == ["Alice", "Bob"]


def test_start_game_guarded_locally(service):
    host = GameSession(service)
    host.create_room("Alice")
    _answer_all(host)
    guest = GameSession(service)
    guest.join_room("Bob", host.room_code)
    _answer_all(guest)

    assert not guest.start_game()
    assert guest.error == "Only the host can start the game"
    assert service.get_room(host.room_id).status == "waiting"


def test_start_game_with_one_ready_player_reports_error(service):
    host = GameSession(service)
    host.create_room("Alice")
    _answer_all(host)
    guest = GameSession(service)
    guest.join_room("Bob", host.room_code)

    assert not host.start_game()
    assert host.error == "Need at least 2 players with completed answers"
    assert host.view == VIEW_WAITING


# -----------------------------
# Scénario complet
# -----------------------------
def test_two_player_game_end_to_end(service, monkeypatch):
    monkeypatch.setattr(game_service_module, "generate_room_code", lambda length, rng=None: "ABC123")

    host = GameSession(service)
    assert host.create_room("Alice")
    assert host.room_code == "ABC123"

    guest = GameSession(service)
    assert guest.join_room("Bob", "abc123")
    assert guest.room_id == host.room_id

    _answer_all(host, "host")
    _answer_all(guest, "guest")
    assert host.view == guest.view == VIEW_WAITING

    assert host.start_game()

    # les deux sessions basculent via les notifications du store
    assert host.view == VIEW_PLAYING
    assert guest.view == VIEW_PLAYING
    assert host.target.id == guest.player_id
    assert guest.target.id == host.player_id

    assert guest.request_clue()
    assert guest.request_clue()
    assert [c.clue_number for c in guest.clues] == [1, 2]
    assert host.clues == []

    assert not guest.submit_guess("Mallory")
    assert guest.error == INCORRECT_GUESS_MESSAGE
    assert guest.view == VIEW_PLAYING

    assert guest.submit_guess("  alice ")
    assert guest.view == VIEW_FINISHED
    assert guest.player.clues_used == 2

    # l'hôte voit le classement mis à jour sans rien faire
    assert [p.name for p in host.leaderboard()] == ["Bob"]
    assert host.view == VIEW_PLAYING


def test_clue_requested_by_other_player_on_same_target_is_seen(service):
    host = GameSession(service)
    host.create_room("Alice")
    guest = GameSession(service)
    guest.join_room("Bob", host.room_code)
    _answer_all(host)
    _answer_all(guest)
    host.start_game()

    # l'indice est inséré directement côté service : la session le reçoit par notification
    service.request_clue(guest.player_id)

    assert [c.clue_number for c in guest.clues] == [1]


def test_close_stops_notifications(service):
    host = GameSession(service)
    host.create_room("Alice")
    _answer_all(host)
    host.close()

    guest = GameSession(service)
    guest.join_room("Bob", host.room_code)

    assert [p.name for p in host.players] == ["Alice"]


# -----------------------------
# Reprise de session
# -----------------------------
def test_resume_without_identifiers_stays_in_lobby(service):
    storage = SessionStorage()
    storage.update({PLAYER_ID_KEY: "p1"})
    session = GameSession(service, storage)

    assert session.resume() == VIEW_LOBBY


def test_resume_missing_room_clears_all_keys_in_one_write(service, tmp_path, monkeypatch):
    storage = SessionStorage(tmp_path / "session.json")
    storage.update({
        PLAYER_ID_KEY: "p1",
        ROOM_ID_KEY: "deleted-room",
        ROOM_CODE_KEY: "ABC123",
        PLAYER_NAME_KEY: "Alice",
    })
    writes = []
    real_write = session_storage_module.write_json

    def counting_write(path, data):
        writes.append(dict(data))
        real_write(path, data)

    monkeypatch.setattr(session_storage_module, "write_json", counting_write)

    session = GameSession(service, storage)

    assert session.resume() == VIEW_LOBBY
    assert writes == [{}]
    assert SessionStorage(tmp_path / "session.json").snapshot() == {}


def test_resume_player_from_another_room_resets(service):
    _, alice = service.create_room("Alice")
    other_room, _ = service.create_room("Zed")
    storage = SessionStorage()
    storage.update({PLAYER_ID_KEY: alice.id, ROOM_ID_KEY: other_room.id, ROOM_CODE_KEY: other_room.room_code})

    assert GameSession(service, storage).resume() == VIEW_LOBBY
    assert storage.snapshot() == {}


def test_resume_routes_to_matching_view(service):
    host = GameSession(service, SessionStorage())
    host.create_room("Alice")

    # pas encore de réponses -> collecte
    assert GameSession(service, host.storage).resume() == VIEW_COLLECTING

    _answer_all(host)
    assert GameSession(service, host.storage).resume() == VIEW_WAITING

    guest = GameSession(service)
    guest.join_room("Bob", host.room_code)
    _answer_all(guest)
    host.start_game()

    resumed = GameSession(service, host.storage)
    assert resumed.resume() == VIEW_PLAYING
    assert resumed.target.id == guest.player_id


def test_reset_to_lobby_clears_everything(service):
    session = GameSession(service)
    session.create_room("Alice")
    _answer_all(session)

    session.reset_to_lobby()

    assert session.view == VIEW_LOBBY
    assert session.room_id is None and session.player_id is None
    assert session.storage.snapshot() == {}
    assert service.store.subscriptions_count() == 0


def test_resume_after_correct_guess_lands_on_finished(service):
    host = GameSession(service, SessionStorage())
    host.create_room("Alice")
    guest = GameSession(service, SessionStorage())
    guest.join_room("Bob", host.room_code)
    _answer_all(host)
    _answer_all(guest)
    host.start_game()
    guest.submit_guess("Alice")
    guest.close()

    resumed = GameSession(service, guest.storage)

    assert resumed.resume() == VIEW_FINISHED


def test_playing_actions_without_target_report_error(service):
    session = GameSession(service)
    session.create_room("Alice")
    _answer_all(session)

    assert not session.submit_guess("Bob")
    assert session.error == "No target assigned yet"
    assert not session.request_clue()
    assert session.error == "No target assigned yet"


def test_blank_guess_reports_error(service):
    host = GameSession(service)
    host.create_room("Alice")
    guest = GameSession(service)
    guest.join_room("Bob", host.room_code)
    _answer_all(host)
    _answer_all(guest)
    host.start_game()

    assert not guest.submit_guess("   ")
    assert guest.error == "Please enter a guess"
    assert guest.view == VIEW_PLAYING
