from datetime import datetime, timedelta, timezone

from app.models.player import Player
from app.services.leaderboard import rank_finishers

T0 = datetime(2024, 5, 1, 20, 0, tzinfo=timezone.utc)


def _player(pid, clues_used=0, found_after=None):
    return Player(
        id=pid,
        room_id="r1",
        name=pid.upper(),
        clues_used=clues_used,
        found_at=T0 + timedelta(seconds=found_after) if found_after is not None else None,
    )


def test_fewest_clues_first_then_earliest():
    a = _player("a", clues_used=3, found_after=10)
    b = _player("b", clues_used=2, found_after=50)
    c = _player("c", clues_used=2, found_after=20)
    d = _player("d", clues_used=1)  # pas encore trouvé

    ranked = rank_finishers([a, b, c, d])

    assert [p.id for p in ranked] == ["c", "b", "a"]


def test_unfinished_players_are_excluded():
    players = [_player("x", clues_used=0), _player("y", clues_used=5)]
    assert rank_finishers(players) == []


def test_perfect_tie_keeps_input_order():
    first = _player("first", clues_used=1, found_after=5)
    second = _player("second", clues_used=1, found_after=5)

    assert [p.id for p in rank_finishers([first, second])] == ["first", "second"]
    assert [p.id for p in rank_finishers([second, first])] == ["second", "first"]


def test_accepts_any_iterable():
    gen = (p for p in [_player("g", clues_used=0, found_after=1)])
    assert [p.id for p in rank_finishers(gen)] == ["g"]
