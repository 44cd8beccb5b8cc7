from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from castbot.games import MOVES, ChallengeTable, resolve_match, shuffled_moves


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_challenge_can_only_be_claimed_once() -> None:
    table = ChallengeTable(ttl=60, clock=FakeClock())
    table.open("game", 1, "rock")

    challenge = table.claim("game")

    assert challenge is not None
    assert challenge.challenger_id == 1
    assert challenge.move == "rock"
    assert table.claim("game") is None
    assert len(table) == 0


def test_challenges_expire_after_ttl() -> None:
    clock = FakeClock()
    table = ChallengeTable(ttl=60, clock=clock)
    table.open("old", 1, "paper")
    clock.now += 30
    table.open("new", 2, "scissors")

    clock.now += 31

    assert "old" not in table
    assert "new" in table
    assert table.claim("old") is None
    assert table.claim("new") is not None


def test_unknown_move_is_rejected() -> None:
    table = ChallengeTable()

    with pytest.raises(ValueError):
        table.open("game", 1, "lizard")


@pytest.mark.parametrize(
    ("challenger_move", "opponent_move", "expected"),
    [
        ("rock", "scissors", "<@1>'s **rock** crushes <@2>'s **scissors**"),
        ("rock", "paper", "<@2>'s **paper** covers <@1>'s **rock**"),
        ("scissors", "paper", "<@1>'s **scissors** cuts <@2>'s **paper**"),
        ("paper", "paper", "<@1> and <@2> draw with **paper**"),
    ],
)
def test_resolve_match(challenger_move: str, opponent_move: str, expected: str) -> None:
    assert resolve_match(1, challenger_move, 2, opponent_move) == expected


def test_every_move_beats_exactly_one_other() -> None:
    for move in MOVES.values():
        assert len(move.beats) == 1
        assert next(iter(move.beats)) in MOVES


def test_shuffled_moves_contains_every_move() -> None:
    moves = shuffled_moves(random.Random(4))

    assert sorted(move.name for move in moves) == sorted(MOVES)
