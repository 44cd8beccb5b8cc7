"""Rock-paper-scissors challenges between server members."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, NamedTuple

log = logging.getLogger(__name__)

DEFAULT_CHALLENGE_TTL = 15 * 60


class Move(NamedTuple):
    name: str
    description: str
    beats: dict[str, str]


MOVES: dict[str, Move] = {
    "rock": Move("rock", "sedimentary, igneous, or perhaps even metamorphic", {"scissors": "crushes"}),
    "paper": Move("paper", "versatile and iconic", {"rock": "covers"}),
    "scissors": Move("scissors", "careful ! sharp ! edges !!", {"paper": "cuts"}),
}


@dataclass(slots=True)
class Challenge:
    game_id: str
    challenger_id: int
    move: str
    created_at: float = field(default_factory=time.monotonic)


def resolve_match(challenger_id: int, challenger_move: str, opponent_id: int, opponent_move: str) -> str:
    """Describe the outcome of a challenge as a chat line."""

    if challenger_move == opponent_move:
        return f"<@{challenger_id}> and <@{opponent_id}> draw with **{challenger_move}**"

    first, second = MOVES[challenger_move], MOVES[opponent_move]
    if opponent_move in first.beats:
        verb = first.beats[opponent_move]
        return f"<@{challenger_id}>'s **{challenger_move}** {verb} <@{opponent_id}>'s **{opponent_move}**"
    verb = second.beats[challenger_move]
    return f"<@{opponent_id}>'s **{opponent_move}** {verb} <@{challenger_id}>'s **{challenger_move}**"


def shuffled_moves(rng: random.Random | None = None) -> list[Move]:
    moves = list(MOVES.values())
    (rng or random).shuffle(moves)
    return moves


class ChallengeTable:
    """Open challenges keyed by game ID.

    A challenge is removed the first time it is claimed, or once it is older
    than ``ttl`` seconds.  Expired entries are purged on every access.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_CHALLENGE_TTL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._open: dict[str, Challenge] = {}

    def __len__(self) -> int:
        self._purge()
        return len(self._open)

    def __contains__(self, game_id: object) -> bool:
        self._purge()
        return game_id in self._open

    def open(self, game_id: str, challenger_id: int, move: str) -> Challenge:
        if move not in MOVES:
            raise ValueError(f"Unknown move: {move}")
        self._purge()
        challenge = Challenge(game_id, challenger_id, move, created_at=self._clock())
        self._open[game_id] = challenge
        return challenge

    def claim(self, game_id: str) -> Challenge | None:
        """Remove and return the challenge, or ``None`` if it is gone."""

        self._purge()
        return self._open.pop(game_id, None)

    def _purge(self) -> None:
        cutoff = self._clock() - self.ttl
        expired = [key for key, entry in self._open.items() if entry.created_at < cutoff]
        for key in expired:
            del self._open[key]
        if expired:
            log.debug("Expired %d open challenge(s)", len(expired))


__all__ = [
    "Challenge",
    "ChallengeTable",
    "MOVES",
    "Move",
    "resolve_match",
    "shuffled_moves",
]
