from enum import Enum
from typing import Optional


class Move(Enum):
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"

    @property
    def label(self) -> str:
        return self.value.title()


class Outcome(Enum):
    WIN = "win"
    LOSE = "lose"
    DRAW = "draw"

    @property
    def label(self) -> str:
        return self.value.title()


MOVES = [Move.ROCK, Move.PAPER, Move.SCISSORS]
OUTCOMES = [Outcome.WIN, Outcome.LOSE, Outcome.DRAW]

BEATS = {Move.ROCK: Move.SCISSORS, Move.PAPER: Move.ROCK, Move.SCISSORS: Move.PAPER}
BEATEN_BY = {v: k for k, v in BEATS.items()}  # inverse

SHORTHAND = {"r": Move.ROCK, "p": Move.PAPER, "s": Move.SCISSORS}
QUIT_WORDS = {"q", "quit"}


def adjudicate(human: Move, computer: Move) -> Outcome:
    """
    Return the round outcome from the human's side: WIN | LOSE | DRAW
    """
    if human == computer:
        return Outcome.DRAW
    return Outcome.WIN if BEATS[human] == computer else Outcome.LOSE


def expand_move(text: str) -> Optional[Move]:
    """Map 'r'/'p'/'s' or a full move name to a Move; None if unrecognized."""
    s = (text or "").strip().lower()
    if s in SHORTHAND:
        return SHORTHAND[s]
    try:
        return Move(s)
    except ValueError:
        return None


def is_quit(text: str) -> bool:
    return (text or "").strip().lower() in QUIT_WORDS
