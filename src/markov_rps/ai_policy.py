import random
from typing import Dict, NamedTuple, Optional

from loguru import logger

from markov_rps.game_logic import BEATEN_BY, MOVES, OUTCOMES, Move, Outcome


class ContextKey(NamedTuple):
    move: Move
    outcome: Outcome

    @property
    def label(self) -> str:
        return f"{self.move.label}{self.outcome.label}"


START_LABEL = "Start"


class PredictionInvariantError(RuntimeError):
    """A state's total no longer covers its counts; the table is corrupt."""


class OutcomeState:
    """
    Frequency table over the opponent's next move, given that their last
    move landed in this (move, outcome) context. key=None is the start state.
    """

    def __init__(self, key: Optional[ContextKey] = None):
        self.key = key
        # uniform prior: one count per move
        self.counts: Dict[Move, int] = {m: 1 for m in MOVES}
        self.total = len(MOVES)

    @property
    def label(self) -> str:
        return self.key.label if self.key is not None else START_LABEL

    def probability(self, move: Move) -> float:
        return self.counts[move] / self.total

    def sample_prediction(self, rng: random.Random) -> Move:
        """Draw the opponent's predicted move, weighted by observed counts."""
        choice = rng.randrange(self.total)
        chance = 0
        for move in MOVES:
            chance += self.counts[move]
            if choice < chance:
                return move
        raise PredictionInvariantError(
            f"{self.label} generated {choice} out of {self.total}."
        )

    def sample_counter_move(self, rng: random.Random) -> Move:
        predicted = self.sample_prediction(rng)
        counter = BEATEN_BY[predicted]
        logger.debug(f"[{self.label}] predicted={predicted.value} counter={counter.value}")
        return counter

    def record_observation(self, move: Move) -> None:
        self.counts[move] += 1
        self.total += 1

    def render(self) -> str:
        cells = "".join(f"[{m.label}:{self.counts[m]}]" for m in MOVES)
        return f"{self.label}:\n   {cells}\n"

    def __repr__(self):
        return f"OutcomeState({self.label}, total={self.total})"


class MarkovPredictor:
    """
    First-order chain over (last move, last outcome) contexts.

    Each round: get_counter_move() samples from the current context, then
    record_round() credits the real move to that context and moves on to the
    context the round produced.
    """

    name = "markov"

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random(seed)
        self.initialize()

    def initialize(self):
        self.states: Dict[ContextKey, OutcomeState] = {}
        for move in MOVES:
            for outcome in OUTCOMES:
                key = ContextKey(move, outcome)
                self.states[key] = OutcomeState(key)
        self.start = OutcomeState()
        self.current = self.start

    def get_counter_move(self) -> Move:
        return self.current.sample_counter_move(self.rng)

    def record_round(self, observed: Move, outcome: Outcome) -> None:
        # credit the old context before moving on
        self.current.record_observation(observed)
        self.current = self.states[ContextKey(observed, outcome)]

    def state_for(self, move: Move, outcome: Outcome) -> OutcomeState:
        return self.states[ContextKey(move, outcome)]

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        return {
            s.label: {m.value: s.counts[m] for m in MOVES}
            for s in self.states.values()
        }

    def distribution(self) -> Dict[str, Dict[str, float]]:
        """Predicted chance of each opponent move, per context."""
        return {
            s.label: {m.value: round(s.probability(m), 4) for m in MOVES}
            for s in self.states.values()
        }

    def render_states(self) -> str:
        return "".join(s.render() for s in self.states.values())

    def __str__(self):
        return self.render_states()


class RandomPolicy:
    """Uniform baseline with the predictor's interface; learns nothing."""

    name = "random"

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random(seed)
        self.current = None

    def get_counter_move(self) -> Move:
        return self.rng.choice(MOVES)

    def record_round(self, observed: Move, outcome: Outcome) -> None:
        pass

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        return {}

    def distribution(self) -> Dict[str, Dict[str, float]]:
        return {}

    def render_states(self) -> str:
        return ""


POLICIES = {"markov": MarkovPredictor, "random": RandomPolicy}


def make_policy(name: str, seed: Optional[int] = None):
    name = (name or "").lower()
    if name not in POLICIES:
        name = "markov"
    return POLICIES[name](seed), name
