import csv
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from markov_rps.ai_policy import make_policy
from markov_rps.game_logic import Move, Outcome, adjudicate


@dataclass
class Scoreboard:
    human_wins: int = 0
    computer_wins: int = 0
    draws: int = 0
    rounds: int = 0

    def update(self, outcome: Outcome):
        self.rounds += 1
        if outcome == Outcome.WIN:
            self.human_wins += 1
        elif outcome == Outcome.LOSE:
            self.computer_wins += 1
        else:
            self.draws += 1

    @property
    def tally(self) -> str:
        return f"{self.human_wins}:{self.computer_wins}"


@dataclass
class RoundResult:
    """One finished round, as seen by the human."""
    human: Move
    computer: Move
    outcome: Outcome
    context: Optional[str]
    score: Scoreboard = field(default_factory=Scoreboard)

    def summary(self) -> str:
        return f"{self.computer.label} => {self.outcome.label}! Score - {self.score.tally}"


def get_round_log(out_dir: str) -> str:
    csv_path = os.path.join(out_dir, "round_log.csv")
    if not os.path.exists(csv_path):
        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(["ts", "player", "ai", "result", "context"])
    return csv_path


def log_round(csv_path: str, result: RoundResult):
    with open(csv_path, "a", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow([f"{time.time():.3f}", result.human.value, result.computer.value,
                    result.outcome.value, result.context or ""])


class MatchSession:
    """A single match: one policy, one scoreboard, optional CSV round log."""

    def __init__(self, policy: str = "markov", seed: Optional[int] = None,
                 round_log: Optional[str] = None):
        self.policy, self.policy_name = make_policy(policy, seed)
        self.score = Scoreboard()
        self.round_log = round_log
        # one round at a time per match, even under a threaded server
        self._lock = threading.Lock()

    def play(self, human: Move) -> RoundResult:
        with self._lock:
            return self._play(human)

    def _play(self, human: Move) -> RoundResult:
        computer = self.policy.get_counter_move()
        outcome = adjudicate(human, computer)
        self.policy.record_round(human, outcome)
        self.score.update(outcome)

        current = self.policy.current
        result = RoundResult(
            human=human,
            computer=computer,
            outcome=outcome,
            context=current.label if current is not None else None,
            score=Scoreboard(**vars(self.score)),
        )
        logger.info(f"Round {self.score.rounds}: human={human.value} ai={computer.value} "
                    f"result={outcome.value} score={self.score.tally}")
        if self.round_log:
            log_round(self.round_log, result)
        return result

    def render_states(self) -> str:
        with self._lock:
            return self.policy.render_states()

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "counts": self.policy.snapshot(),
                "probabilities": self.policy.distribution(),
            }
