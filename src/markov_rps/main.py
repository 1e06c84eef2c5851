import argparse

from loguru import logger

from markov_rps.ai_policy import PredictionInvariantError
from markov_rps.config import configure_logging, ensure_outputs_dir, load_config
from markov_rps.game_logic import expand_move, is_quit
from markov_rps.session import MatchSession, get_round_log


def build_session(cfg: dict) -> MatchSession:
    ai_cfg = cfg.get("ai", {})
    log_cfg = cfg.get("logging", {})
    round_log = None
    if bool(log_cfg.get("round_log", False)):
        out_dir = ensure_outputs_dir(str(log_cfg.get("out_dir", "outputs")))
        round_log = get_round_log(out_dir)
    return MatchSession(
        policy=str(ai_cfg.get("policy", "markov")),
        seed=ai_cfg.get("seed"),
        round_log=round_log,
    )


def play_console(session: MatchSession, prompt: str = "r, p, s, q?", show_states: bool = True):
    """Read moves until 'q' or end of input, printing each round's result."""
    while True:
        print(prompt)
        try:
            line = input()
        except EOFError:
            break
        if is_quit(line):
            break

        human = expand_move(line)
        if human is None:
            logger.warning(f"Unrecognized input: {line!r}")
            print(f"Unrecognized move '{line.strip()}'. Use r, p, s or q.")
            continue

        try:
            result = session.play(human)
        except PredictionInvariantError:
            logger.exception("Predictor state is corrupt")
            raise

        if show_states:
            print(session.render_states() + "\n")
        print(result.summary())

    logger.info(f"Match over after {session.score.rounds} rounds, score {session.score.tally}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="markov-rps",
        description="Rock-Paper-Scissors against an adaptive Markov predictor",
    )
    parser.add_argument("--config", help="Path to a config.yaml (default: bundled)")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for reproducibility")
    parser.add_argument("--policy", choices=["markov", "random"], help="Computer policy")
    parser.add_argument("--hide-states", action="store_true", help="Don't dump context tables")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    cfg = load_config(args.config)
    configure_logging(cfg)

    ai_cfg = cfg.setdefault("ai", {})
    if args.seed is not None:
        ai_cfg["seed"] = args.seed
    if args.policy:
        ai_cfg["policy"] = args.policy

    ui_cfg = cfg.get("ui", {})
    show_states = bool(ui_cfg.get("show_states", True)) and not args.hide_states
    session = build_session(cfg)
    logger.info(f"Starting match, policy={session.policy_name} seed={ai_cfg.get('seed')}")
    play_console(session, str(ui_cfg.get("prompt", "r, p, s, q?")), show_states)


if __name__ == "__main__":
    main()
