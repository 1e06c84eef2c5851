import threading
import uuid
from typing import Dict, Optional, Tuple

import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from loguru import logger
from pydantic import BaseModel

from markov_rps.ai_policy import POLICIES
from markov_rps.config import configure_logging, load_config
from markov_rps.game_logic import MOVES, SHORTHAND, expand_move
from markov_rps.session import MatchSession


# ---------------- Session storage ----------------
_sessions: Dict[str, MatchSession] = {}
_sessions_lock = threading.Lock()
_SID_COOKIE = "sid"


def _default_policy() -> str:
    return str(cfg.get("web", {}).get("default_policy", "markov"))


def _new_session(policy: Optional[str] = None) -> MatchSession:
    return MatchSession(policy=policy or _default_policy(), seed=cfg.get("ai", {}).get("seed"))


def _store(sid: str, sess: MatchSession):
    # always room for at least the session being stored
    limit = max(1, int(cfg.get("web", {}).get("max_sessions", 1000)))
    while len(_sessions) >= limit:
        oldest = next(iter(_sessions))
        logger.debug(f"Evicting session {oldest}")
        del _sessions[oldest]
    _sessions[sid] = sess


def _get_or_create_session(req: Request, resp: Response) -> Tuple[str, MatchSession]:
    sid = req.cookies.get(_SID_COOKIE)
    with _sessions_lock:
        sess = _sessions.get(sid) if sid else None
        if sess is None:
            sid = uuid.uuid4().hex
            sess = _new_session()
            _store(sid, sess)
            resp.set_cookie(_SID_COOKIE, sid, httponly=False, samesite="lax")
    return sid, sess


def _replace_session(sid: str, policy: str) -> MatchSession:
    sess = _new_session(policy)
    with _sessions_lock:
        _sessions[sid] = sess
    return sess


# ---------------- Request/Response models ----------------
class RoundRequest(BaseModel):
    move: str
    policy: Optional[str] = None


class RoundResponse(BaseModel):
    player: str
    ai: str
    result: str
    context: Optional[str]
    human_wins: int
    computer_wins: int
    draws: int
    rounds: int
    policy: str


# ---------------- App init ----------------
cfg = load_config()
configure_logging(cfg)
app = FastAPI(title="Markov RPS Web")


@app.get("/api/config")
def api_config():
    return {
        "policies": list(POLICIES),
        "default_policy": _default_policy(),
        "moves": [m.value for m in MOVES],
        "shorthand": {k: v.value for k, v in SHORTHAND.items()},
    }


@app.post("/api/round", response_model=RoundResponse)
def api_round(req: Request, response: Response, rr: RoundRequest):
    sid, sess = _get_or_create_session(req, response)

    human = expand_move(rr.move)
    if human is None:
        raise HTTPException(status_code=400, detail=f"Unrecognized move: {rr.move!r}")

    # switching policy starts the match over
    if rr.policy:
        wanted = rr.policy.lower()
        if wanted not in POLICIES:
            raise HTTPException(status_code=400, detail=f"Unknown policy: {rr.policy!r}")
        if wanted != sess.policy_name:
            sess = _replace_session(sid, wanted)

    result = sess.play(human)
    return RoundResponse(
        player=result.human.value,
        ai=result.computer.value,
        result=result.outcome.value,
        context=result.context,
        human_wins=result.score.human_wins,
        computer_wins=result.score.computer_wins,
        draws=result.score.draws,
        rounds=result.score.rounds,
        policy=sess.policy_name,
    )


@app.get("/api/states")
def api_states(req: Request, response: Response):
    _sid, sess = _get_or_create_session(req, response)
    snap = sess.snapshot()
    return {"policy": sess.policy_name, "states": snap["counts"],
            "probabilities": snap["probabilities"]}


@app.post("/api/reset")
def api_reset(req: Request, response: Response):
    sid, sess = _get_or_create_session(req, response)
    _replace_session(sid, sess.policy_name)
    return {"ok": True}


# Simple health check
@app.get("/health")
def health():
    return {"ok": True}


def serve():
    web_cfg = cfg.get("web", {})
    host = str(web_cfg.get("host", "127.0.0.1"))
    port = int(web_cfg.get("port", 8000))
    logger.info(f"Serving on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    serve()
