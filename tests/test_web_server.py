import threading
import time

from fastapi.testclient import TestClient

from markov_rps import web_server
from markov_rps.web_server import app


def _client():
    return TestClient(app)


def test_health():
    assert _client().get("/health").json() == {"ok": True}


def test_config_lists_policies():
    body = _client().get("/api/config").json()
    assert set(body["policies"]) == {"markov", "random"}
    assert body["shorthand"]["r"] == "rock"


def test_round_tracks_session_score():
    client = _client()
    first = client.post("/api/round", json={"move": "r"})
    assert first.status_code == 200
    body = first.json()
    assert body["player"] == "rock"
    assert body["ai"] in {"rock", "paper", "scissors"}
    assert body["context"] == "Rock" + body["result"].title()
    assert body["rounds"] == 1

    second = client.post("/api/round", json={"move": "scissors"}).json()
    assert second["rounds"] == 2
    assert second["human_wins"] + second["computer_wins"] + second["draws"] == 2


def test_states_reflect_recorded_moves():
    client = _client()
    body = client.post("/api/round", json={"move": "p"}).json()
    client.post("/api/round", json={"move": "p"})
    states = client.get("/api/states").json()["states"]
    assert len(states) == 9
    assert states[body["context"]]["paper"] == 2


def test_bad_move_is_rejected():
    resp = _client().post("/api/round", json={"move": "lizard"})
    assert resp.status_code == 400


def test_bad_policy_is_rejected():
    resp = _client().post("/api/round", json={"move": "r", "policy": "psychic"})
    assert resp.status_code == 400


def test_policy_switch_and_reset():
    client = _client()
    client.post("/api/round", json={"move": "r"})
    body = client.post("/api/round", json={"move": "r", "policy": "random"}).json()
    assert body["policy"] == "random"
    assert body["rounds"] == 1
    assert client.post("/api/reset").json() == {"ok": True}
    assert client.get("/api/states").json() == {"policy": "random", "states": {}, "probabilities": {}}


def test_same_session_rounds_do_not_overlap(monkeypatch):
    client = _client()
    client.post("/api/round", json={"move": "r"})
    sess = web_server._sessions[client.cookies["sid"]]
    active = {"now": 0, "peak": 0}
    guard = threading.Lock()
    original = sess.policy.get_counter_move

    def slow_counter_move():
        with guard:
            active["now"] += 1
            active["peak"] = max(active["peak"], active["now"])
        time.sleep(0.1)
        try:
            return original()
        finally:
            with guard:
                active["now"] -= 1

    monkeypatch.setattr(sess.policy, "get_counter_move", slow_counter_move)
    threads = [threading.Thread(target=client.post, args=("/api/round",), kwargs={"json": {"move": "p"}})
               for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert active["peak"] == 1
    assert sess.score.rounds == 3


def test_states_include_probabilities():
    client = _client()
    body = client.post("/api/round", json={"move": "s"}).json()
    client.post("/api/round", json={"move": "s"})
    probs = client.get("/api/states").json()["probabilities"]
    assert probs[body["context"]]["scissors"] == 0.5


def test_zero_session_limit_still_serves(monkeypatch):
    monkeypatch.setitem(web_server.cfg, "web", {"max_sessions": 0})
    monkeypatch.setattr(web_server, "_sessions", {})
    resp = _client().get("/api/states")
    assert resp.status_code == 200
    assert len(web_server._sessions) == 1


def test_oldest_session_is_evicted(monkeypatch):
    monkeypatch.setitem(web_server.cfg, "web", {"max_sessions": 2})
    monkeypatch.setattr(web_server, "_sessions", {})
    clients = [_client() for _ in range(3)]
    for c in clients:
        c.post("/api/round", json={"move": "r"})
    sids = [c.cookies["sid"] for c in clients]
    assert list(web_server._sessions) == sids[1:]

    # an evicted client starts over
    body = clients[0].post("/api/round", json={"move": "r"}).json()
    assert body["rounds"] == 1


def test_serve_runs_uvicorn(monkeypatch):
    calls = []
    monkeypatch.setattr(web_server.uvicorn, "run", lambda *a, **kw: calls.append((a, kw)))
    monkeypatch.setitem(web_server.cfg, "web", {"host": "0.0.0.0", "port": 9001})
    web_server.serve()
    assert calls == [((app,), {"host": "0.0.0.0", "port": 9001})]
