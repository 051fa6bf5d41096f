from __future__ import annotations

import os
import threading
import uuid
from typing import Dict, Optional

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS

from field_engine.loader import DEFAULT_CACHE_SECONDS, PuzzleLibrary
from field_engine.models import LeaderboardEntry
from field_engine.puzzle import PuzzleModel
from field_engine.results import ResultStore, share_text
from field_engine.session import DEFAULT_DEBOUNCE_SECONDS, GameSession


class NotFound(Exception):
    pass


class SessionRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: Dict[str, GameSession] = {}

    def add(self, session: GameSession) -> str:
        sid = uuid.uuid4().hex
        with self._lock:
            self._sessions[sid] = session
        return sid

    def get(self, sid: str) -> GameSession:
        with self._lock:
            s = self._sessions.get(sid)
        if s is None:
            raise NotFound(f"Unknown session {sid}")
        return s

    def remove(self, sid: str) -> None:
        with self._lock:
            s = self._sessions.pop(sid, None)
        if s is None:
            raise NotFound(f"Unknown session {sid}")
        s.close()


def _default_csv_path() -> Optional[str]:
    path = os.environ.get("FIELD_PUZZLE_CSV")
    if path:
        return path
    local = os.path.join(os.getcwd(), "puzzle_data.csv")
    return local if os.path.exists(local) else None


def _library() -> PuzzleLibrary:
    return current_app.extensions["field_puzzles"]


def _sessions() -> SessionRegistry:
    return current_app.extensions["field_sessions"]


def _results() -> ResultStore:
    return current_app.extensions["field_results"]


def _puzzle_for(date: Optional[str]) -> PuzzleModel:
    lib = _library()
    if not date:
        return lib.latest()
    puzzle = lib.get(date)
    if puzzle is None:
        raise NotFound(f"No puzzle for {date}")
    return puzzle


def _json_object(silent: bool = False) -> dict:
    data = request.get_json(silent=silent, force=not silent)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("JSON object expected")
    return data


def _cell_arg(data: dict, key: str) -> int:
    v = data.get(key)
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"'{key}' must be an integer")
    return v


def _entry_json(e: LeaderboardEntry) -> dict:
    return {
        "rank": e.rank,
        "date": e.date,
        "userId": e.user_id,
        "displayName": e.display_name,
        "moves": e.moves,
        "hintsUsed": e.hints_used,
        "elapsedMs": e.elapsed_ms,
        "score": e.score,
    }


def create_app(config: Optional[dict] = None) -> Flask:
    app = Flask(__name__)
    app.config.update(
        PUZZLE_CSV_PATH=_default_csv_path(),
        PUZZLE_CACHE_SECONDS=DEFAULT_CACHE_SECONDS,
        EVALUATION_DEBOUNCE_SECONDS=DEFAULT_DEBOUNCE_SECONDS,
        REQUIRE_UNIQUE_SOLUTION=False,
    )
    if config:
        app.config.update(config)
    CORS(app)

    app.extensions["field_puzzles"] = PuzzleLibrary(
        app.config["PUZZLE_CSV_PATH"],
        ttl_seconds=app.config["PUZZLE_CACHE_SECONDS"],
        require_unique=app.config["REQUIRE_UNIQUE_SOLUTION"],
    )
    app.extensions["field_sessions"] = SessionRegistry()
    app.extensions["field_results"] = ResultStore()

    @app.errorhandler(NotFound)
    def not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(ValueError)
    def bad_request(e):
        # PuzzleDataError is a ValueError too
        app.logger.warning("bad request: %s", e)
        return jsonify({"error": str(e)}), 400

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    @app.get("/puzzles")
    def list_puzzles():
        return jsonify({"dates": _library().dates()})

    @app.post("/puzzles/reload")
    def reload_puzzles():
        lib = _library()
        lib.invalidate()
        dates = lib.dates()
        app.logger.info("puzzle data reloaded, %d puzzles", len(dates))
        return jsonify({"dates": dates})

    @app.get("/puzzles/<date>")
    def get_puzzle(date):
        return jsonify(_puzzle_for(date).to_record())

    @app.post("/sessions")
    def create_session():
        data = _json_object(silent=True)
        puzzle = _puzzle_for(data.get("date"))
        session = GameSession(puzzle, debounce_seconds=current_app.config["EVALUATION_DEBOUNCE_SECONDS"])
        sid = _sessions().add(session)
        app.logger.info("session %s started on puzzle %s", sid, puzzle.date)
        return jsonify({"id": sid, "state": session.snapshot()}), 201

    @app.get("/sessions/<sid>")
    def session_state(sid):
        session = _sessions().get(sid)
        session.flush()
        return jsonify({"id": sid, "state": session.snapshot()})

    @app.delete("/sessions/<sid>")
    def delete_session(sid):
        _sessions().remove(sid)
        return jsonify({"ok": True})

    @app.post("/sessions/<sid>/click")
    def click(sid):
        session = _sessions().get(sid)
        data = _json_object()
        applied = session.click(_cell_arg(data, "row"), _cell_arg(data, "col"))
        return jsonify({"applied": applied, "state": session.snapshot()})

    @app.post("/sessions/<sid>/undo")
    def undo(sid):
        session = _sessions().get(sid)
        applied = session.undo()
        return jsonify({"applied": applied, "state": session.snapshot()})

    @app.post("/sessions/<sid>/reset")
    def reset(sid):
        session = _sessions().get(sid)
        session.reset()
        return jsonify({"applied": True, "state": session.snapshot()})

    @app.post("/sessions/<sid>/hint")
    def hint(sid):
        session = _sessions().get(sid)
        h = session.request_hint()
        payload = None
        if h is not None:
            payload = {
                "type": h.hint_type.value,
                "cells": [list(rc) for rc in h.cells],
                "kind": h.message_kind.value,
                "message": h.message,
            }
        return jsonify({"hint": payload, "state": session.snapshot()})

    @app.post("/sessions/<sid>/load")
    def load(sid):
        session = _sessions().get(sid)
        data = _json_object()
        session.load_puzzle(_puzzle_for(data.get("date")))
        return jsonify({"state": session.snapshot()})

    @app.post("/sessions/<sid>/submit")
    def submit(sid):
        session = _sessions().get(sid)
        session.flush()
        data = _json_object()
        user_id = str(data.get("user_id") or "").strip()
        if not user_id:
            raise ValueError("'user_id' is required")
        if session.result is None:
            raise ValueError("Puzzle is not completed")

        store = _results()
        if not store.submit(user_id, str(data.get("display_name") or user_id), session.result):
            return jsonify({"error": "Result already recorded for this puzzle"}), 409
        return jsonify({
            "stored": True,
            "rank": store.user_rank(user_id, session.result.date),
            "share": share_text(session.result),
        })

    @app.get("/leaderboard/<date>")
    def leaderboard(date):
        limit = request.args.get("limit", type=int)
        entries = _results().leaderboard(date, limit)
        return jsonify({"date": date, "entries": [_entry_json(e) for e in entries]})

    @app.get("/users/<user_id>/results")
    def user_results(user_id):
        history = _results().user_history(user_id)
        return jsonify({"userId": user_id, "results": [_entry_json(e) for e in history]})

    return app


app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000, debug=True)
