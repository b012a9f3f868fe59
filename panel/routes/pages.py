# panel/routes/pages.py
"""
Lettvekts status-endepunkter: helse, tilstand og SSE-strøm.
API-ansvar ligger i routes/api.py.
"""
from __future__ import annotations
from flask import Blueprint, jsonify, Response, current_app
from ..sse import sse_stream
bp = Blueprint("pages", __name__)
def _json_nostore(payload, status: int = 200) -> Response:
    resp = jsonify(payload)
    resp.status_code = status
    resp.headers["Cache-Control"] = "no-store"
    return resp
@bp.get("/health")
def health():
    runner = current_app.extensions["panel"]
    return _json_nostore({"ok": True, "engine": runner.running})
@bp.get("/state")
def state_snapshot():
    runner = current_app.extensions["panel"]
    snap = runner.call(runner.manager.snapshot)
    return _json_nostore(snap.to_dict())
@bp.get("/events")
def events():
    return sse_stream(current_app.extensions["panel_events"])
