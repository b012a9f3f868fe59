# File: panel/routes/api.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict
from flask import Blueprint, request, jsonify, Response, current_app
from ..errors import CaptureError
from ..runtime import EngineRunner
from ..settings import TZ

bp = Blueprint("api", __name__, url_prefix="/api")

# ── utils ──────────────────────────────────────────────────────────────────────
def _now_iso() -> str:
    return datetime.now(TZ).isoformat()

def _runner() -> EngineRunner:
    return current_app.extensions["panel"]

def _json_ok(payload: Dict[str, Any], status: int = 200) -> Response:
    resp = jsonify({"ok": True, "server_time": _now_iso(), **payload})
    resp.status_code = status
    resp.headers["Cache-Control"] = "no-store"
    return resp

def _json_err(
    message: str,
    *,
    status: int = 400,
    code: str | None = None,
    extra: Dict[str, Any] | None = None,
) -> Response:
    data = {"ok": False, "error": message, "server_time": _now_iso()}
    if code:
        data["code"] = code
    if extra:
        data.update(extra)
    resp = jsonify(data)
    resp.status_code = status
    resp.headers["Cache-Control"] = "no-store"
    return resp

def _is_json_request() -> bool:
    ctype = (request.headers.get("Content-Type") or "").lower()
    return "application/json" in ctype or request.is_json

def _str_field(data: Dict[str, Any], key: str) -> str:
    v = data.get(key)
    return v if isinstance(v, str) else ""

# ── config/tema ────────────────────────────────────────────────────────────────
@bp.get("/config")
def api_get_config() -> Response:
    try:
        runner = _runner()
        manager = runner.manager
        themes = runner.call(manager.theme_ids)
        seed = [e.to_dict() for e in manager.rotation.seed]
        return _json_ok(
            {"themes": list(themes), "currentTheme": runner.call(lambda: manager.theme_id), "texts": seed}
        )
    except Exception:
        current_app.logger.exception("GET /api/config failed")
        return _json_err("internal error", status=500, code="internal_error")

@bp.get("/themes")
def api_themes() -> Response:
    runner = _runner()
    snap = runner.call(runner.manager.snapshot)
    return _json_ok(
        {"themes": list(snap.themes), "active": snap.theme_id, "status": snap.status.value}
    )

@bp.post("/theme")
def api_change_theme() -> Response:
    """
    Bytter tema. Lastingen skjer asynkront; svaret kommer før den er ferdig.
    Body: {"theme": "<id>"}
    """
    if not _is_json_request():
        return _json_err(
            "expected application/json", status=415, code="unsupported_media_type"
        )
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return _json_err("payload must be a JSON object", status=400, code="bad_request")
    theme_id = _str_field(data, "theme").strip()
    runner = _runner()
    try:
        if theme_id not in runner.call(runner.manager.theme_ids):
            return _json_err(f"unknown theme '{theme_id}'", status=404, code="unknown_theme")
        runner.call(runner.manager.change_theme, theme_id)
        snap = runner.call(runner.manager.snapshot)
        return _json_ok({"state": snap.to_dict()}, status=202)
    except Exception:
        current_app.logger.exception("POST /api/theme failed")
        return _json_err("internal error", status=500, code="internal_error")

# ── tekster ────────────────────────────────────────────────────────────────────
@bp.post("/texts")
def api_submit_text() -> Response:
    """Body: {"en": "...", "zh": "..."}"""
    if not _is_json_request():
        return _json_err(
            "expected application/json", status=415, code="unsupported_media_type"
        )
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return _json_err("payload must be a JSON object", status=400, code="bad_request")
    runner = _runner()
    try:
        accepted = runner.call(
            runner.manager.submit_text, _str_field(data, "en"), _str_field(data, "zh")
        )
        snap = runner.call(runner.manager.snapshot)
    except Exception:
        current_app.logger.exception("POST /api/texts failed")
        return _json_err("internal error", status=500, code="internal_error")
    if not accepted:
        return _json_err(
            snap.warning.message,
            status=400,
            code="validation_error",
            extra={"state": snap.to_dict()},
        )
    return _json_ok({"state": snap.to_dict()})

@bp.post("/texts/next")
def api_next_text() -> Response:
    runner = _runner()
    try:
        snap = runner.call(runner.manager.next_text)
        return _json_ok({"state": snap.to_dict()})
    except Exception:
        current_app.logger.exception("POST /api/texts/next failed")
        return _json_err("internal error", status=500, code="internal_error")

# ── eksport ────────────────────────────────────────────────────────────────────
@bp.get("/export")
def api_export() -> Response:
    """PNG som vedlegg, eller {"data_uri": ...} med ?format=datauri."""
    runner = _runner()
    try:
        image = runner.run(runner.manager.export_snapshot())
    except CaptureError as e:
        return _json_err(str(e), status=409, code="capture_error")
    except Exception:
        current_app.logger.exception("GET /api/export failed")
        return _json_err("internal error", status=500, code="internal_error")
    if (request.args.get("format") or "").lower() == "datauri":
        return _json_ok({"filename": image.filename, "data_uri": image.data_uri()})
    resp = Response(image.data, mimetype=image.media_type)
    resp.headers["Content-Disposition"] = f'attachment; filename="{image.filename}"'
    resp.headers["Cache-Control"] = "no-store"
    return resp
