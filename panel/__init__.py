# panel/__init__.py
from __future__ import annotations
from typing import Optional
from flask import Flask, request, Response
from .engine import DisplayStateManager
from .runtime import EngineRunner, build_engine
from .sse import StateChannel


def create_app(
    manager: Optional[DisplayStateManager] = None, *, start: bool = True
) -> Flask:
    app = Flask(__name__)

    # Motoren kjører på egen loop; hver ny tilstand går ut som SSE
    manager = manager or build_engine()
    channel = StateChannel()
    manager.subscribe(channel.publish)
    runner = EngineRunner(manager)
    app.extensions["panel"] = runner
    app.extensions["panel_events"] = channel
    if start:
        runner.start()
    # Registrer blueprints fra routes-pakken
    from .routes import pages_bp, api_bp
    app.register_blueprint(pages_bp)
    app.register_blueprint(api_bp)
    @app.after_request
    def apply_common_headers(resp: Response) -> Response:
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        path = (request.path or "").lower()
        if path.startswith("/api/") or path in ("/state", "/health"):
            resp.headers["Cache-Control"] = "no-store"
        return resp
    return app


def get_runner(app: Flask) -> EngineRunner:
    return app.extensions["panel"]


def get_channel(app: Flask) -> StateChannel:
    return app.extensions["panel_events"]
