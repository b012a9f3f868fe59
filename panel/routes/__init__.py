from __future__ import annotations
# Re-eksporter blueprint-objektene. Ingen @app-dekoratorer her.
from .pages import bp as pages_bp
from .api import bp as api_bp
__all__ = ["pages_bp", "api_bp"]
