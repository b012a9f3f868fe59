from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict

import pytest

from panel.clock import ClockTicker
from panel.errors import ThemeLoadError
from panel.runtime import build_engine
from panel.settings import TZ
from panel.storage import MemoryStore
from panel.surface import PanelSurface
from panel.themes import MappingResourceProvider

DESCRIPTORS: Dict[str, Dict[str, Any]] = {
    "classic": {
        "backgroundColor": "#102030",
        "clockStyle": {"color": "#ffffff"},
        "textStyle": {"color": "#eeeeee"},
    },
    "halo": {
        "backgroundColor": "#000000",
        "clockStyle": {},
        "textStyle": {},
        "haloEffect": {"glowColor": "#ffcc00", "glowRadius": 80, "enabled": True},
    },
    "porsche": {
        "backgroundColor": "#111111",
        "clockStyle": {},
        "textStyle": {},
        "porscheEffect": {"stripeColor": "#d5001c", "stripeWidth": 6, "enabled": True},
    },
}

CFG: Dict[str, Any] = {
    "themes": ["classic", "halo", "porsche", "missing"],
    "currentTheme": "classic",
    "texts": [{"en": "Hello", "zh": "你好"}],
}

FIXED_NOW = datetime(2025, 9, 10, 9, 5, 30, tzinfo=TZ)


class GatedProvider:
    """Leverandør der hver lasting kan holdes igjen til testen slipper den."""

    def __init__(self, descriptors: Dict[str, Any]) -> None:
        self.descriptors = descriptors
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    def hold(self, theme_id: str) -> asyncio.Event:
        ev = asyncio.Event()
        self.gates[theme_id] = ev
        return ev

    async def fetch(self, theme_id: str) -> Any:
        self.calls.append(theme_id)
        ev = self.gates.get(theme_id)
        if ev is not None:
            await ev.wait()
        if theme_id not in self.descriptors:
            raise ThemeLoadError(theme_id, "descriptor not found")
        return self.descriptors[theme_id]


@pytest.fixture
def provider() -> GatedProvider:
    return GatedProvider(DESCRIPTORS)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_manager(provider, store):
    def factory(**kwargs):
        kwargs.setdefault(
            "clock", ClockTicker(lambda s: None, interval=3600, now=lambda: FIXED_NOW)
        )
        kwargs.setdefault("surface", PanelSurface((320, 180)))
        return build_engine(dict(CFG), store=store, provider=provider, **kwargs)

    return factory


@pytest.fixture
def app():
    """Flask-app med motoren på egen loop; stoppes etter testen."""
    from panel import create_app, get_runner

    manager = build_engine(
        dict(CFG),
        store=MemoryStore(),
        provider=MappingResourceProvider(DESCRIPTORS),
        clock=ClockTicker(lambda s: None, interval=3600, now=lambda: FIXED_NOW),
        surface=PanelSurface((320, 180)),
    )
    app = create_app(manager)
    app.config.update(TESTING=True)
    yield app
    get_runner(app).stop()


@pytest.fixture
def client(app):
    return app.test_client()
