# File: panel/runtime.py
# Purpose: Bygger motoren og kjører den på en egen event-loop-tråd, slik at
# Flask-trådene kan kalle inn uten å dele tilstand.
from __future__ import annotations
import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union
from .engine import DisplayStateManager
from .models import TextEntry
from .rotation import TextRotationStore
from .settings import STORE_PATH, SURFACE_SIZE, THEMES_DIR
from .storage import JsonFileStore, KeyValueStore, load_app_config
from .surface import PanelSurface
from .themes import DirectoryResourceProvider, ResourceProvider, ThemeRegistry, ThemeStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_engine(
    cfg: Optional[Dict[str, Any]] = None,
    *,
    store: Optional[KeyValueStore] = None,
    provider: Optional[ResourceProvider] = None,
    themes_dir: Union[str, Path] = THEMES_DIR,
    **manager_kwargs: Any,
) -> DisplayStateManager:
    """Komposisjonsrot: config + lager + temaleverandør -> DisplayStateManager."""
    cfg = cfg if cfg is not None else load_app_config()
    seed = [TextEntry(primary=t["en"], secondary=t["zh"]) for t in cfg["texts"]]
    registry = ThemeRegistry.from_provider(
        cfg["themes"], provider or DirectoryResourceProvider(themes_dir)
    )
    manager_kwargs.setdefault("surface", PanelSurface(SURFACE_SIZE, assets_dir=themes_dir))
    return DisplayStateManager(
        ThemeStore(registry),
        TextRotationStore(store if store is not None else JsonFileStore(STORE_PATH), seed),
        default_theme=cfg["currentTheme"],
        **manager_kwargs,
    )


class EngineRunner:
    """Eier event-loopen. Alle kall mot motoren går via call()/run()."""

    def __init__(self, manager: DisplayStateManager) -> None:
        self.manager = manager
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    def start(self) -> None:
        if self._thread is not None:
            return
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop, name="panel-engine", daemon=True
        )
        self._thread.start()
        self.call(self.manager.start)

    def _run_loop(self) -> None:
        assert self.loop is not None
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def run(self, coro: Awaitable[T], timeout: Optional[float] = None) -> T:
        if self.loop is None:
            raise RuntimeError("engine loop is not running")
        fut = asyncio.run_coroutine_threadsafe(coro, self.loop)  # type: ignore[arg-type]
        return fut.result(timeout)

    def call(self, fn: Callable[..., T], *args: Any, timeout: Optional[float] = None) -> T:
        async def invoke() -> T:
            return fn(*args)

        return self.run(invoke(), timeout)

    def stop(self) -> None:
        if self._thread is None or self.loop is None:
            return
        self.call(self.manager.teardown)
        self.run(_cancel_pending())
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=2)
        self.loop.close()
        self._thread = None
        self.loop = None


async def _cancel_pending() -> None:
    current = asyncio.current_task()
    tasks = [t for t in asyncio.all_tasks() if t is not current]
    for t in tasks:
        t.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
