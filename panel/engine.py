# File: panel/engine.py
# Purpose: DisplayStateManager: komponerer tema, tekstrotasjon og klokke til én
# visningstilstand. All tilstand eies av én event-loop.
from __future__ import annotations
import asyncio
import logging
from typing import Callable, List, Optional, Tuple
from .clock import ClockTicker
from .errors import CaptureError, ThemeLoadError, ValidationError
from .models import (
    ClockState,
    DisplaySnapshot,
    ThemeDescriptor,
    ThemeStatus,
    WarningState,
)
from .rotation import TextRotationStore
from .settings import NOTICE_TTL_S, TICK_INTERVAL_S, WARNING_TTL_S
from .snapshot import DEFAULT_EXCLUDE, RasterImage, SnapshotExporter
from .surface import PanelSurface
from .themes import ThemeStore

logger = logging.getLogger(__name__)

Listener = Callable[[DisplaySnapshot], None]


class _TransientMessage:
    """Melding med begrenset levetid; ny melding starter timeren på nytt."""

    def __init__(self, ttl: float, on_change: Callable[[], None]) -> None:
        self.ttl = float(ttl)
        self.state = WarningState()
        self._on_change = on_change
        self._handle: Optional[asyncio.TimerHandle] = None

    def set(self, message: str) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self.state = WarningState(message=message, expires_at=loop.time() + self.ttl)
        self._handle = loop.call_later(self.ttl, self._expire)

    def clear(self) -> None:
        self.cancel()
        self.state = WarningState()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self) -> None:
        self._handle = None
        self.state = WarningState()
        self._on_change()


class DisplayStateManager:
    def __init__(
        self,
        themes: ThemeStore,
        rotation: TextRotationStore,
        *,
        default_theme: str,
        exporter: Optional[SnapshotExporter] = None,
        surface: Optional[PanelSurface] = None,
        clock: Optional[ClockTicker] = None,
        tick_interval: float = TICK_INTERVAL_S,
        warning_ttl: float = WARNING_TTL_S,
        notice_ttl: float = NOTICE_TTL_S,
    ) -> None:
        self.themes = themes
        self.rotation = rotation
        self.exporter = exporter or SnapshotExporter()
        self.surface = surface or PanelSurface()
        self.clock = clock or ClockTicker(self._on_tick, interval=tick_interval)
        self.clock.on_tick = self._on_tick
        self._clock_state = ClockState()
        self._theme_id = default_theme
        self._descriptor: Optional[ThemeDescriptor] = None
        self._status = ThemeStatus.UNINITIALIZED
        self._generation = 0
        self._warning = _TransientMessage(warning_ttl, self._publish)
        self._notice = _TransientMessage(notice_ttl, self._publish)
        self._listeners: List[Listener] = []
        self._started = False
        self._torn_down = False

    # ── livssyklus ────────────────────────────────────────────────────────────
    def start(self) -> "asyncio.Task[None]":
        """Kjøres på loopen. Returnerer tasken for første temalasting."""
        if self._started:
            raise RuntimeError("manager already started")
        self.rotation.initialize()
        self._started = True
        self.clock.start()
        return self.change_theme(self._theme_id)

    def teardown(self) -> None:
        # Øk generasjonen så eventuelle lastinger i flukt blir virkningsløse
        self._torn_down = True
        self._generation += 1
        self.clock.stop()
        self._warning.cancel()
        self._notice.cancel()
        self.surface.detach()

    @property
    def status(self) -> ThemeStatus:
        return self._status

    @property
    def theme_id(self) -> str:
        return self._theme_id

    def theme_ids(self) -> Tuple[str, ...]:
        return tuple(self.themes.ids())

    # ── lyttere ───────────────────────────────────────────────────────────────
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> DisplaySnapshot:
        return DisplaySnapshot(
            clock=self._clock_state,
            rotation=self.rotation.state,
            theme=self._descriptor,
            theme_id=self._theme_id,
            status=self._status,
            warning=self._warning.state,
            notice=self._notice.state,
            themes=self.theme_ids(),
        )

    def _publish(self) -> None:
        if self._torn_down:
            return
        snap = self.snapshot()
        if self._started:
            # render-pass: flaten holder alltid siste tilstand
            self.surface.attach(snap)
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("state listener failed")

    # ── klokke ────────────────────────────────────────────────────────────────
    def _on_tick(self, state: ClockState) -> None:
        if state == self._clock_state:
            return
        self._clock_state = state
        self._publish()

    # ── tema ──────────────────────────────────────────────────────────────────
    def change_theme(self, theme_id: str) -> "asyncio.Task[None]":
        if self._torn_down:
            raise RuntimeError("manager is torn down")
        self._generation += 1
        generation = self._generation
        self._theme_id = theme_id
        self._status = ThemeStatus.LOADING
        task = asyncio.get_running_loop().create_task(self._load(theme_id, generation))
        self._publish()
        return task

    def _is_current(self, generation: int) -> bool:
        return not self._torn_down and generation == self._generation

    async def _load(self, theme_id: str, generation: int) -> None:
        try:
            descriptor = await self.themes.load(theme_id)
        except ThemeLoadError as e:
            if not self._is_current(generation):
                logger.debug("ignoring stale failure for theme %s", theme_id)
                return
            logger.warning("theme load failed: %s", e)
            self._notice.set(f"Kunne ikke laste tema «{theme_id}».")
            if self._descriptor is not None:
                # forrige descriptor gjelder fortsatt, også som aktiv identitet
                self._theme_id = self._descriptor.theme_id
                self._status = ThemeStatus.READY
            self._publish()
            return
        if not self._is_current(generation):
            logger.debug("discarding stale result for theme %s", theme_id)
            return
        self._descriptor = descriptor
        self._status = ThemeStatus.READY
        self._notice.clear()
        self._publish()

    # ── tekst ─────────────────────────────────────────────────────────────────
    def submit_text(self, primary: str, secondary: str) -> bool:
        try:
            self.rotation.submit(primary, secondary)
        except ValidationError as e:
            self._warning.set(str(e))
            self._publish()
            return False
        self._warning.clear()
        self._publish()
        return True

    def next_text(self) -> DisplaySnapshot:
        self.rotation.advance()
        self._warning.clear()
        self._publish()
        return self.snapshot()

    # ── eksport ───────────────────────────────────────────────────────────────
    async def export_snapshot(self) -> RasterImage:
        try:
            return await self.exporter.capture(self.surface, DEFAULT_EXCLUDE)
        except CaptureError as e:
            logger.warning("export failed: %s", e)
            if not self._torn_down:
                self._notice.set("Eksport feilet: visningen er ikke klar.")
                self._publish()
            raise
