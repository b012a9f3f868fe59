# panel/clock.py
"""
Klokke-tick: HH:MM (24t) hvert intervall.
"""
from __future__ import annotations
import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional
from .models import ClockState
from .settings import TICK_INTERVAL_S, TZ

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(TZ)


def format_clock(dt: datetime) -> str:
    return dt.strftime("%H:%M")


class ClockTicker:
    def __init__(
        self,
        on_tick: Callable[[ClockState], None],
        *,
        interval: float = TICK_INTERVAL_S,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.on_tick = on_tick
        self.interval = float(interval)
        self._now = now
        self._task: Optional["asyncio.Task[None]"] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def current(self) -> ClockState:
        now = self._now() if self._now is not None else _now()
        return ClockState(formatted=format_clock(now))

    def start(self) -> None:
        """Emitterer én verdi med en gang. Kall mens aktiv er no-op."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._emit()
        self._task = loop.create_task(self._run())

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    def _emit(self) -> None:
        self.on_tick(self.current())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self._emit()
            except Exception:
                # én feilende lytter skal ikke stoppe klokka
                logger.exception("clock tick listener failed")
