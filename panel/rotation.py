# File: panel/rotation.py
# Purpose: Tospråklig tekstliste med aktiv indeks; listen persisteres under savedTexts.
from __future__ import annotations
import json
import logging
from typing import Any, Iterable, List, Optional, Tuple
from .errors import ValidationError
from .models import RotationState, TextEntry
from .settings import STORE_KEY
from .storage import KeyValueStore

logger = logging.getLogger(__name__)


def _decode_entries(raw: Optional[str]) -> List[TextEntry]:
    """Manglende eller uparsbar verdi = ingen lagrede data."""
    if not raw:
        return []
    try:
        data: Any = json.loads(raw)
    except ValueError:
        logger.warning("persisted %s is not valid JSON; ignoring", STORE_KEY)
        return []
    if not isinstance(data, list):
        return []
    out: List[TextEntry] = []
    for idx, item in enumerate(data):
        entry = TextEntry.from_dict(item)
        if entry is None:
            logger.debug("dropping invalid persisted entry #%d", idx)
            continue
        out.append(entry)
    return out


class TextRotationStore:
    def __init__(self, store: KeyValueStore, seed: Iterable[TextEntry]) -> None:
        self._store = store
        self._seed = tuple(seed)
        if not self._seed:
            raise ValueError("seed list must not be empty")
        self._state = RotationState(entries=self._seed, active_index=0)

    @property
    def state(self) -> RotationState:
        return self._state

    @property
    def seed(self) -> Tuple[TextEntry, ...]:
        return self._seed

    def initialize(self) -> RotationState:
        persisted = _decode_entries(self._store.get(STORE_KEY))
        entries = tuple(persisted) if persisted else self._seed
        self._state = RotationState(entries=entries, active_index=0)
        return self._state

    def submit(self, primary: str, secondary: str) -> RotationState:
        en = (primary or "").strip()
        zh = (secondary or "").strip()
        if not en or not zh:
            raise ValidationError("Både engelsk og kinesisk tekst må fylles ut.")
        entries = self._state.entries + (TextEntry(primary=en, secondary=zh),)
        self._state = RotationState(entries=entries, active_index=len(entries) - 1)
        self._persist(entries)
        return self._state

    def advance(self) -> RotationState:
        entries = self._state.entries
        if not entries:
            raise RuntimeError("rotation has no entries")
        nxt = (self._state.active_index + 1) % len(entries)
        self._state = RotationState(entries=entries, active_index=nxt)
        return self._state

    def _persist(self, entries: Iterable[TextEntry]) -> None:
        # Fire-and-forget: hele listen skrives på nytt, så retry er idempotent
        payload = json.dumps([e.to_dict() for e in entries], ensure_ascii=False)
        try:
            self._store.set(STORE_KEY, payload)
        except OSError:
            logger.warning("could not persist %s", STORE_KEY, exc_info=True)
