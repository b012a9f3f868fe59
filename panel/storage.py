# File: panel/storage.py
# Purpose: Varig nøkkel/verdi-lager for tekstlisten + innlesing av config.json.
from __future__ import annotations
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union
from .settings import CONFIG_PATH

logger = logging.getLogger(__name__)

# ── defaults ──────────────────────────────────────────────────────────────────
_DEFAULTS: Dict[str, Any] = {
    "themes": ["classic", "halo", "lightBeam", "porsche", "midAutumn"],
    "currentTheme": "classic",
    "texts": [
        {"en": "Hello", "zh": "你好"},
        {"en": "Welcome", "zh": "欢迎"},
        {"en": "Have a nice day", "zh": "祝你有美好的一天"},
    ],
}


# ── nøkkel/verdi-lager ────────────────────────────────────────────────────────
class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Prosessintern variant, brukes i tester."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


def _atomic_write(path: str, data: Dict[str, Any]) -> None:
    """
    Atomisk skriving til path.
    - Skriver til tempfil i samme katalog, fsync, så os.replace.
    - Tempfila ryddes også ved feil.
    """
    dirpath = os.path.dirname(path) or "."
    os.makedirs(dirpath, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".store.", dir=dirpath)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2, sort_keys=True)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.unlink(tmp)


class JsonFileStore:
    """
    Flatt JSON-objekt på disk ({nøkkel: streng}).
    Uleselig eller ødelagt fil tolkes som tomt lager.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = str(path)

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.warning("store %s is unreadable; treating as empty", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        _atomic_write(self.path, data)


# ── config.json ───────────────────────────────────────────────────────────────
def get_defaults() -> Dict[str, Any]:
    return json.loads(json.dumps(_DEFAULTS))  # dyp kopi


def _deep_merge(dst: Dict[str, Any], src: Dict[str, Any]) -> Dict[str, Any]:
    for k, v in (src or {}).items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            _deep_merge(dst[k], v)
        else:
            dst[k] = v
    return dst


def _clean_texts(seq: Any) -> List[Dict[str, str]]:
    out: List[Dict[str, str]] = []
    if not isinstance(seq, list):
        return out
    for it in seq:
        if not isinstance(it, dict):
            continue
        en = it.get("en")
        zh = it.get("zh")
        if isinstance(en, str) and isinstance(zh, str) and en.strip() and zh.strip():
            out.append({"en": en.strip(), "zh": zh.strip()})
    return out


def _coerce(cfg: Dict[str, Any]) -> Dict[str, Any]:
    # themes: liste av ikke-tomme strenger, uten duplikater
    themes = cfg.get("themes")
    ids: List[str] = []
    if isinstance(themes, list):
        for t in themes:
            if isinstance(t, str) and t.strip() and t.strip() not in ids:
                ids.append(t.strip())
    if not ids:
        ids = list(_DEFAULTS["themes"])
    cfg["themes"] = ids
    # currentTheme må finnes i listen
    cur = cfg.get("currentTheme")
    cur = cur.strip() if isinstance(cur, str) else ""
    if cur not in ids:
        cur = ids[0]
    cfg["currentTheme"] = cur
    # texts: tom/ugyldig liste -> innebygd seed
    texts = _clean_texts(cfg.get("texts"))
    cfg["texts"] = texts or get_defaults()["texts"]
    return cfg


def load_app_config(path: Union[str, Path, None] = None) -> Dict[str, Any]:
    """Leses én gang ved oppstart. Manglende eller ødelagt fil gir defaults."""
    path = str(path or CONFIG_PATH)
    raw: Dict[str, Any] = {}
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                raw = loaded
        except (OSError, ValueError):
            logger.warning("config %s is unreadable; using defaults", path)
    cfg = get_defaults()
    # Lister erstattes, ikke flettes
    cfg = _deep_merge(cfg, raw)
    return _coerce(cfg)
