# panel/settings.py
"""
Grunninnstillinger (baner, TZ og faste konstanter).
"""
from __future__ import annotations
import os
from pathlib import Path
from zoneinfo import ZoneInfo

PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONFIG_PATH = Path(os.environ.get("PANEL_CONFIG") or PROJECT_ROOT / "config.json")
STORE_PATH = Path(os.environ.get("PANEL_STORE") or PROJECT_ROOT / "data" / "store.json")
THEMES_DIR = Path(os.environ.get("PANEL_THEMES_DIR") or PROJECT_ROOT / "themes")
TZ = ZoneInfo(os.environ.get("PANEL_TZ") or "Asia/Shanghai")

# Nøkkelen er låst av kompatibilitet med lagrede lister
STORE_KEY = "savedTexts"

TICK_INTERVAL_S = 1.0
WARNING_TTL_S = 3.0
NOTICE_TTL_S = 5.0

EXPORT_FILENAME = "interactive-display.png"
SURFACE_SIZE = (1280, 720)

# Skrift for eksporten må dekke CJK; PANEL_FONT prøves først
FONT_PATH = os.environ.get("PANEL_FONT") or ""
FONT_CANDIDATES = tuple(
    p
    for p in (
        FONT_PATH,
        str(THEMES_DIR / "assets" / "fonts" / "NotoSansCJK-Regular.ttc"),
        "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
        "/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",
        "/usr/share/fonts/google-noto-cjk/NotoSansCJK-Regular.ttc",
        "/usr/share/fonts/truetype/wqy/wqy-microhei.ttc",
        "/usr/share/fonts/truetype/wqy/wqy-zenhei.ttc",
        "/usr/share/fonts/wenquanyi/wqy-microhei/wqy-microhei.ttc",
        "/usr/share/fonts/truetype/droid/DroidSansFallbackFull.ttf",
        "/System/Library/Fonts/PingFang.ttc",
        "C:/Windows/Fonts/msyh.ttc",
    )
    if p
)
