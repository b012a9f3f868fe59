# File: panel/surface.py
# Purpose: Rasterflaten for panelet. Deler visningen i merkede regioner som
# tegnes på et gjennomsiktig RGBA-lag.
from __future__ import annotations
import logging
import math
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union
from PIL import Image, ImageColor, ImageDraw, ImageFilter, ImageFont
from .models import (
    DisplaySnapshot,
    Effect,
    HaloEffect,
    LightEffect,
    MidAutumnEffect,
    PorscheEffect,
)
from .settings import FONT_CANDIDATES, SURFACE_SIZE, THEMES_DIR
from .themes import active_effect

logger = logging.getLogger(__name__)

Box = Tuple[int, int, int, int]
RGBA = Tuple[int, int, int, int]

REGION_EFFECT = "effect"
REGION_CLOCK = "clock"
REGION_TEXT = "text"
REGION_CONTROLS = "controls"


@dataclass(frozen=True)
class Region:
    name: str
    box: Box
    paint: Callable[[Image.Image], None]


# ── små hjelpere ──────────────────────────────────────────────────────────────
def to_rgba(value: Any, fallback: str = "#000000", alpha: int = 255) -> RGBA:
    """CSS-farge -> RGBA. Uparsbar verdi gir fallback (logges)."""
    try:
        rgb = ImageColor.getrgb(str(value))
    except ValueError:
        logger.warning("unparsable color %r; using %s", value, fallback)
        rgb = ImageColor.getrgb(fallback)
    if len(rgb) == 4:
        return rgb  # type: ignore[return-value]
    return (rgb[0], rgb[1], rgb[2], alpha)


_MAX_FONT_PX = 1024


def _px(v: Any, d: int) -> int:
    # "48px", 48, "48" -> 48
    x: Optional[float] = None
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        x = float(v)
    elif isinstance(v, str):
        m = re.match(r"\s*(\d+(?:\.\d+)?)", v)
        if m:
            x = float(m.group(1))
    if x is None or not math.isfinite(x):
        return d
    return min(_MAX_FONT_PX, max(1, int(x)))


def find_font(candidates: Iterable[str] = FONT_CANDIDATES) -> Optional[str]:
    """Første skriftfil som finnes, eller None."""
    for path in candidates:
        if path and os.path.isfile(path):
            return path
    return None


@lru_cache(maxsize=64)
def load_font(path: Optional[str], size: int) -> ImageFont.ImageFont:
    # Pillows innebygde skrift mangler CJK-glyfer; brukes bare som siste utvei
    if path:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            logger.warning("font %s could not be loaded; using default", path)
    return ImageFont.load_default(size=size)


def _draw_centered(
    draw: ImageDraw.ImageDraw, center: Tuple[int, int], text: str, font, fill: RGBA
) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = center[0] - (right - left) // 2 - left
    y = center[1] - (bottom - top) // 2 - top
    draw.text((x, y), text, font=font, fill=fill)


def _style(primary: Mapping[str, Any], base: Mapping[str, Any], key: str, d: Any) -> Any:
    if key in primary:
        return primary[key]
    return base.get(key, d)


# ── flaten ────────────────────────────────────────────────────────────────────
class PanelSurface:
    def __init__(
        self,
        size: Tuple[int, int] = SURFACE_SIZE,
        *,
        assets_dir: Union[str, Path] = THEMES_DIR,
        font_path: Optional[str] = None,
    ) -> None:
        self.size = (int(size[0]), int(size[1]))
        self.assets_dir = Path(assets_dir)
        self.font_path = font_path if font_path is not None else find_font()
        if self.font_path is None:
            logger.warning("no CJK-capable font found; set PANEL_FONT")
        self._snapshot: Optional[DisplaySnapshot] = None

    def font(self, size: int) -> ImageFont.ImageFont:
        return load_font(self.font_path, size)

    @property
    def mounted(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> Optional[DisplaySnapshot]:
        return self._snapshot

    def attach(self, snapshot: DisplaySnapshot) -> None:
        self._snapshot = snapshot

    def detach(self) -> None:
        self._snapshot = None

    # Geometri er relativ til flatestørrelsen
    def _boxes(self) -> Mapping[str, Box]:
        w, h = self.size
        controls_top = int(h * 0.82)
        return {
            REGION_EFFECT: (0, 0, w, controls_top),
            REGION_CLOCK: (0, int(h * 0.04), w, int(h * 0.32)),
            REGION_TEXT: (0, int(h * 0.36), w, int(h * 0.76)),
            REGION_CONTROLS: (0, controls_top, w, h),
        }

    def background(self) -> RGBA:
        snap = self._snapshot
        if snap is None or snap.theme is None:
            return to_rgba("#000000")
        return to_rgba(snap.theme.background_color)

    def regions(self) -> List[Region]:
        """Regioner i tegnerekkefølge. Tom liste når flaten ikke er montert."""
        snap = self._snapshot
        if snap is None:
            return []
        boxes = self._boxes()
        out: List[Region] = []
        eff = active_effect(snap.theme, snap.theme_id)
        if eff is not None:
            out.append(
                Region(REGION_EFFECT, boxes[REGION_EFFECT], self._effect_painter(eff, boxes))
            )
        out.append(Region(REGION_CLOCK, boxes[REGION_CLOCK], self._clock_painter(snap, boxes[REGION_CLOCK])))
        out.append(Region(REGION_TEXT, boxes[REGION_TEXT], self._text_painter(snap, boxes[REGION_TEXT])))
        out.append(Region(REGION_CONTROLS, boxes[REGION_CONTROLS], self._controls_painter(boxes[REGION_CONTROLS])))
        return out

    # ── painters ──────────────────────────────────────────────────────────────
    def _clock_painter(self, snap: DisplaySnapshot, box: Box) -> Callable[[Image.Image], None]:
        style: Mapping[str, Any] = snap.theme.clock_style if snap.theme else {}
        text = snap.clock.formatted
        fill = to_rgba(style.get("color", "#ffffff"), "#ffffff")
        size = _px(style.get("fontSize"), int((box[3] - box[1]) * 0.7))

        def paint(layer: Image.Image) -> None:
            if not text:
                return
            draw = ImageDraw.Draw(layer)
            center = ((box[0] + box[2]) // 2, (box[1] + box[3]) // 2)
            _draw_centered(draw, center, text, self.font(size), fill)

        return paint

    def _text_painter(self, snap: DisplaySnapshot, box: Box) -> Callable[[Image.Image], None]:
        entry = snap.displayed
        base: Mapping[str, Any] = snap.theme.text_style if snap.theme else {}
        en_style: Mapping[str, Any] = snap.theme.english_text_style if snap.theme else {}
        zh_style: Mapping[str, Any] = snap.theme.chinese_text_style if snap.theme else {}
        height = box[3] - box[1]
        lines = []
        if entry is not None:
            lines = [
                (
                    entry.primary,
                    to_rgba(_style(en_style, base, "color", "#ffffff"), "#ffffff"),
                    _px(_style(en_style, base, "fontSize", None), int(height * 0.22)),
                ),
                (
                    entry.secondary,
                    to_rgba(_style(zh_style, base, "color", "#ffffff"), "#ffffff"),
                    _px(_style(zh_style, base, "fontSize", None), int(height * 0.2)),
                ),
            ]

        def paint(layer: Image.Image) -> None:
            draw = ImageDraw.Draw(layer)
            cx = (box[0] + box[2]) // 2
            for i, (text, fill, size) in enumerate(lines):
                cy = box[1] + int(height * (0.3 + 0.4 * i))
                _draw_centered(draw, (cx, cy), text, self.font(size), fill)

        return paint

    def _controls_painter(self, box: Box) -> Callable[[Image.Image], None]:
        # To inputfelt og tre knapper; ekskluderes alltid fra eksport
        def paint(layer: Image.Image) -> None:
            draw = ImageDraw.Draw(layer)
            x0, y0, x1, y1 = box
            pad = max(4, (y1 - y0) // 6)
            draw.rectangle(box, fill=(20, 20, 20, 220))
            slot = (x1 - x0 - pad * 6) // 5
            for i in range(5):
                left = x0 + pad + i * (slot + pad)
                rect = (left, y0 + pad, left + slot, y1 - pad)
                if i < 2:
                    draw.rectangle(rect, fill=(255, 255, 255, 255), outline=(120, 120, 120, 255))
                else:
                    draw.rounded_rectangle(rect, radius=pad, fill=(60, 110, 200, 255))

        return paint

    def _effect_painter(self, eff: Effect, boxes: Mapping[str, Box]) -> Callable[[Image.Image], None]:
        area = boxes[REGION_EFFECT]
        text_box = boxes[REGION_TEXT]
        cx = (text_box[0] + text_box[2]) // 2
        cy = (text_box[1] + text_box[3]) // 2

        def paint(layer: Image.Image) -> None:
            if isinstance(eff, HaloEffect):
                glow = Image.new("RGBA", layer.size, (0, 0, 0, 0))
                r = eff.glow_radius
                ImageDraw.Draw(glow).ellipse(
                    (cx - r, cy - r // 2, cx + r, cy + r // 2),
                    fill=to_rgba(eff.glow_color, "#ffffff", alpha=150),
                )
                glow = glow.filter(ImageFilter.GaussianBlur(max(1, r // 4)))
                layer.alpha_composite(glow)
            elif isinstance(eff, LightEffect):
                beam = Image.new("RGBA", layer.size, (0, 0, 0, 0))
                half = eff.beam_width // 2
                ImageDraw.Draw(beam).rectangle(
                    (cx - half, area[1], cx + half, area[3]),
                    fill=to_rgba(eff.beam_color, "#ffffff", alpha=90),
                )
                beam = beam.filter(ImageFilter.GaussianBlur(max(1, half // 3)))
                layer.alpha_composite(beam)
            elif isinstance(eff, PorscheEffect):
                y = text_box[3]
                ImageDraw.Draw(layer).rectangle(
                    (area[0], y, area[2], y + eff.stripe_width),
                    fill=to_rgba(eff.stripe_color, "#d5001c"),
                )
            elif isinstance(eff, MidAutumnEffect):
                self._paint_lantern(layer, eff, area)

        return paint

    def resolve_asset(self, name: str) -> Optional[Path]:
        """Descriptorer får bare lese filer under assets_dir."""
        root = self.assets_dir.resolve()
        path = (root / name).resolve()
        if not path.is_relative_to(root):
            return None
        return path

    def _paint_lantern(self, layer: Image.Image, eff: MidAutumnEffect, area: Box) -> None:
        if not eff.lantern_image:
            return
        path = self.resolve_asset(eff.lantern_image)
        if path is None:
            logger.warning("lantern image %s is outside %s; skipping", eff.lantern_image, self.assets_dir)
            return
        try:
            with Image.open(path) as src:
                lantern = src.convert("RGBA")
        except (OSError, ValueError):
            logger.warning("lantern image %s could not be opened; skipping", path)
            return
        target_h = max(1, int((area[3] - area[1]) * 0.4))
        scale = target_h / max(1, lantern.height)
        lantern = lantern.resize((max(1, int(lantern.width * scale)), target_h))
        alpha = lantern.getchannel("A").point(lambda a: int(a * eff.lantern_opacity))
        lantern.putalpha(alpha)
        pos = (max(0, area[2] - lantern.width - 16), area[1] + 16)
        layer.alpha_composite(lantern, dest=pos)
