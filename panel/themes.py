# File: panel/themes.py
# Purpose: Tema-register, ressursleverandører og parsing/validering av descriptorer.
from __future__ import annotations
import asyncio
import json
import logging
import math
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Union
from .errors import ThemeLoadError
from .models import (
    Effect,
    EffectKind,
    HaloEffect,
    LightEffect,
    MidAutumnEffect,
    PorscheEffect,
    ThemeDescriptor,
)

logger = logging.getLogger(__name__)

ThemeLoader = Callable[[], Awaitable[Any]]


# ── ressursleverandører ───────────────────────────────────────────────────────
class ResourceProvider(Protocol):
    async def fetch(self, theme_id: str) -> Any: ...


class DirectoryResourceProvider:
    """Leser <root>/<theme_id>.json utenfor event-loopen."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def _read(self, theme_id: str) -> Any:
        path = self.root / f"{theme_id}.json"
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise ThemeLoadError(theme_id, f"descriptor not found: {path.name}")
        except (OSError, ValueError) as e:
            raise ThemeLoadError(theme_id, f"unreadable descriptor: {e}")

    async def fetch(self, theme_id: str) -> Any:
        return await asyncio.to_thread(self._read, theme_id)


class MappingResourceProvider:
    def __init__(self, descriptors: Mapping[str, Any]) -> None:
        self._descriptors = dict(descriptors)

    async def fetch(self, theme_id: str) -> Any:
        if theme_id not in self._descriptors:
            raise ThemeLoadError(theme_id, "descriptor not found")
        # kopi, så kallere ikke deler muterbar tilstand
        return json.loads(json.dumps(self._descriptors[theme_id]))


# ── register ──────────────────────────────────────────────────────────────────
class ThemeRegistry:
    """Eksplisitt kobling tema-id -> laster. Settet er statisk oppregnbart."""

    def __init__(self) -> None:
        self._loaders: Dict[str, ThemeLoader] = {}

    @classmethod
    def from_provider(
        cls, theme_ids: Iterable[str], provider: ResourceProvider
    ) -> "ThemeRegistry":
        reg = cls()
        for tid in theme_ids:
            reg.register(tid, _bind(provider, tid))
        return reg

    def register(self, theme_id: str, loader: ThemeLoader) -> None:
        self._loaders[theme_id] = loader

    def ids(self) -> List[str]:
        return list(self._loaders)

    def __contains__(self, theme_id: object) -> bool:
        return theme_id in self._loaders

    def loader(self, theme_id: str) -> ThemeLoader:
        try:
            return self._loaders[theme_id]
        except KeyError:
            raise ThemeLoadError(theme_id, "unknown theme") from None


def _bind(provider: ResourceProvider, theme_id: str) -> ThemeLoader:
    def load() -> Awaitable[Any]:
        return provider.fetch(theme_id)

    return load


# ── parsing ───────────────────────────────────────────────────────────────────
# Pikselparametre begrenses til noe flaten kan tegne
_MAX_PX = 4096.0


def _num(v: Any, d: float, lo: float = 0.0, hi: Optional[float] = None) -> float:
    try:
        x = float(v)
        if not math.isfinite(x):
            x = float(d)
    except (TypeError, ValueError):
        x = float(d)
    x = max(lo, x)
    return min(hi, x) if hi is not None else x


def _str(v: Any, d: str) -> str:
    return v.strip() if isinstance(v, str) and v.strip() else d


def _parse_effect(kind: EffectKind, block: Dict[str, Any]) -> Effect:
    # kun bokstavelig true slår på effekten
    enabled = block.get("enabled") is True
    if kind is EffectKind.HALO:
        return HaloEffect(
            enabled=enabled,
            glow_color=_str(block.get("glowColor"), HaloEffect.glow_color),
            glow_radius=int(_num(block.get("glowRadius"), HaloEffect.glow_radius, hi=_MAX_PX)),
        )
    if kind is EffectKind.LIGHT:
        return LightEffect(
            enabled=enabled,
            beam_color=_str(block.get("beamColor"), LightEffect.beam_color),
            beam_width=int(_num(block.get("beamWidth"), LightEffect.beam_width, hi=_MAX_PX)),
        )
    if kind is EffectKind.PORSCHE:
        return PorscheEffect(
            enabled=enabled,
            stripe_color=_str(block.get("stripeColor"), PorscheEffect.stripe_color),
            stripe_width=int(_num(block.get("stripeWidth"), PorscheEffect.stripe_width, hi=_MAX_PX)),
        )
    return MidAutumnEffect(
        enabled=enabled,
        lantern_image=_str(block.get("lanternImage"), ""),
        lantern_opacity=_num(block.get("lanternOpacity"), 1.0, 0.0, 1.0),
    )


def parse_descriptor(theme_id: str, data: Any) -> ThemeDescriptor:
    """
    Validerer rå JSON og bygger en ThemeDescriptor.
    Ukjente felt ignoreres; ugyldig struktur gir ThemeLoadError.
    """
    if not isinstance(data, dict):
        raise ThemeLoadError(theme_id, "descriptor must be a JSON object")
    bg = data.get("backgroundColor")
    if not isinstance(bg, str) or not bg.strip():
        raise ThemeLoadError(theme_id, "backgroundColor must be a non-empty string")
    styles: Dict[str, Dict[str, Any]] = {}
    for key in ("clockStyle", "textStyle"):
        if not isinstance(data.get(key), dict):
            raise ThemeLoadError(theme_id, f"{key} must be an object")
        styles[key] = data[key]
    for key in ("englishTextStyle", "chineseTextStyle"):
        v = data.get(key)
        if v is not None and not isinstance(v, dict):
            raise ThemeLoadError(theme_id, f"{key} must be an object")
        styles[key] = v or {}
    blocks = [k for k in EffectKind if k.block in data]
    if len(blocks) > 1:
        names = ", ".join(k.block for k in blocks)
        raise ThemeLoadError(theme_id, f"at most one effect block allowed ({names})")
    effect: Optional[Effect] = None
    if blocks:
        kind = blocks[0]
        block = data[kind.block]
        if not isinstance(block, dict):
            raise ThemeLoadError(theme_id, f"{kind.block} must be an object")
        effect = _parse_effect(kind, block)
    return ThemeDescriptor(
        theme_id=theme_id,
        background_color=bg.strip(),
        clock_style=styles["clockStyle"],
        text_style=styles["textStyle"],
        english_text_style=styles["englishTextStyle"],
        chinese_text_style=styles["chineseTextStyle"],
        effect=effect,
    )


def active_effect(
    descriptor: Optional[ThemeDescriptor], active_theme_id: str
) -> Optional[Effect]:
    """
    Effekten tegnes bare når descriptoren tilhører aktivt tema, effekten eies av
    samme tema og enabled er satt.
    """
    if descriptor is None or descriptor.effect is None:
        return None
    eff = descriptor.effect
    if descriptor.theme_id != active_theme_id or eff.kind.owner != active_theme_id:
        return None
    return eff if eff.enabled else None


# ── store ─────────────────────────────────────────────────────────────────────
class ThemeStore:
    def __init__(self, registry: ThemeRegistry) -> None:
        self.registry = registry

    def ids(self) -> List[str]:
        return self.registry.ids()

    async def load(self, theme_id: str) -> ThemeDescriptor:
        loader = self.registry.loader(theme_id)
        try:
            raw = await loader()
        except ThemeLoadError:
            raise
        except Exception as e:
            # transportfeil fra vilkårlige leverandører normaliseres
            raise ThemeLoadError(theme_id, f"fetch failed: {e}") from e
        try:
            return parse_descriptor(theme_id, raw)
        except ThemeLoadError:
            raise
        except Exception as e:
            raise ThemeLoadError(theme_id, f"malformed descriptor: {e}") from e
