from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class TextEntry:
    primary: str
    secondary: str

    def to_dict(self) -> Dict[str, str]:
        # Feltnavnene en/zh er låst av lagringsformatet
        return {"en": self.primary, "zh": self.secondary}

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["TextEntry"]:
        """Returnerer None for poster som ikke består validering."""
        if not isinstance(raw, dict):
            return None
        en = raw.get("en")
        zh = raw.get("zh")
        if not isinstance(en, str) or not isinstance(zh, str):
            return None
        en, zh = en.strip(), zh.strip()
        if not en or not zh:
            return None
        return cls(primary=en, secondary=zh)


@dataclass(frozen=True)
class RotationState:
    entries: Tuple[TextEntry, ...]
    active_index: int = 0

    @property
    def displayed(self) -> Optional[TextEntry]:
        if not self.entries:
            return None
        return self.entries[self.active_index]

    def to_dict(self) -> Dict[str, Any]:
        shown = self.displayed
        return {
            "entries": [e.to_dict() for e in self.entries],
            "active_index": self.active_index,
            "displayed": shown.to_dict() if shown else None,
        }


# ── effekter ──────────────────────────────────────────────────────────────────
class EffectKind(Enum):
    # (blokknavn i descriptor, tema som eier effekten)
    HALO = ("haloEffect", "halo")
    LIGHT = ("lightEffect", "lightBeam")
    PORSCHE = ("porscheEffect", "porsche")
    MID_AUTUMN = ("midAutumnEffect", "midAutumn")

    def __init__(self, block: str, owner: str) -> None:
        self.block = block
        self.owner = owner


@dataclass(frozen=True)
class Effect:
    kind: ClassVar[EffectKind]
    enabled: bool = False

    def params(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.block, "enabled": self.enabled, **self.params()}


@dataclass(frozen=True)
class HaloEffect(Effect):
    kind: ClassVar[EffectKind] = EffectKind.HALO
    glow_color: str = "#ffffff"
    glow_radius: int = 240

    def params(self) -> Dict[str, Any]:
        return {"glowColor": self.glow_color, "glowRadius": self.glow_radius}


@dataclass(frozen=True)
class LightEffect(Effect):
    kind: ClassVar[EffectKind] = EffectKind.LIGHT
    beam_color: str = "#ffffff"
    beam_width: int = 320

    def params(self) -> Dict[str, Any]:
        return {"beamColor": self.beam_color, "beamWidth": self.beam_width}


@dataclass(frozen=True)
class PorscheEffect(Effect):
    kind: ClassVar[EffectKind] = EffectKind.PORSCHE
    stripe_color: str = "#d5001c"
    stripe_width: int = 12

    def params(self) -> Dict[str, Any]:
        return {"stripeColor": self.stripe_color, "stripeWidth": self.stripe_width}


@dataclass(frozen=True)
class MidAutumnEffect(Effect):
    kind: ClassVar[EffectKind] = EffectKind.MID_AUTUMN
    lantern_image: str = ""
    lantern_opacity: float = 1.0

    def params(self) -> Dict[str, Any]:
        return {
            "lanternImage": self.lantern_image,
            "lanternOpacity": self.lantern_opacity,
        }


EFFECT_TYPES: Dict[EffectKind, type] = {
    EffectKind.HALO: HaloEffect,
    EffectKind.LIGHT: LightEffect,
    EffectKind.PORSCHE: PorscheEffect,
    EffectKind.MID_AUTUMN: MidAutumnEffect,
}


def _frozen(m: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(m or {}))


@dataclass(frozen=True)
class ThemeDescriptor:
    theme_id: str
    background_color: str
    clock_style: Mapping[str, Any] = field(default_factory=lambda: _frozen(None))
    text_style: Mapping[str, Any] = field(default_factory=lambda: _frozen(None))
    english_text_style: Mapping[str, Any] = field(default_factory=lambda: _frozen(None))
    chinese_text_style: Mapping[str, Any] = field(default_factory=lambda: _frozen(None))
    effect: Optional[Effect] = None

    def __post_init__(self) -> None:
        # Stilblokkene er opake data; gjør dem skrivebeskyttet
        for name in (
            "clock_style",
            "text_style",
            "english_text_style",
            "chinese_text_style",
        ):
            object.__setattr__(self, name, _frozen(getattr(self, name)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.theme_id,
            "backgroundColor": self.background_color,
            "clockStyle": dict(self.clock_style),
            "textStyle": dict(self.text_style),
            "englishTextStyle": dict(self.english_text_style),
            "chineseTextStyle": dict(self.chinese_text_style),
            "effect": self.effect.to_dict() if self.effect else None,
        }


# ── avledet tilstand ──────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ClockState:
    formatted: str = ""


@dataclass(frozen=True)
class WarningState:
    message: str = ""
    expires_at: float = 0.0

    def __bool__(self) -> bool:
        return bool(self.message)


class ThemeStatus(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True)
class DisplaySnapshot:
    clock: ClockState
    rotation: RotationState
    theme: Optional[ThemeDescriptor]
    theme_id: str
    status: ThemeStatus
    warning: WarningState = WarningState()
    notice: WarningState = WarningState()
    themes: Tuple[str, ...] = ()

    @property
    def displayed(self) -> Optional[TextEntry]:
        return self.rotation.displayed

    def to_dict(self) -> Dict[str, Any]:
        shown = self.displayed
        return {
            "clock": self.clock.formatted,
            "displayed": shown.to_dict() if shown else None,
            "active_index": self.rotation.active_index,
            "entry_count": len(self.rotation.entries),
            "theme_id": self.theme_id,
            "status": self.status.value,
            "theme": self.theme.to_dict() if self.theme else None,
            "warning": self.warning.message,
            "notice": self.notice.message,
            "themes": list(self.themes),
        }
