from __future__ import annotations

import json

import pytest

from panel.errors import ThemeLoadError
from panel.models import EffectKind, HaloEffect, MidAutumnEffect, PorscheEffect
from panel.settings import PROJECT_ROOT
from panel.themes import (
    DirectoryResourceProvider,
    MappingResourceProvider,
    ThemeRegistry,
    ThemeStore,
    active_effect,
    parse_descriptor,
)

BASE = {"backgroundColor": "#000", "clockStyle": {}, "textStyle": {}}


def desc(**extra):
    d = json.loads(json.dumps(BASE))
    d.update(extra)
    return d


def test_parse_full_descriptor() -> None:
    d = parse_descriptor(
        "porsche",
        desc(
            englishTextStyle={"fontSize": 40},
            chineseTextStyle={"color": "#d5001c"},
            porscheEffect={"stripeColor": "#ff0000", "stripeWidth": 8, "enabled": True},
            somethingElse=123,
        ),
    )
    assert d.theme_id == "porsche"
    assert d.background_color == "#000"
    assert d.english_text_style["fontSize"] == 40
    assert d.effect == PorscheEffect(enabled=True, stripe_color="#ff0000", stripe_width=8)


def test_style_blocks_are_read_only() -> None:
    d = parse_descriptor("classic", desc(textStyle={"color": "#fff"}))
    with pytest.raises(TypeError):
        d.text_style["color"] = "#000"  # type: ignore[index]


@pytest.mark.parametrize(
    "data",
    [
        None,
        [],
        {"clockStyle": {}, "textStyle": {}},
        desc(backgroundColor="   "),
        desc(clockStyle="big"),
        desc(textStyle=None),
        desc(englishTextStyle=["x"]),
        desc(haloEffect="on"),
    ],
)
def test_malformed_descriptor_raises(data) -> None:
    with pytest.raises(ThemeLoadError):
        parse_descriptor("x", data)


def test_more_than_one_effect_block_is_malformed() -> None:
    with pytest.raises(ThemeLoadError) as ei:
        parse_descriptor("halo", desc(haloEffect={"enabled": True}, lightEffect={"enabled": True}))
    assert "haloEffect" in str(ei.value)


@pytest.mark.parametrize("flag", [None, False, "true", 1])
def test_enabled_must_be_literally_true(flag) -> None:
    block = {} if flag is None else {"enabled": flag}
    d = parse_descriptor("halo", desc(haloEffect=block))
    assert isinstance(d.effect, HaloEffect)
    assert d.effect.enabled is False


def test_effect_params_are_coerced() -> None:
    d = parse_descriptor(
        "midAutumn",
        desc(midAutumnEffect={"lanternImage": "l.png", "lanternOpacity": 7, "enabled": True}),
    )
    assert d.effect == MidAutumnEffect(enabled=True, lantern_image="l.png", lantern_opacity=1.0)
    d2 = parse_descriptor("halo", desc(haloEffect={"glowRadius": "wide", "enabled": True}))
    assert d2.effect.glow_radius == HaloEffect.glow_radius


def test_active_effect_requires_owner_theme_and_enabled() -> None:
    halo = parse_descriptor("halo", desc(haloEffect={"enabled": True}))
    assert active_effect(halo, "halo") is halo.effect
    assert active_effect(halo, "porsche") is None
    off = parse_descriptor("halo", desc(haloEffect={"enabled": False}))
    assert active_effect(off, "halo") is None
    assert active_effect(None, "halo") is None


def test_cross_theme_effect_block_never_activates() -> None:
    # tema "classic" med en blokk som eies av "porsche"
    d = parse_descriptor("classic", desc(porscheEffect={"enabled": True}))
    assert d.effect.kind is EffectKind.PORSCHE
    assert active_effect(d, "classic") is None
    assert active_effect(d, "porsche") is None


def test_effect_kind_owners() -> None:
    assert {k.block: k.owner for k in EffectKind} == {
        "haloEffect": "halo",
        "lightEffect": "lightBeam",
        "porscheEffect": "porsche",
        "midAutumnEffect": "midAutumn",
    }


@pytest.mark.asyncio
async def test_store_loads_registered_theme() -> None:
    reg = ThemeRegistry.from_provider(["classic"], MappingResourceProvider({"classic": BASE}))
    d = await ThemeStore(reg).load("classic")
    assert d.theme_id == "classic"


@pytest.mark.asyncio
async def test_store_unknown_theme_raises() -> None:
    reg = ThemeRegistry.from_provider(["classic"], MappingResourceProvider({"classic": BASE}))
    with pytest.raises(ThemeLoadError) as ei:
        await ThemeStore(reg).load("neon")
    assert ei.value.theme_id == "neon"


@pytest.mark.asyncio
async def test_store_normalizes_transport_errors() -> None:
    reg = ThemeRegistry()

    async def boom():
        raise ConnectionError("offline")

    reg.register("remote", boom)
    with pytest.raises(ThemeLoadError, match="offline"):
        await ThemeStore(reg).load("remote")


@pytest.mark.asyncio
async def test_directory_provider(tmp_path) -> None:
    (tmp_path / "good.json").write_text(json.dumps(BASE), encoding="utf-8")
    (tmp_path / "bad.json").write_text("{oops", encoding="utf-8")
    store = ThemeStore(
        ThemeRegistry.from_provider(["good", "bad", "gone"], DirectoryResourceProvider(tmp_path))
    )
    assert (await store.load("good")).background_color == "#000"
    with pytest.raises(ThemeLoadError):
        await store.load("bad")
    with pytest.raises(ThemeLoadError):
        await store.load("gone")


def test_registry_is_enumerable() -> None:
    reg = ThemeRegistry.from_provider(["a", "b"], MappingResourceProvider({}))
    assert reg.ids() == ["a", "b"]
    assert "a" in reg and "c" not in reg


@pytest.mark.asyncio
async def test_shipped_themes_are_valid() -> None:
    from tools.check_themes import check

    results = await check(PROJECT_ROOT / "config.json", PROJECT_ROOT / "themes")
    assert results
    assert all(line.startswith("OK") for _, line in results), results


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan"), 1e400])
def test_non_finite_numbers_fall_back_to_default(value) -> None:
    d = parse_descriptor("halo", desc(haloEffect={"glowRadius": value, "enabled": True}))
    assert d.effect.glow_radius == HaloEffect.glow_radius


def test_huge_pixel_values_are_capped() -> None:
    d = parse_descriptor("porsche", desc(porscheEffect={"stripeWidth": 1e300, "enabled": True}))
    assert d.effect.stripe_width == 4096


@pytest.mark.asyncio
async def test_store_loads_descriptor_with_infinity_from_json(tmp_path) -> None:
    # json godtar Infinity og gir float('inf')
    (tmp_path / "halo.json").write_text(
        '{"backgroundColor": "#000", "clockStyle": {}, "textStyle": {},'
        ' "haloEffect": {"glowRadius": Infinity, "enabled": true}}',
        encoding="utf-8",
    )
    store = ThemeStore(ThemeRegistry.from_provider(["halo"], DirectoryResourceProvider(tmp_path)))
    d = await store.load("halo")
    assert d.effect.glow_radius == HaloEffect.glow_radius


@pytest.mark.asyncio
async def test_store_wraps_any_parse_failure(monkeypatch) -> None:
    import panel.themes as themes

    def broken(theme_id, data):
        raise OverflowError("cannot convert float infinity to integer")

    monkeypatch.setattr(themes, "parse_descriptor", broken)
    reg = ThemeRegistry.from_provider(["classic"], MappingResourceProvider({"classic": BASE}))
    with pytest.raises(ThemeLoadError) as ei:
        await ThemeStore(reg).load("classic")
    assert ei.value.theme_id == "classic"
    assert isinstance(ei.value.__cause__, OverflowError)
