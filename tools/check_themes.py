#!/usr/bin/env python3
# tools/check_themes.py
"""
Validerer alle tema-descriptorer oppført i config.json med samme parser som motoren.
Skriver én linje per tema; exit-kode 1 hvis noe feiler.
"""
from __future__ import annotations
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Tuple

from panel.errors import ThemeLoadError
from panel.settings import CONFIG_PATH, THEMES_DIR
from panel.storage import load_app_config
from panel.themes import DirectoryResourceProvider, ThemeRegistry, ThemeStore


async def check(config_path: Path, themes_dir: Path) -> List[Tuple[str, str]]:
    cfg = load_app_config(config_path)
    store = ThemeStore(
        ThemeRegistry.from_provider(cfg["themes"], DirectoryResourceProvider(themes_dir))
    )
    results: List[Tuple[str, str]] = []
    for theme_id in store.ids():
        try:
            d = await store.load(theme_id)
        except ThemeLoadError as e:
            results.append((theme_id, f"FAIL {e.message}"))
            continue
        eff = d.effect.kind.block if d.effect else "-"
        results.append((theme_id, f"OK   effect={eff}"))
    return results


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("--config", type=Path, default=CONFIG_PATH)
    ap.add_argument("--themes-dir", type=Path, default=THEMES_DIR)
    args = ap.parse_args(argv)
    results = asyncio.run(check(args.config, args.themes_dir))
    failed = 0
    for theme_id, line in results:
        print(f"{theme_id:<12} {line}")
        failed += line.startswith("FAIL")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
