# File: panel/snapshot.py
# Purpose: Punkt-i-tid rasterisering av panelet til PNG, uten kontrollfeltet.
from __future__ import annotations
import asyncio
import base64
import io
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from PIL import Image
from .errors import CaptureError
from .settings import EXPORT_FILENAME
from .surface import REGION_CONTROLS, RGBA, PanelSurface, Region

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE = (REGION_CONTROLS,)


@dataclass(frozen=True)
class RasterImage:
    data: bytes
    width: int
    height: int
    filename: str = EXPORT_FILENAME
    media_type: str = "image/png"

    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"


def _render(size: Tuple[int, int], fill: RGBA, regions: List[Region]) -> bytes:
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    for region in regions:
        region.paint(layer)
    # Temaets bakgrunn fyller alt flaten lar være gjennomsiktig
    base = Image.new("RGBA", size, fill)
    out = Image.alpha_composite(base, layer).convert("RGB")
    buf = io.BytesIO()
    out.save(buf, format="PNG")
    return buf.getvalue()


class SnapshotExporter:
    def __init__(self, filename: str = EXPORT_FILENAME) -> None:
        self.filename = filename

    async def capture(
        self,
        surface: Optional[PanelSurface],
        exclude_regions: Iterable[str] = DEFAULT_EXCLUDE,
    ) -> RasterImage:
        if surface is None or not surface.mounted:
            raise CaptureError("display surface is not mounted")
        excluded = set(exclude_regions)
        # Regioner og bakgrunn låses før suspensjon; selve tegningen går i tråd
        regions = [r for r in surface.regions() if r.name not in excluded]
        fill = surface.background()
        size = surface.size
        try:
            data = await asyncio.to_thread(_render, size, fill, regions)
        except (OSError, ValueError) as e:
            logger.exception("rasterization failed")
            raise CaptureError(f"rasterization failed: {e}") from e
        return RasterImage(
            data=data, width=size[0], height=size[1], filename=self.filename
        )
