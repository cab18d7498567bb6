# pipeline/svg_icon.py
"""
favicon.svg: the keyed PNG embedded as a data URI in a minimal SVG wrapper.
If anything fails, a rasterized PNG is written under the .svg name instead.
"""
from __future__ import annotations
import base64
import logging
import shutil
import warnings
from pathlib import Path

from ..models.color import TRANSPARENT
from ..models.errors import FallbackWarning, PixelForgeError
from ..models.raster_engine import RasterEngine, Source
from ..models.specs import FitMode, FitSpec, KeySpec
from ..services.image_service import ImageService

logger = logging.getLogger(__name__)

ICON_ZOOM = 1.1

_SVG_TEMPLATE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" '
    'viewBox="0 0 {size} {size}" preserveAspectRatio="xMidYMid meet">'
    '<image href="data:image/png;base64,{data}" width="{size}" height="{size}" />'
    '</svg>'
)


def generate_svg_icon(
    source: Source,
    output_path: str | Path,
    *,
    size: int = 64,
    fuzz_percent: float | None = None,
    engine: RasterEngine | None = None,
) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if not isinstance(source, (bytes, bytearray)) and Path(source).suffix.lower() == ".svg":
        shutil.copyfile(source, output_path)
        return output_path

    with ImageService(engine=engine, scratch_dir=output_path.parent) as service:
        raster = service.decode(source)
        fuzz = service.keying_service.default_fuzz if fuzz_percent is None else fuzz_percent
        try:
            background = service.infer_background(raster)
            spec = FitSpec(size, size, FitMode.CONTAIN, zoom=ICON_ZOOM, auto_detect_background=True)
            icon = service.resize(raster, spec)
            if not background.is_transparent:
                icon = service.key_transparent(icon, KeySpec(background.color, fuzz))

            keyed_png = service.materialize(icon, tag="keyed")
            data = base64.b64encode(keyed_png.read_bytes()).decode("ascii")
            output_path.write_text(_SVG_TEMPLATE.format(size=size, data=data), encoding="utf-8")
        except (PixelForgeError, OSError) as err:
            message = f"SVG generation failed ({err}), writing PNG data to {output_path.name}"
            logger.warning(message)
            warnings.warn(message, FallbackWarning, stacklevel=2)
            spec = FitSpec(size, size, FitMode.CONTAIN, background=TRANSPARENT, zoom=ICON_ZOOM)
            service.encode(service.resize(raster, spec), output_path, fmt="png")

    return output_path
