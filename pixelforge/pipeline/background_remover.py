# pipeline/background_remover.py
from __future__ import annotations
import logging
from pathlib import Path

from ..models.raster_engine import RasterEngine, Source
from ..services.image_service import ImageService

logger = logging.getLogger(__name__)


def make_background_transparent(
    input_path: Source,
    output_path: str | Path,
    *,
    fuzz_percent: float | None = None,
    output_format: str | None = None,
    engine: RasterEngine | None = None,
) -> Path:
    """
    Detect the border color of the input and key it to full transparency.
    Dimensions are preserved; the output format defaults to the extension.
    """
    with ImageService(engine=engine) as service:
        raster = service.decode(input_path)
        keyed = service.keying_service.key_background(raster, fuzz_percent)
        written = service.encode(keyed, output_path, fmt=output_format)

    logger.info(f"Transparent background written to {written}")
    return written
