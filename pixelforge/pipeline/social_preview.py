# pipeline/social_preview.py
from __future__ import annotations
from pathlib import Path

from ..models.color import BLACK, ColorLike
from ..models.raster import Raster
from ..models.specs import FitMode, FitSpec
from ..services.image_service import ImageService

TEMPLATES = ("basic", "gradient")


def create_social_preview(
    service: ImageService,
    raster: Raster,
    width: int,
    height: int,
    *,
    background: ColorLike = "#000000",
    template: str = "basic",
) -> Path:
    """
    Base image for a social card: the source contained (never cropped) on a
    canvas of the detected background color, falling back to `background`.
    The "gradient" template darkens it with a 40% black colorize.

    Returns a scratch file owned by `service`; titles are drawn by the caller.
    """
    if template not in TEMPLATES:
        raise ValueError(f"Unknown template {template!r}, expected one of {TEMPLATES}")

    spec = FitSpec(width, height, FitMode.CONTAIN, background=background, auto_detect_background=True)
    preview = service.resize(raster, spec)
    if template == "gradient":
        preview = service.colorize(preview, BLACK, 0.4)
    return service.materialize(preview, tag="social")
