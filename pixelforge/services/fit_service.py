import logging

from ..models.color import TRANSPARENT
from ..models.errors import ResizeFailure
from ..models.raster import Raster
from ..models.raster_engine import RasterEngine
from ..models.specs import FitMode, FitSpec
from .background_service import BackgroundService

logger = logging.getLogger(__name__)


class FitService:
    """
    Resizes a raster to an exact target under a Cover / Contain / Fill policy.
    """

    def __init__(self, engine: RasterEngine, background_service: BackgroundService):
        self.engine = engine
        self.background_service = background_service

    def resolve_background(self, raster: Raster, spec: FitSpec):
        """
        Canvas color for Contain. With auto_detect_background the border of
        the original (pre-resize) raster decides; failures keep the caller's color.
        """
        if not (spec.auto_detect_background and spec.fit_mode is FitMode.CONTAIN):
            return spec.background
        try:
            result = self.background_service.infer(raster)
        except Exception as err:
            logger.warning(f"Background color detection failed, using provided background: {err}")
            return spec.background
        return TRANSPARENT if result.is_transparent else result.color

    def resize(self, raster: Raster, spec: FitSpec) -> Raster:
        background = self.resolve_background(raster, spec)
        logger.debug(
            f"{self.engine.name}: {raster.width}x{raster.height} → {spec.target} "
            f"({spec.fit_mode.value}, zoom {spec.zoom}, background {background.to_magick()})"
        )
        out = self.engine.fit(raster, spec, background)
        if out.size != (spec.target_width, spec.target_height):
            raise ResizeFailure(
                f"{self.engine.name} engine produced {out.width}x{out.height} instead of {spec.target}",
                operation="resize", target=spec.target,
            )
        return out
