import logging
import os

from dotenv import load_dotenv

from ..models.raster import Raster
from ..models.raster_engine import RasterEngine
from ..models.specs import KeySpec
from .background_service import BackgroundService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class KeyingService:
    """
    Chroma-key: pixels within fuzz_percent of the target color become fully
    transparent. Binary in/out, no soft edge.
    """

    def __init__(self, engine: RasterEngine, background_service: BackgroundService):
        self.engine = engine
        self.background_service = background_service
        self.default_fuzz = float(os.getenv("KEY_FUZZ_PERCENT", "12"))

    def key_out(self, raster: Raster, spec: KeySpec) -> Raster:
        out = self.engine.key_out(raster, spec)
        logger.debug(
            f"Keyed {spec.target_color.to_hex()} at {spec.fuzz_percent:g}% fuzz: "
            f"{int((out.alpha == 0).sum())} transparent pixels"
        )
        return out

    def key_background(self, raster: Raster, fuzz_percent: float | None = None) -> Raster:
        """
        Detect the background, then key it out. An already transparent
        background is returned unchanged.
        """
        result = self.background_service.infer(raster)
        if result.is_transparent:
            logger.info("Background already transparent, nothing to key")
            return raster
        fuzz = self.default_fuzz if fuzz_percent is None else fuzz_percent
        return self.key_out(raster, KeySpec(target_color=result.color, fuzz_percent=fuzz))
