from __future__ import annotations
import logging
import os

from dotenv import load_dotenv

from ..models.errors import EngineUnavailable
from ..models.magick_engine import MagickEngine
from ..models.pillow_engine import PillowEngine
from ..models.raster_engine import RasterEngine

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

ENGINE_PRIMARY = "primary"
ENGINE_FALLBACK = "fallback"
ENGINE_AUTO = "auto"

_ALIASES = {"magick": ENGINE_PRIMARY, "imagemagick": ENGINE_PRIMARY, "pillow": ENGINE_FALLBACK}


class EngineService:
    """
    Chooses the raster engine for the processors a caller creates.

    The choice is an engine handle held by this object, not process state:
    pass `service.get()` to every ImageService of one pipeline.
    """

    def __init__(self, preference: str | None = None):
        self.preference = self._normalize(preference or os.getenv("PIXELFORGE_ENGINE", ENGINE_AUTO))
        self._current: RasterEngine | None = None

    @staticmethod
    def _normalize(name: str) -> str:
        name = name.strip().lower()
        name = _ALIASES.get(name, name)
        if name not in (ENGINE_PRIMARY, ENGINE_FALLBACK, ENGINE_AUTO):
            raise ValueError(f"Unknown engine {name!r} (expected primary, fallback or auto)")
        return name

    @property
    def current(self) -> RasterEngine | None:
        return self._current

    def select(self, name: str) -> RasterEngine:
        """
        Raises:
            EngineUnavailable: "primary" requested but ImageMagick is missing.
        """
        name = self._normalize(name)
        if name == ENGINE_AUTO:
            return self.detect()
        self._current = MagickEngine() if name == ENGINE_PRIMARY else PillowEngine()
        logger.info(f"Using {self._current.name} raster engine")
        return self._current

    def detect(self) -> RasterEngine:
        """ImageMagick when present, otherwise the in-process fallback."""
        try:
            self._current = MagickEngine()
        except EngineUnavailable as err:
            logger.warning(f"{err} Continuing with the fallback engine (reduced feature set).")
            self._current = PillowEngine()
        return self._current

    def get(self) -> RasterEngine:
        if self._current is None:
            return self.select(self.preference)
        return self._current
