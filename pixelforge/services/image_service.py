from __future__ import annotations
from pathlib import Path
from typing import Callable, Union
import logging
import os
import warnings

from dotenv import load_dotenv

from ..models.background import BackgroundDetectionOptions, BackgroundResult
from ..models.color import ColorLike, parse_color
from ..models.errors import EncodeFailure, FallbackWarning
from ..models.raster import Raster
from ..models.raster_engine import RasterEngine, Source
from ..models.specs import FitSpec, KeySpec
from ..repositories.raster_repository import RasterRepository
from ..repositories.temp_artifact_repository import TempArtifactManager
from .background_service import BackgroundService
from .engine_service import EngineService
from .fit_service import FitService
from .keying_service import KeyingService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageService:
    """
    One processor: an engine handle, the services built on it, and the
    scratch files it creates.

    Use it as a context manager so scratch files are removed on every exit
    path, including exceptions:

        with ImageService(engine) as service:
            raster = service.decode("logo.png")
            ...
    """

    def __init__(
        self,
        engine: RasterEngine | None = None,
        scratch_dir: Union[str, Path, None] = None,
        progress: Callable[[Path], None] | None = None,
    ):
        self.engine = engine or EngineService().get()
        self.scratch_dir = scratch_dir or os.getenv("PIXELFORGE_SCRATCH_DIR") or None
        self.progress = progress
        self.default_quality = int(os.getenv("OUTPUT_QUALITY", "90"))

        self.raster_repository = RasterRepository(self.engine)
        self.temp_artifacts = TempArtifactManager(self.scratch_dir)
        self.background_service = BackgroundService(self.engine)
        self.fit_service = FitService(self.engine, self.background_service)
        self.keying_service = KeyingService(self.engine, self.background_service)

    def __enter__(self) -> "ImageService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    # ─── Decode / transform ────────────────────────────────────────
    def decode(self, source: Source) -> Raster:
        """Decode a path or encoded bytes into a Raster."""
        return self.raster_repository.load(source)

    def resize(self, raster: Raster, spec: FitSpec) -> Raster:
        return self.fit_service.resize(raster, spec)

    def infer_background(self, raster: Raster, options: BackgroundDetectionOptions | None = None) -> BackgroundResult:
        return self.background_service.infer(raster, options)

    def key_transparent(self, raster: Raster, spec: KeySpec) -> Raster:
        return self.keying_service.key_out(raster, spec)

    def colorize(self, raster: Raster, color: ColorLike, opacity: float = 0.5) -> Raster:
        return self.engine.colorize(raster, parse_color(color), opacity)

    def composite(self, base: Raster, overlay: Raster, x: int = 0, y: int = 0) -> Raster:
        return self.engine.composite(base, overlay, x, y)

    # ─── Encode ────────────────────────────────────────────────────
    def encode(
        self,
        raster: Raster,
        path: Union[str, Path],
        fmt: str | None = None,
        quality: int | None = None,
    ) -> Path:
        """
        Write raster to path. Format comes from `fmt` or the extension.

        An icon container the engine cannot produce is written as PNG
        under the same path, with a FallbackWarning.
        """
        path = Path(path)
        fmt = self.raster_repository.resolve_format(path, fmt)
        quality = self.default_quality if quality is None else quality
        transparent = bool((raster.alpha < 255).any())

        try:
            written = self.raster_repository.save(raster, path, fmt, quality=quality, transparent=transparent)
        except EncodeFailure as err:
            if fmt != "ico":
                raise
            message = f"ICO generation failed ({err}), writing PNG data to {path.name}"
            logger.warning(message)
            warnings.warn(message, FallbackWarning, stacklevel=2)
            written = self.raster_repository.save(raster, path, "png", quality=quality, transparent=transparent)

        self._report(written)
        return written

    def materialize(self, raster: Raster, tag: str = "") -> Path:
        """
        Write raster to a scratch PNG owned by this processor. It lives in
        the scratch directory, else next to the raster's source file.
        """
        directory = self.scratch_dir or (raster.path.parent if raster.path else None)
        path = self.temp_artifacts.new_path(tag=tag, directory=directory)
        return self.raster_repository.save(raster, path, "png", quality=100)

    def cleanup(self):
        """Remove every scratch file this processor created (best-effort)."""
        return self.temp_artifacts.cleanup()

    # ─── Internal helpers ──────────────────────────────────────────
    def _report(self, path: Path) -> None:
        if self.progress is None:
            return
        try:
            self.progress(path)
        except Exception as err:
            logger.warning(f"Progress callback failed for {path}: {err}")
