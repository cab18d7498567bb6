# pipeline/size_generator.py
"""
Generate many derivative sizes of one source image.
The source is decoded once; each size is resized and encoded on a worker thread.
"""
from __future__ import annotations
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List

from dotenv import load_dotenv
from tqdm import tqdm

from ..models.color import TRANSPARENT, ColorLike
from ..models.errors import PixelForgeError
from ..models.raster_engine import RasterEngine, Source
from ..models.specs import FitMode, FitSpec
from ..services.image_service import ImageService

# ------------------------------------------------------------------
# env‑vars
load_dotenv()
MAX_WORKERS = int(os.getenv("PIXELFORGE_MAX_WORKERS", "4"))


@dataclass(frozen=True)
class SizeRequest:
    width: int
    height: int
    name: str            # output filename, relative to the output dir

    @classmethod
    def parse(cls, text: str) -> "SizeRequest":
        """"32x32:favicon-32x32.png" → SizeRequest(32, 32, "favicon-32x32.png")."""
        dims, sep, name = text.partition(":")
        width, x, height = dims.lower().partition("x")
        if not sep or not x or not name:
            raise ValueError(f"Expected WxH:NAME, got {text!r}")
        return cls(int(width), int(height), name)


# ------------------------------------------------------------------
def generate_sizes(
    source: Source,
    sizes: Iterable[SizeRequest],
    output_dir: str | Path,
    *,
    fit_mode: FitMode | str = FitMode.COVER,
    background: ColorLike = TRANSPARENT,
    zoom: float = 1.0,
    auto_detect_background: bool = False,
    fmt: str | None = None,
    quality: int | None = None,
    engine: RasterEngine | None = None,
    max_workers: int = MAX_WORKERS,
    show_progress: bool = False,
    progress: Callable[[Path], None] | None = None,
) -> List[Path]:
    """
    For every SizeRequest:
        • fit the decoded source to width x height
        • encode it to output_dir / name (format from fmt or the extension)
    Returns the written paths in request order. Scratch files are removed
    even when a size fails; the failure is re-raised with its size.
    """
    output_dir = Path(output_dir)
    requests = list(sizes)

    with ImageService(engine=engine, scratch_dir=output_dir, progress=progress) as service:
        raster = service.decode(source)

        def _one(request: SizeRequest) -> Path:
            target = f"{request.width}x{request.height}"
            try:
                spec = FitSpec(
                    target_width=request.width,
                    target_height=request.height,
                    fit_mode=fit_mode,
                    background=background,
                    zoom=zoom,
                    auto_detect_background=auto_detect_background,
                )
                resized = service.resize(raster, spec)
                return service.encode(resized, output_dir / request.name, fmt=fmt, quality=quality)
            except PixelForgeError as err:
                raise type(err)(
                    f"Failed to generate size {target}: {err}",
                    operation=err.operation, target=err.target or target,
                ) from err

        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            results = pool.map(_one, requests)
            return list(tqdm(results, total=len(requests), desc="sizes", ncols=70, disable=not show_progress))
