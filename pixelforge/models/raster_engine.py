from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image as PILImage

from .color import RGBA, TRANSPARENT
from .raster import Raster
from .specs import FitMode, FitSpec, KeySpec

Source = Union[str, Path, bytes]

# Largest possible Euclidean distance between two RGB colors.
MAX_RGB_DISTANCE = float(np.sqrt(3 * 255 ** 2))


def _center_span(src: int, dst: int) -> Tuple[int, int, int]:
    """(source offset, destination offset, length) centring src inside dst."""
    if src >= dst:
        return (src - dst) // 2, 0, dst
    return 0, (dst - src) // 2, src


def extent(raster: Raster, width: int, height: int, background: RGBA = TRANSPARENT) -> Raster:
    """
    Center raster on a width x height canvas: crops what overflows,
    fills what is missing with background. Pixels are copied, not blended.
    """
    canvas = np.empty((height, width, 4), dtype=np.uint8)
    canvas[:, :] = background.as_bytes()
    sx, dx, w = _center_span(raster.width, width)
    sy, dy, h = _center_span(raster.height, height)
    canvas[dy:dy + h, dx:dx + w] = raster.pixels[sy:sy + h, sx:sx + w]
    return raster.with_pixels(canvas)


def cover_crop(src_w: int, src_h: int, tw: int, th: int) -> Tuple[int, int]:
    """
    Largest centered region of the source with the target's aspect ratio.
    Cover crops to this region first, so the resample never exceeds the target.
    """
    crop_w = min(src_w, max(1, int(round(src_h * tw / th))))
    crop_h = min(src_h, max(1, int(round(src_w * th / tw))))
    return crop_w, crop_h


def scaled_size(src_w: int, src_h: int, spec: FitSpec) -> Tuple[int, int]:
    """Size of the source after the scale step of Contain / Fill."""
    tw, th = spec.target_width, spec.target_height
    if spec.fit_mode is FitMode.FILL:
        return tw, th
    scale = min(tw / src_w, th / src_h)
    return min(tw, max(1, int(round(src_w * scale)))), min(th, max(1, int(round(src_h * scale))))


class RasterEngine(ABC):
    """
    Capability interface shared by the ImageMagick and Pillow engines.

    Subclasses must decode, resample and encode. Fitting, keying,
    compositing and colorizing have in-process implementations here,
    built on resample(); an engine with native equivalents overrides them.
    The contract (dimensions, alpha semantics) is the same for both.
    """

    name: str = "abstract"
    output_formats: frozenset = frozenset()

    # ── Required capabilities ────────────────────────────────────────
    @abstractmethod
    def decode(self, source: Source) -> Raster:
        """Decode a path or encoded bytes into an RGBA Raster (first frame, auto-oriented)."""

    @abstractmethod
    def resample(self, raster: Raster, width: int, height: int) -> Raster:
        """Scale to exactly width x height with a high-quality filter."""

    @abstractmethod
    def encode(self, raster: Raster, path: Path, fmt: str, quality: int = 90,
               transparent: bool = False) -> Path:
        """Write raster to path in fmt (already normalized, e.g. "jpeg")."""

    def supports(self, fmt: str) -> bool:
        return fmt in self.output_formats

    # ── Transforms ───────────────────────────────────────────────────
    def fit(self, raster: Raster, spec: FitSpec, background: RGBA) -> Raster:
        src = raster
        if spec.zoom != 1.0:
            src = self.zoom(src, spec.zoom)

        tw, th = spec.target_width, spec.target_height
        if spec.fit_mode is FitMode.COVER:
            cw, ch = cover_crop(src.width, src.height, tw, th)
            return self.resample(extent(src, cw, ch), tw, th)

        nw, nh = scaled_size(src.width, src.height, spec)
        scaled = self.resample(src, nw, nh)
        if spec.fit_mode is FitMode.FILL:
            return scaled

        canvas = Raster.blank(tw, th, background)
        return self.composite(canvas, scaled, (tw - nw) // 2, (th - nh) // 2)

    def zoom(self, raster: Raster, factor: float) -> Raster:
        """Scale by factor and re-center on the original canvas size."""
        w = max(1, int(round(raster.width * factor)))
        h = max(1, int(round(raster.height * factor)))
        return extent(self.resample(raster, w, h), raster.width, raster.height)

    def key_out(self, raster: Raster, spec: KeySpec) -> Raster:
        px = raster.pixels
        diff = px[:, :, :3].astype(np.float64) - np.asarray(spec.target_color.rgb, dtype=np.float64)
        distance = np.sqrt((diff ** 2).sum(axis=2)) / MAX_RGB_DISTANCE * 100.0

        out = px.copy()
        out[distance <= spec.fuzz_percent, 3] = 0
        return raster.with_pixels(out)

    def composite(self, base: Raster, overlay: Raster, x: int = 0, y: int = 0) -> Raster:
        """Alpha-composite overlay over base at (x, y); base size is kept."""
        ox, oy = max(0, -x), max(0, -y)
        dx, dy = max(0, x), max(0, y)
        w = min(overlay.width - ox, base.width - dx)
        h = min(overlay.height - oy, base.height - dy)
        if w <= 0 or h <= 0:
            return base

        base_img = PILImage.fromarray(np.array(base.pixels))
        over_img = PILImage.fromarray(np.array(overlay.pixels[oy:oy + h, ox:ox + w]))
        base_img.alpha_composite(over_img, dest=(dx, dy))
        return base.with_pixels(np.asarray(base_img))

    def colorize(self, raster: Raster, color: RGBA, opacity: float = 0.5) -> Raster:
        """Blend RGB toward color by opacity; alpha is preserved."""
        if not 0.0 <= opacity <= 1.0:
            raise ValueError(f"opacity={opacity} outside [0, 1]")
        out = raster.pixels.astype(np.float32)
        out[:, :, :3] = out[:, :, :3] * (1.0 - opacity) + np.asarray(color.rgb, dtype=np.float32) * opacity
        return raster.with_pixels(np.floor(out + 0.5).astype(np.uint8))
