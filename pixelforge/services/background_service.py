from __future__ import annotations
import logging
import os
from dataclasses import replace

import numpy as np
from dotenv import load_dotenv

from ..models.background import BackgroundDetectionOptions, BackgroundResult
from ..models.color import RGBA, TRANSPARENT, WHITE
from ..models.raster import Raster
from ..models.raster_engine import RasterEngine

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


class BackgroundService:
    """
    Business-level helper that guesses an image's background from its border.

    • Samples a thin frame along the four edges of a downscaled copy.
    • Mostly-transparent frame → transparent background.
    • Otherwise a quantized histogram picks the dominant color; when no
      bucket dominates (gradients, photos) the mean of the frame is used.
    """

    def __init__(self, engine: RasterEngine, options: BackgroundDetectionOptions | None = None):
        self.engine = engine
        self.options = options or BackgroundDetectionOptions(
            sample_size=int(os.getenv("BG_SAMPLE_SIZE", "256")),
            border_fraction=float(os.getenv("BG_BORDER_FRACTION", "0.05")),
            alpha_threshold=int(os.getenv("BG_ALPHA_THRESHOLD", "10")),
            quant_bits=int(os.getenv("BG_QUANT_BITS", "4")),
            transparent_border_ratio=float(os.getenv("BG_TRANSPARENT_BORDER_RATIO", "0.8")),
            dominant_share=float(os.getenv("BG_DOMINANT_SHARE", "0.4")),
        )

    # ---------- private helpers ----------
    def _downsample(self, raster: Raster, sample_size: int) -> Raster:
        longest = max(raster.width, raster.height)
        if longest <= sample_size:
            return raster
        scale = sample_size / longest
        width = max(1, int(round(raster.width * scale)))
        height = max(1, int(round(raster.height * scale)))
        return self.engine.resample(raster, width, height)

    @staticmethod
    def _border_mask(width: int, height: int, border: int) -> np.ndarray:
        xs = np.arange(width)
        ys = np.arange(height)
        on_x = (xs < border) | (xs >= width - border)
        on_y = (ys < border) | (ys >= height - border)
        return on_y[:, None] | on_x[None, :]

    # ---------- public API ----------
    def infer(self, raster: Raster, options: BackgroundDetectionOptions | None = None, **overrides) -> BackgroundResult:
        """
        Args:
            raster: decoded source (not modified).
            options: replaces the service defaults for this call.
            **overrides: individual option fields, e.g. quant_bits=5.

        Returns:
            BackgroundResult with the rounded mean color, or the transparent
            sentinel when the border is mostly transparent.
        """
        opts = options or self.options
        if overrides:
            opts = replace(opts, **overrides)

        sample = self._downsample(raster, opts.sample_size)
        h, w = sample.height, sample.width
        border = max(2, int(round(min(w, h) * opts.border_fraction)))

        frame = sample.pixels[self._border_mask(w, h, border)]  # (N, 4)
        total = len(frame)
        transparent = frame[:, 3] < opts.alpha_threshold
        transparent_ratio = transparent.sum() / total if total else 0.0

        if transparent_ratio >= opts.transparent_border_ratio:
            logger.debug(f"Border {transparent_ratio:.0%} transparent → transparent background")
            return BackgroundResult(color=TRANSPARENT, is_transparent=True)

        opaque = frame[~transparent][:, :3].astype(np.int64)
        count = len(opaque)
        if count < opts.min_samples:
            logger.debug(f"Only {count} opaque border samples → white")
            return BackgroundResult(color=WHITE, is_transparent=False)

        bits = opts.quant_bits
        q = opaque >> (8 - bits)
        keys = (q[:, 0] << (bits * 2)) | (q[:, 1] << bits) | q[:, 2]
        buckets = 1 << (bits * 3)
        counts = np.bincount(keys, minlength=buckets)
        # Ties go to the bucket seen first in row-major scan order.
        tied = np.flatnonzero(counts == counts.max())
        dominant = int(keys[np.argmax(np.isin(keys, tied))])
        share = counts[dominant] / count

        if share < opts.dominant_share:
            mean = opaque.sum(axis=0) / count
        else:
            mean = opaque[keys == dominant].sum(axis=0) / counts[dominant]

        r, g, b = (_round_half_up(v) for v in mean)
        logger.debug(f"Background rgb({r},{g},{b}), dominant share {share:.2f}")
        return BackgroundResult(color=RGBA(r, g, b), is_transparent=False)
