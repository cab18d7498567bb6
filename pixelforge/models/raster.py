from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import numpy as np

from .color import RGBA


@dataclass(frozen=True, eq=False)
class Raster:
    """
    Decoded pixel buffer: RGBA uint8 samples, shape (H, W, 4), row-major.

    The array is made read-only on construction. Every transform returns a
    new Raster instead of touching this one.
    """
    pixels: np.ndarray # Shape (H, W, 4), dtype uint8, RGBA order.
    path: Path | None = field(default=None, compare=False) # Source of the raster, if decoded from disk.

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Raster pixels must have shape (H, W, 4), got {pixels.shape}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ValueError(f"Raster must be at least 1x1, got {pixels.shape[1]}x{pixels.shape[0]}")
        if pixels.dtype != np.uint8:
            pixels = np.clip(pixels, 0, 255).astype(np.uint8)
        if pixels.flags.writeable or not pixels.flags["C_CONTIGUOUS"]:
            pixels = np.ascontiguousarray(pixels).copy()
            pixels.flags.writeable = False
        object.__setattr__(self, "pixels", pixels)
        if self.path is not None:
            object.__setattr__(self, "path", Path(self.path))

    # ── Dimensions ───────────────────────────────────────────────────
    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]

    # ── Constructors ─────────────────────────────────────────────────
    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes, path: Path | None = None) -> "Raster":
        """
        Build a Raster from flat RGBA bytes.

        Raises:
            ValueError: if len(data) != width * height * 4.
        """
        expected = width * height * 4
        if len(data) != expected:
            raise ValueError(
                f"RGBA buffer for {width}x{height} must be {expected} bytes, got {len(data)}"
            )
        arr = np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4)
        return cls(pixels=arr, path=path)

    @classmethod
    def blank(cls, width: int, height: int, color: RGBA) -> "Raster":
        """Canvas of the given size filled with one color (alpha converted to 0-255)."""
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[:, :] = color.as_bytes()
        return cls(pixels=arr)

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()

    def with_pixels(self, pixels: np.ndarray) -> "Raster":
        """New Raster with different pixels, keeping the source path for bookkeeping."""
        return Raster(pixels=pixels, path=self.path)
