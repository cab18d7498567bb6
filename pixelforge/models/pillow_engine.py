# models/pillow_engine.py
"""
In-process fallback engine: Pillow for codecs, OpenCV for resampling.

• Used when the ImageMagick binary is missing.
• Writes png / jpeg / webp / ico / tiff / bmp only.
"""
from __future__ import annotations
import io
from pathlib import Path

import cv2
import numpy as np
from PIL import Image as PILImage, ImageOps, UnidentifiedImageError

from .errors import DecodeFailure, EncodeFailure, ResizeFailure
from .raster import Raster
from .raster_engine import RasterEngine, Source

ICO_SIZES = (256, 128, 64, 48, 32, 16)

_PIL_FORMATS = {
    "png": "PNG",
    "jpeg": "JPEG",
    "webp": "WEBP",
    "ico": "ICO",
    "tiff": "TIFF",
    "bmp": "BMP",
}

# No alpha channel in these outputs: flatten onto white first.
_FLATTEN = {"jpeg", "bmp"}


def _looks_like_svg(data: bytes) -> bool:
    head = data[:512].lstrip().lower()
    return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in data[:4096].lower())


def _rasterize_svg(data: bytes) -> bytes:
    """SVG → PNG bytes through CairoSVG (needs the cairo system library)."""
    try:
        import cairosvg
        return cairosvg.svg2png(bytestring=data)
    except Exception as err:
        raise DecodeFailure(f"SVG rasterization failed: {err}", operation="decode") from err


def _premultiply(pixels: np.ndarray) -> np.ndarray:
    arr = pixels.astype(np.float32)
    arr[:, :, :3] *= arr[:, :, 3:4] / 255.0
    return arr


def _unpremultiply(arr: np.ndarray) -> np.ndarray:
    alpha = np.clip(arr[:, :, 3:4], 0.0, 255.0)
    rgb = np.where(alpha >= 0.5, arr[:, :, :3] * 255.0 / np.maximum(alpha, 0.5), 0.0)
    out = np.concatenate([np.clip(rgb, 0.0, 255.0), alpha], axis=2)
    return np.floor(out + 0.5).astype(np.uint8)


class PillowEngine(RasterEngine):
    name = "fallback"
    output_formats = frozenset(_PIL_FORMATS)

    # --------------------------------------------------
    def decode(self, source: Source) -> Raster:
        path = None
        try:
            if isinstance(source, (bytes, bytearray)):
                data = bytes(source)
                if _looks_like_svg(data):
                    data = _rasterize_svg(data)
                handle = PILImage.open(io.BytesIO(data))
            else:
                path = Path(source)
                if path.suffix.lower() == ".svg":
                    handle = PILImage.open(io.BytesIO(_rasterize_svg(path.read_bytes())))
                else:
                    handle = PILImage.open(path)

            with handle:
                rgba = ImageOps.exif_transpose(handle).convert("RGBA")
        except FileNotFoundError as err:
            raise DecodeFailure(f"Image not found: {source}", operation="decode", target=source) from err
        except (UnidentifiedImageError, OSError, ValueError) as err:
            target = path if path is not None else "<bytes>"
            raise DecodeFailure(f"Cannot decode {target}: {err}", operation="decode", target=target) from err

        return Raster(pixels=np.array(rgba), path=path)

    # --------------------------------------------------
    def resample(self, raster: Raster, width: int, height: int) -> Raster:
        """
        Area filter when shrinking, Lanczos when enlarging, computed on
        premultiplied alpha so transparent pixels do not bleed into edges.
        """
        if width < 1 or height < 1:
            raise ResizeFailure(f"Invalid resample target {width}x{height}",
                                operation="resample", target=f"{width}x{height}")
        if (width, height) == raster.size:
            return raster

        shrinking = width <= raster.width and height <= raster.height
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LANCZOS4
        try:
            out = cv2.resize(_premultiply(raster.pixels), (width, height), interpolation=interpolation)
        except cv2.error as err:
            raise ResizeFailure(f"OpenCV resize failed: {err}",
                                operation="resample", target=f"{width}x{height}") from err
        return raster.with_pixels(_unpremultiply(out.reshape(height, width, 4)))

    # --------------------------------------------------
    def encode(self, raster: Raster, path: Path, fmt: str, quality: int = 90,
               transparent: bool = False) -> Path:
        if fmt not in self.output_formats:
            raise EncodeFailure(
                f"Fallback engine supports only {', '.join(sorted(self.output_formats))} outputs, "
                f"not {fmt!r}. Install ImageMagick for advanced formats.",
                operation="encode", target=path,
            )

        img = PILImage.fromarray(np.array(raster.pixels))
        params = {}
        if fmt in _FLATTEN:
            flat = PILImage.new("RGBA", img.size, (255, 255, 255, 255))
            flat.alpha_composite(img)
            img = flat.convert("RGB")
        if fmt in ("jpeg", "webp"):
            params["quality"] = quality
        elif fmt == "png":
            params["compress_level"] = 9 if quality < 95 else 6
        elif fmt == "ico":
            fitting = [(s, s) for s in ICO_SIZES if s <= min(raster.size)]
            params["sizes"] = fitting or [raster.size]

        try:
            img.save(path, format=_PIL_FORMATS[fmt], **params)
        except (OSError, ValueError) as err:
            raise EncodeFailure(f"Pillow could not write {path}: {err}", operation="encode", target=path) from err
        return Path(path)
