# models/magick_engine.py
"""
Primary engine: wraps the ImageMagick command-line tool.

• Rasters travel over stdin/stdout as raw 8-bit RGBA; decode reads PAM so
  the dimensions come back with the pixels.
• Binary discovery: MAGICK_PATH → magick → convert → bundled
  $MAGICK_DEFAULT_DIR/bin/magick.
• Keying and compositing stay in-process: -fuzz/-transparent would also
  weigh alpha, and keying matches on RGB distance only.
"""
from __future__ import annotations
import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Type

import numpy as np
from dotenv import load_dotenv

from .color import RGBA
from .errors import DecodeFailure, EncodeFailure, EngineUnavailable, PixelForgeError, ResizeFailure
from .raster import Raster
from .raster_engine import RasterEngine, Source, cover_crop
from .specs import FitMode, FitSpec

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_BUNDLE_DIR = "/var/task/bin/imagemagick"
ICON_AUTO_RESIZE = "256,128,64,48,32,16"


def parse_pam(data: bytes, target: str = "<stdin>") -> np.ndarray:
    """
    Parse a single PAM (P7) image into an (H, W, 4) uint8 RGBA array.

    Gray, gray+alpha and RGB tuples are expanded; 16-bit samples are
    scaled down to 8 bits.
    """
    marker = b"ENDHDR\n"
    end = data.find(marker)
    if not data.startswith(b"P7") or end < 0:
        raise DecodeFailure("ImageMagick returned no PAM header", operation="decode", target=target)

    header = {}
    for line in data[:end].decode("ascii", "replace").splitlines()[1:]:
        parts = line.split(None, 1)
        if len(parts) == 2:
            header[parts[0].upper()] = parts[1].strip()

    try:
        width, height = int(header["WIDTH"]), int(header["HEIGHT"])
        depth, maxval = int(header["DEPTH"]), int(header.get("MAXVAL", "255"))
        dtype = np.dtype(">u2") if maxval > 255 else np.dtype(np.uint8)
        body = data[end + len(marker):]
        arr = np.frombuffer(body, dtype=dtype, count=width * height * depth).reshape(height, width, depth)
    except (KeyError, ValueError) as err:
        raise DecodeFailure(f"Malformed PAM output: {err}", operation="decode", target=target) from err

    if maxval != 255:
        arr = np.floor(arr.astype(np.float64) * 255.0 / maxval + 0.5).astype(np.uint8)

    opaque = np.full((height, width, 1), 255, dtype=np.uint8)
    if depth == 1:
        return np.concatenate([arr, arr, arr, opaque], axis=2)
    if depth == 2:
        gray = arr[:, :, :1]
        return np.concatenate([gray, gray, gray, arr[:, :, 1:2]], axis=2)
    if depth == 3:
        return np.concatenate([arr, opaque], axis=2)
    return arr[:, :, :4]


class MagickEngine(RasterEngine):
    name = "primary"
    output_formats = frozenset({"png", "jpeg", "webp", "avif", "ico", "tiff", "gif", "bmp", "heif"})

    def __init__(self, command: str | None = None, runner: Callable = subprocess.run):
        """
        Args:
            command: Explicit binary; located automatically when omitted.
            runner: subprocess.run compatible callable (injected by tests).
        """
        self.runner = runner
        self.command = command or self.locate()

    # ─── Discovery ───────────────────────────────────────────────────
    @staticmethod
    def candidates() -> List[str]:
        found = []
        explicit = os.getenv("MAGICK_PATH")
        if explicit:
            found.append(explicit)
        found += ["magick", "convert"]
        base_dir = os.getenv("MAGICK_DEFAULT_DIR", DEFAULT_BUNDLE_DIR)
        found.append(str(Path(base_dir) / "bin" / "magick"))
        return found

    @classmethod
    def locate(cls) -> str:
        """First candidate that exists and answers `-version`."""
        for candidate in cls.candidates():
            resolved = shutil.which(candidate)
            if resolved is None:
                continue
            try:
                subprocess.run([resolved, "-version"], capture_output=True, check=True)
            except (OSError, subprocess.CalledProcessError) as err:
                logger.debug(f"Skipping {resolved}: {err}")
                continue
            logger.debug(f"Using ImageMagick at {resolved}")
            return resolved

        raise EngineUnavailable(
            "ImageMagick is not installed or not found in PATH. Install it "
            "(macOS: brew install imagemagick, Ubuntu/Debian: apt-get install imagemagick, "
            "Windows: choco install imagemagick) or select the fallback engine.",
            operation="locate",
        )

    @classmethod
    def is_available(cls) -> bool:
        try:
            cls.locate()
        except EngineUnavailable:
            return False
        return True

    # ─── Process plumbing ────────────────────────────────────────────
    def _run(self, args: List[str], *, stdin: bytes | None, operation: str, target,
             error: Type[PixelForgeError]) -> bytes:
        logger.debug(f"{self.command} {' '.join(args)}")
        try:
            proc = self.runner([self.command, *args], input=stdin, capture_output=True)
        except OSError as err:
            raise EngineUnavailable(f"Could not execute {self.command}: {err}",
                                    operation=operation, target=target) from err

        if proc.returncode != 0:
            stderr = (proc.stderr or b"").decode("utf-8", "replace").strip()
            raise error(f"ImageMagick {operation} failed: {stderr or f'exit code {proc.returncode}'}",
                        operation=operation, target=target)
        return proc.stdout

    @staticmethod
    def _raw_input(raster: Raster) -> List[str]:
        return ["-size", f"{raster.width}x{raster.height}", "-depth", "8", "rgba:-"]

    @staticmethod
    def _read_raw(data: bytes, width: int, height: int, source: Raster, operation: str) -> Raster:
        try:
            out = Raster.from_bytes(width, height, data, path=source.path)
        except ValueError as err:
            raise ResizeFailure(f"ImageMagick {operation} returned unexpected output: {err}",
                                operation=operation, target=f"{width}x{height}") from err
        return out

    def _transform(self, raster: Raster, ops: List[str], width: int, height: int, operation: str) -> Raster:
        args = self._raw_input(raster) + ops + ["+repage", "rgba:-"]
        out = self._run(args, stdin=raster.to_bytes(), operation=operation,
                        target=f"{width}x{height}", error=ResizeFailure)
        return self._read_raw(out, width, height, raster, operation)

    # ─── Capabilities ────────────────────────────────────────────────
    def decode(self, source: Source) -> Raster:
        if isinstance(source, (bytes, bytearray)):
            path, target, stdin, input_arg = None, "<bytes>", bytes(source), "-[0]"
        else:
            path = Path(source)
            if not path.is_file():
                raise DecodeFailure(f"Image not found or unreadable: {path}", operation="decode", target=path)
            target, stdin, input_arg = str(path), None, f"{path}[0]"

        args = ["-background", "none", input_arg, "-auto-orient",
                "-colorspace", "sRGB", "-type", "TrueColorAlpha", "-depth", "8", "pam:-"]
        out = self._run(args, stdin=stdin, operation="decode", target=target, error=DecodeFailure)
        return Raster(pixels=parse_pam(out, target), path=path)

    def resample(self, raster: Raster, width: int, height: int) -> Raster:
        if width < 1 or height < 1:
            raise ResizeFailure(f"Invalid resample target {width}x{height}",
                                operation="resample", target=f"{width}x{height}")
        ops = ["-filter", "Lanczos", "-resize", f"{width}x{height}!"]
        return self._transform(raster, ops, width, height, "resample")

    def fit(self, raster: Raster, spec: FitSpec, background: RGBA) -> Raster:
        tw, th = spec.target_width, spec.target_height
        size = f"{tw}x{th}"
        ops = ["-filter", "Lanczos"]

        if spec.zoom != 1.0:
            ops += ["-resize", f"{spec.zoom * 100:g}%",
                    "-gravity", "center", "-background", "none",
                    "-extent", f"{raster.width}x{raster.height}"]

        if spec.fit_mode is FitMode.CONTAIN:
            ops += ["-resize", size, "-gravity", "center",
                    "-background", background.to_magick(), "-extent", size]
        elif spec.fit_mode is FitMode.COVER:
            cw, ch = cover_crop(raster.width, raster.height, tw, th)
            ops += ["-gravity", "center", "-crop", f"{cw}x{ch}+0+0", "+repage",
                    "-resize", f"{size}!"]
        else:
            ops += ["-resize", f"{size}!"]

        return self._transform(raster, ops, tw, th, "resize")

    def colorize(self, raster: Raster, color: RGBA, opacity: float = 0.5) -> Raster:
        if not 0.0 <= opacity <= 1.0:
            raise ValueError(f"opacity={opacity} outside [0, 1]")
        ops = ["-fill", color.to_magick(), "-colorize", f"{round(opacity * 100)}%"]
        return self._transform(raster, ops, raster.width, raster.height, "colorize")

    def encode(self, raster: Raster, path: Path, fmt: str, quality: int = 90,
               transparent: bool = False) -> Path:
        if fmt not in self.output_formats:
            raise EncodeFailure(f"ImageMagick engine cannot write {fmt!r}", operation="encode", target=path)

        args = self._raw_input(raster)
        if fmt == "png":
            # RGBA true-color, never an 8-bit palette.
            args += ["-define", "png:color-type=6", "-define", "png:bit-depth=8"]
            if quality < 95:
                args += ["-define", "png:compression-filter=5", "-define", "png:compression-level=9"]
            args += ["-define", "png:format=png32"]
        if fmt in ("jpeg", "bmp"):
            args += ["-background", "white", "-flatten"]
        if fmt in ("jpeg", "webp", "avif", "heif"):
            args += ["-quality", str(quality)]
        if fmt == "ico":
            args += ["-define", f"icon:auto-resize={ICON_AUTO_RESIZE}", "-compress", "zip"]
        if fmt == "webp":
            args += ["-define", "webp:alpha-quality=100"]
            if transparent:
                args += ["-define", "webp:alpha-compression=1"]

        args.append(f"{fmt.upper()}:{path}")
        self._run(args, stdin=raster.to_bytes(), operation="encode", target=path, error=EncodeFailure)
        return Path(path)
