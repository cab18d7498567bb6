from __future__ import annotations
from pathlib import Path


class PixelForgeError(Exception):
    """
    Base class for every failure surfaced by the engine.

    Carries the operation name and its target (a path or "WxH") so callers
    can log or retry with another engine.
    """

    def __init__(self, message: str, *, operation: str | None = None, target: str | Path | None = None):
        super().__init__(message)
        self.operation = operation
        self.target = str(target) if target is not None else None


class DecodeFailure(PixelForgeError):
    """Unsupported or corrupt input."""


class EngineUnavailable(PixelForgeError):
    """The ImageMagick binary could not be found or executed."""


class ResizeFailure(PixelForgeError):
    """The transform rejected the request (e.g. a zero-size target)."""


class EncodeFailure(PixelForgeError):
    """Output format not supported by the active engine, or the write failed."""


class CleanupFailure(PixelForgeError):
    """
    A scratch file could not be removed.

    Never raised: TempArtifactManager.cleanup() returns these as records.
    """


class FallbackWarning(UserWarning):
    """Issued when an output was substituted (ICO -> PNG, SVG -> PNG)."""
