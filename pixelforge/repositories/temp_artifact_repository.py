from __future__ import annotations
import logging
import secrets
import string
import tempfile
import time
import weakref
from pathlib import Path
from typing import List

from ..models.errors import CleanupFailure

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _remove_all(paths: List[Path]) -> List[CleanupFailure]:
    failures = []
    while paths:
        path = paths.pop()
        try:
            path.unlink(missing_ok=True)
        except OSError as err:
            logger.debug(f"Could not remove scratch file {path}: {err}")
            failures.append(CleanupFailure(str(err), operation="cleanup", target=path))
    return failures


class TempArtifactManager:
    """
    Owns the scratch files of one processor.

    • Names are temp[-tag]-<epoch ms>-<9 base36 chars><suffix>.
    • cleanup() deletes best-effort and never raises; failures come back
      as CleanupFailure records.
    • Leftovers are also removed when the manager is garbage-collected.
    """

    def __init__(self, directory: str | Path | None = None, prefix: str = "temp"):
        self.directory = Path(directory) if directory else None
        self.prefix = prefix
        self._paths: List[Path] = []
        self._finalizer = weakref.finalize(self, _remove_all, self._paths)

    def __enter__(self) -> "TempArtifactManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    @property
    def artifacts(self) -> tuple:
        return tuple(self._paths)

    def new_path(self, tag: str = "", suffix: str = ".png", directory: str | Path | None = None) -> Path:
        """Reserve and register a unique scratch path (the file is not created)."""
        base = Path(directory or self.directory or tempfile.gettempdir())
        base.mkdir(parents=True, exist_ok=True)
        stamp = int(time.time() * 1000)
        rand = "".join(secrets.choice(_BASE36) for _ in range(9))
        name = "-".join(p for p in (self.prefix, tag, str(stamp), rand) if p)
        return self.register(base / f"{name}{suffix}")

    def register(self, path: str | Path) -> Path:
        path = Path(path)
        self._paths.append(path)
        return path

    def cleanup(self) -> List[CleanupFailure]:
        failures = _remove_all(self._paths)
        if failures:
            logger.debug(f"{len(failures)} scratch file(s) could not be removed")
        return failures
