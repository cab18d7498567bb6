from pathlib import Path
from typing import Union

from ..models.errors import EncodeFailure
from ..models.raster import Raster
from ..models.raster_engine import RasterEngine, Source

SUPPORTED_INPUT_FORMATS = {".png", ".jpg", ".jpeg", ".webp", ".avif", ".tiff", ".tif", ".gif", ".svg", ".bmp"}

_FORMAT_ALIASES = {"jpg": "jpeg", "tif": "tiff"}


class RasterRepository:
    """
    Handles file I/O for Raster entities through the active engine.
    """
    def __init__(self, engine: RasterEngine):
        self.engine = engine

    @staticmethod
    def is_supported_input(path: Union[str, Path]) -> bool:
        return Path(path).suffix.lower() in SUPPORTED_INPUT_FORMATS

    @staticmethod
    def resolve_format(path: Union[str, Path], fmt: str | None = None) -> str:
        """
        Output format from an explicit override or the path extension.
        "jpg" → "jpeg", "tif" → "tiff"; dots and case are ignored.
        """
        name = fmt if fmt else Path(path).suffix
        name = name.lstrip(".").lower()
        if not name:
            raise EncodeFailure(f"Cannot infer output format for {path}", operation="encode", target=path)
        return _FORMAT_ALIASES.get(name, name)

    def load(self, source: Source) -> Raster:
        return self.engine.decode(source)

    def save(self, raster: Raster, path: Union[str, Path], fmt: str, quality: int = 90,
             transparent: bool = False) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return self.engine.encode(raster, path, fmt, quality=quality, transparent=transparent)
