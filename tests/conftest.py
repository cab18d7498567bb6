import numpy as np
import pytest
from PIL import Image as PILImage

from pixelforge.models.pillow_engine import PillowEngine
from pixelforge.models.raster import Raster
from pixelforge.services.background_service import BackgroundService


@pytest.fixture
def engine():
    return PillowEngine()


@pytest.fixture
def background_service(engine):
    return BackgroundService(engine)


@pytest.fixture
def make_raster():
    """Solid raster factory: make_raster(w, h, (r, g, b, a))."""
    def _make(width, height, rgba=(255, 255, 255, 255)):
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[:, :] = rgba
        return Raster(arr)
    return _make


@pytest.fixture
def logo():
    """64x64 white canvas with a 16x16 blue square in the middle."""
    arr = np.full((64, 64, 4), 255, dtype=np.uint8)
    arr[24:40, 24:40] = (0, 0, 255, 255)
    return Raster(arr)


@pytest.fixture
def save_png(tmp_path):
    def _save(raster, name="source.png"):
        path = tmp_path / name
        PILImage.fromarray(np.array(raster.pixels)).save(path)
        return path
    return _save
