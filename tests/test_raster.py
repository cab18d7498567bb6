import numpy as np
import pytest

from pixelforge.models.color import RGBA
from pixelforge.models.raster import Raster


def test_from_bytes_rejects_wrong_length():
    with pytest.raises(ValueError):
        Raster.from_bytes(2, 2, b"\x00" * 15)


def test_from_bytes_round_trip_layout():
    data = bytes(range(2 * 1 * 4))
    raster = Raster.from_bytes(2, 1, data)
    assert raster.size == (2, 1)
    assert tuple(raster.pixels[0, 1]) == (4, 5, 6, 7)
    assert raster.to_bytes() == data


def test_pixels_are_read_only():
    raster = Raster(np.zeros((3, 3, 4), dtype=np.uint8))
    with pytest.raises(ValueError):
        raster.pixels[0, 0, 0] = 1


def test_source_array_is_not_aliased():
    arr = np.zeros((2, 2, 4), dtype=np.uint8)
    raster = Raster(arr)
    arr[:] = 9
    assert raster.pixels.max() == 0


@pytest.mark.parametrize("shape", [(2, 2, 3), (2, 2), (0, 4, 4)])
def test_invalid_shapes(shape):
    with pytest.raises(ValueError):
        Raster(np.zeros(shape, dtype=np.uint8))


def test_blank_converts_alpha_to_bytes():
    raster = Raster.blank(3, 2, RGBA(10, 20, 30, 1.0))
    assert raster.size == (3, 2)
    assert tuple(raster.pixels[1, 2]) == (10, 20, 30, 255)


def test_with_pixels_keeps_path(tmp_path):
    raster = Raster(np.zeros((1, 1, 4), dtype=np.uint8), path=tmp_path / "a.png")
    other = raster.with_pixels(np.ones((2, 2, 4), dtype=np.uint8))
    assert other.path == tmp_path / "a.png"
    assert other.size == (2, 2)
