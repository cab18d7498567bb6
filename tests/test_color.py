import pytest

from pixelforge.models.color import BLACK, RGBA, TRANSPARENT, WHITE, parse_color


def test_parse_hex():
    assert parse_color("#ff0000") == RGBA(255, 0, 0, 1.0)
    assert parse_color("#FFF") == WHITE


@pytest.mark.parametrize("text", ["transparent", "none", " None "])
def test_parse_transparent(text):
    assert parse_color(text) == TRANSPARENT


def test_parse_tuples():
    assert parse_color((0, 0, 0)) == BLACK
    assert parse_color((0, 0, 255, 0)).is_transparent


def test_parse_invalid():
    with pytest.raises(ValueError):
        parse_color("definitely-not-a-color")
    with pytest.raises(ValueError):
        parse_color((1, 2))


def test_channel_validation():
    with pytest.raises(ValueError):
        RGBA(256, 0, 0)
    with pytest.raises(ValueError):
        RGBA(0, 0, 0, 1.5)


def test_alpha_boundary_conversion():
    color = RGBA.from_bytes(10, 20, 30, 0)
    assert color.alpha == 0.0
    assert color.as_bytes() == (10, 20, 30, 0)
    assert WHITE.alpha_byte == 255


def test_magick_and_hex_forms():
    assert TRANSPARENT.to_magick() == "none"
    assert RGBA(1, 2, 3).to_magick() == "rgb(1,2,3)"
    assert RGBA(255, 16, 0).to_hex() == "#ff1000"
