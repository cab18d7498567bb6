from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from PIL import ImageColor


@dataclass(frozen=True)
class RGBA:
    """
    Color value: 8-bit RGB channels plus alpha normalized to [0, 1].

    Raster samples keep alpha as raw 0-255 bytes; conversion happens here,
    at the boundary (see alpha_byte / from_bytes).
    """
    r: int
    g: int
    b: int
    alpha: float = 1.0

    def __post_init__(self):
        for name in ("r", "g", "b"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ValueError(f"Channel {name}={value} outside [0, 255]")
            object.__setattr__(self, name, int(value))
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"alpha={self.alpha} outside [0, 1]")

    @classmethod
    def from_bytes(cls, r: int, g: int, b: int, a: int = 255) -> "RGBA":
        return cls(r, g, b, a / 255.0)

    @property
    def rgb(self) -> tuple[int, int, int]:
        return self.r, self.g, self.b

    @property
    def alpha_byte(self) -> int:
        return int(round(self.alpha * 255))

    @property
    def is_transparent(self) -> bool:
        return self.alpha_byte == 0

    def as_bytes(self) -> tuple[int, int, int, int]:
        return self.r, self.g, self.b, self.alpha_byte

    def to_hex(self) -> str:
        return "#{:02x}{:02x}{:02x}".format(*self.rgb)

    def to_magick(self) -> str:
        """ImageMagick color argument ("none" for the transparent sentinel)."""
        if self.is_transparent:
            return "none"
        if self.alpha_byte == 255:
            return f"rgb({self.r},{self.g},{self.b})"
        return f"rgba({self.r},{self.g},{self.b},{self.alpha:.4f})"


TRANSPARENT = RGBA(0, 0, 0, 0.0)
WHITE = RGBA(255, 255, 255)
BLACK = RGBA(0, 0, 0)

ColorLike = Union[RGBA, str, tuple]


def parse_color(value: ColorLike) -> RGBA:
    """
    Accepts an RGBA, an (r, g, b[, a]) tuple with 0-255 channels, or any
    string Pillow understands (#rgb, #rrggbb, rgb(), css names) plus
    "transparent" / "none".
    """
    if isinstance(value, RGBA):
        return value
    if isinstance(value, tuple):
        if len(value) == 3:
            return RGBA(*value)
        if len(value) == 4:
            return RGBA.from_bytes(*value)
        raise ValueError(f"Color tuple must have 3 or 4 items: {value!r}")
    text = str(value).strip().lower()
    if text in ("transparent", "none"):
        return TRANSPARENT
    try:
        r, g, b, a = ImageColor.getcolor(text, "RGBA")
    except ValueError as err:
        raise ValueError(f"Unrecognised color: {value!r}") from err
    return RGBA.from_bytes(r, g, b, a)
