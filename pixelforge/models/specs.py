from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import numbers

from .color import RGBA, TRANSPARENT, ColorLike, parse_color
from .errors import ResizeFailure


class FitMode(str, Enum):
    COVER = "cover"       # scale to fill, center-crop overflow
    CONTAIN = "contain"   # scale to fit, pad with background
    FILL = "fill"         # stretch each axis independently


@dataclass(frozen=True)
class FitSpec:
    """
    Value-object describing one derivative size.

    zoom > 1 zooms into the center of the source before the fit policy
    runs; zoom < 1 shrinks it inside a transparent margin.
    """
    target_width: int
    target_height: int
    fit_mode: FitMode = FitMode.COVER
    background: RGBA = TRANSPARENT
    zoom: float = 1.0
    auto_detect_background: bool = False

    def __post_init__(self):
        target = f"{self.target_width}x{self.target_height}"
        for name in ("target_width", "target_height"):
            value = getattr(self, name)
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
                raise ResizeFailure(f"Target size must be positive integers, got {target}",
                                    operation="resize", target=target)
            object.__setattr__(self, name, int(value))
        if not self.zoom > 0:
            raise ResizeFailure(f"Zoom must be positive, got {self.zoom}", operation="resize", target=target)

        mode = self.fit_mode
        if not isinstance(mode, FitMode):
            mode = FitMode(str(mode).lower())
        object.__setattr__(self, "fit_mode", mode)
        object.__setattr__(self, "background", parse_color(self.background))

    @property
    def target(self) -> str:
        return f"{self.target_width}x{self.target_height}"

    def with_background(self, background: ColorLike) -> "FitSpec":
        return FitSpec(
            target_width=self.target_width,
            target_height=self.target_height,
            fit_mode=self.fit_mode,
            background=parse_color(background),
            zoom=self.zoom,
            auto_detect_background=False,
        )


@dataclass(frozen=True)
class KeySpec:
    """Color to key out and its tolerance, as a percentage of max RGB distance."""
    target_color: RGBA
    fuzz_percent: float = 12.0

    def __post_init__(self):
        object.__setattr__(self, "target_color", parse_color(self.target_color))
        if not 0.0 <= self.fuzz_percent <= 100.0:
            raise ValueError(f"fuzz_percent={self.fuzz_percent} outside [0, 100]")
