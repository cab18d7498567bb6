from __future__ import annotations
from dataclasses import dataclass

from .color import RGBA


@dataclass(frozen=True)
class BackgroundDetectionOptions:
    """
    Tunables for border-based background inference.

    alpha_threshold is a raw 0-255 sample value; dominant_share is the
    empirical switch between "dominant bucket" and "global mean".
    """
    sample_size: int = 256             # longest side analysed
    border_fraction: float = 0.05      # of min(w, h); floor 2 px
    alpha_threshold: int = 10          # below this a sample is transparent
    quant_bits: int = 4                # bits kept per channel for bucketing
    transparent_border_ratio: float = 0.8
    dominant_share: float = 0.4
    min_samples: int = 16

    def __post_init__(self):
        if not 1 <= self.quant_bits <= 8:
            raise ValueError(f"quant_bits={self.quant_bits} outside [1, 8]")
        if self.sample_size < 1:
            raise ValueError(f"sample_size={self.sample_size} must be positive")


@dataclass(frozen=True)
class BackgroundResult:
    color: RGBA
    is_transparent: bool
