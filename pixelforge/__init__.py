"""
pixelforge: image normalization engine.

Decode one source image, infer its background, resize it under a
Cover / Contain / Fill policy, key colors to transparency and encode
derivatives through ImageMagick or the in-process Pillow fallback.
"""
from .models.background import BackgroundDetectionOptions, BackgroundResult
from .models.color import RGBA, TRANSPARENT, parse_color
from .models.errors import (
    CleanupFailure,
    DecodeFailure,
    EncodeFailure,
    EngineUnavailable,
    FallbackWarning,
    PixelForgeError,
    ResizeFailure,
)
from .models.raster import Raster
from .models.specs import FitMode, FitSpec, KeySpec
from .pipeline.background_remover import make_background_transparent
from .pipeline.size_generator import SizeRequest, generate_sizes
from .pipeline.social_preview import create_social_preview
from .pipeline.svg_icon import generate_svg_icon
from .services.engine_service import EngineService
from .services.image_service import ImageService

__version__ = "1.0.0"
