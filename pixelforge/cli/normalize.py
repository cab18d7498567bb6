import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..models.errors import PixelForgeError
from ..models.specs import FitMode
from ..pipeline.background_remover import make_background_transparent
from ..pipeline.size_generator import SizeRequest, generate_sizes
from ..pipeline.svg_icon import generate_svg_icon
from ..services.engine_service import EngineService

logger = logging.getLogger("pixelforge")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pixelforge", description="Normalize images into derivative sizes.")
    parser.add_argument("--engine", choices=["auto", "primary", "fallback"], default=None,
                        help="raster engine (default: $PIXELFORGE_ENGINE or auto)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sizes = sub.add_parser("sizes", help="generate resized derivatives")
    sizes.add_argument("source")
    sizes.add_argument("-o", "--output-dir", required=True)
    sizes.add_argument("-s", "--size", dest="sizes", action="append", required=True,
                       type=SizeRequest.parse, metavar="WxH:NAME")
    sizes.add_argument("--fit", choices=[m.value for m in FitMode], default=FitMode.COVER.value)
    sizes.add_argument("--background", default="transparent")
    sizes.add_argument("--zoom", type=float, default=1.0)
    sizes.add_argument("--auto-background", action="store_true")
    sizes.add_argument("--format", dest="fmt", default=None)
    sizes.add_argument("--quality", type=int, default=None)

    transparent = sub.add_parser("transparent", help="key the detected background to transparency")
    transparent.add_argument("input")
    transparent.add_argument("output")
    transparent.add_argument("--fuzz", type=float, default=None)

    icon = sub.add_parser("svg-icon", help="write an SVG favicon")
    icon.add_argument("source")
    icon.add_argument("output")
    icon.add_argument("--size", type=int, default=64)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        engine = EngineService(args.engine).get()

        if args.command == "sizes":
            written = generate_sizes(
                args.source, args.sizes, args.output_dir,
                fit_mode=args.fit, background=args.background, zoom=args.zoom,
                auto_detect_background=args.auto_background, fmt=args.fmt,
                quality=args.quality, engine=engine, show_progress=True,
            )
            logger.info(f"Generated {len(written)} image(s) in {args.output_dir}")
        elif args.command == "transparent":
            make_background_transparent(args.input, args.output, fuzz_percent=args.fuzz, engine=engine)
        else:
            path = generate_svg_icon(args.source, args.output, size=args.size, engine=engine)
            logger.info(f"SVG icon written to {path}")
    except PixelForgeError as err:
        logger.error(f"{err.operation or args.command} failed: {err}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
