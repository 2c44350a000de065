"""ShopCards - command-line entry point."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from .card_compositor import CardCompositor
from .config import settings
from .errors import CardError, ConfigurationError
from .models import TRANSITION_EFFECTS, CardConfig, Product, RenderedImage, TransitionConfig
from .templates import TEMPLATES
from .transitions import TransitionFrameGenerator
from .utils import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="ShopCards - Render marketplace product cards and transition frames",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m shopcards.main --product fone.json --description "Som incrível"
  python -m shopcards.main --product fone.json --image a.jpg --image b.jpg --transition slide
  python -m shopcards.main --product fone.json --template bold --format jpeg
        """,
    )

    parser.add_argument(
        "--product",
        type=Path,
        required=True,
        help="JSON product record (productName, price, imageUrl, ...)",
    )
    parser.add_argument(
        "--description",
        default="",
        help="Description copy drawn in the card",
    )
    parser.add_argument(
        "--description-file",
        type=Path,
        help="Read the description copy from a file",
    )
    parser.add_argument(
        "--image",
        action="append",
        default=[],
        help="Image URL or path (repeat for a transition sequence)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="JSON card config (width, height, format, template, customColors, ...)",
    )
    parser.add_argument(
        "--template",
        choices=sorted(TEMPLATES),
        help="Visual template",
    )
    parser.add_argument(
        "--format",
        choices=["png", "jpeg", "jpg"],
        help="Output format",
    )
    parser.add_argument("--width", type=int, help="Canvas width in pixels")
    parser.add_argument("--height", type=int, help="Canvas height in pixels")
    parser.add_argument(
        "--transition",
        choices=TRANSITION_EFFECTS,
        default="fade",
        help="Transition effect between images",
    )
    parser.add_argument(
        "--transition-time",
        type=int,
        default=500,
        help="Transition length in milliseconds",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Output directory (defaults to OUTPUT_DIR)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def _load_json(path: Path, what: str) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read {what} from {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{what.capitalize()} in {path} must be a JSON object")
    return data


def build_card_config(args: argparse.Namespace) -> CardConfig:
    """Merge --config with the individual flags (flags win)."""
    data: dict[str, Any] = _load_json(args.config, "card config") if args.config else {}
    config = CardConfig.from_dict(data)

    overrides = {
        "template": args.template,
        "format": args.format,
        "width": args.width,
        "height": args.height,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return config.with_overrides(**overrides) if overrides else config


def read_description(args: argparse.Namespace) -> str:
    if args.description_file:
        try:
            return args.description_file.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Could not read description file: {e}") from e
    return args.description


async def render(args: argparse.Namespace) -> list[RenderedImage]:
    product = Product.from_dict(_load_json(args.product, "product"))
    description = read_description(args)
    config = build_card_config(args)

    if len(args.image) > 1:
        transition = TransitionConfig(effect=args.transition, transition_time=args.transition_time)
        generator = TransitionFrameGenerator(CardCompositor())
        return await generator.render_frame_sequence(product, description, args.image, config, transition)

    image = args.image[0] if args.image else None
    return [await CardCompositor().render_card(product, description, config, image=image)]


def write_outputs(images: list[RenderedImage], output_dir: Path) -> list[Path]:
    """Write ``card.<ext>`` for a single image, ``frame_0000.<ext>...`` for a sequence."""
    if len(images) == 1:
        return [images[0].save(output_dir / f"card.{images[0].extension}")]
    return [
        image.save(output_dir / f"frame_{index:04d}.{image.extension}")
        for index, image in enumerate(images)
    ]


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    log_level = "DEBUG" if args.debug else settings.log_level
    setup_logging(level=log_level)

    output_dir = args.output_dir or settings.output_dir

    try:
        images = asyncio.run(render(args))
        paths = write_outputs(images, output_dir)
    except CardError as e:
        logger.error(f"Render failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"Could not write output to {output_dir}: {e}")
        return 1

    logger.info(f"Wrote {len(paths)} file(s) to {output_dir}")
    for path in paths:
        print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
