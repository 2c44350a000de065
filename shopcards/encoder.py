"""Encode finished surfaces into PNG/JPEG buffers."""

import io

from PIL import Image

from .drawing import RGBA
from .errors import RenderSurfaceError
from .models import CardConfig, RenderedImage


def encode_surface(surface: Image.Image, config: CardConfig, background: RGBA) -> RenderedImage:
    """
    Encode a surface in the configured format.

    JPEG has no alpha, so the surface is flattened onto ``background`` first
    and ``config.quality`` (0..1) maps to Pillow's 1..100 scale. PNG ignores
    quality.
    """
    buffer = io.BytesIO()
    try:
        if config.format == "jpeg":
            flat = Image.new("RGBA", surface.size, background[:3] + (255,))
            flat.alpha_composite(surface.convert("RGBA"))
            quality = max(1, min(100, round(config.quality * 100)))
            flat.convert("RGB").save(buffer, "JPEG", quality=quality)
        else:
            surface.save(buffer, "PNG")
    except (OSError, ValueError) as e:
        raise RenderSurfaceError(f"Failed to encode {config.format} surface: {e}") from e

    return RenderedImage(
        data=buffer.getvalue(),
        mime_type=config.mime_type,
        width=surface.width,
        height=surface.height,
    )
