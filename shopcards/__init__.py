"""ShopCards - product card and transition frame renderer."""

from .card_compositor import CardCompositor, CardLayout, CardScene
from .errors import CardError, ConfigurationError, ImageLoadError, RenderSurfaceError
from .image_loader import ImageLoader
from .models import (
    DEFAULT_CARD_CONFIG,
    DEFAULT_TRANSITION_CONFIG,
    CardConfig,
    CustomColors,
    Product,
    RenderedImage,
    TransitionConfig,
)
from .templates import TEMPLATES, Palette, get_template, resolve_palette
from .transitions import TransitionFrameGenerator, expected_frame_count, frames_per_transition

__version__ = "0.1.0"


async def render_card(product, description, config=None):
    """Render one card with a default compositor."""
    return await CardCompositor().render_card(product, description, config)


async def render_frame_sequence(product, description, images=None, config=None, transition_config=None):
    """Render a transition frame sequence with a default generator."""
    return await TransitionFrameGenerator().render_frame_sequence(
        product, description, images, config, transition_config
    )


__all__ = [
    "CardCompositor",
    "CardLayout",
    "CardScene",
    "CardError",
    "ConfigurationError",
    "ImageLoadError",
    "RenderSurfaceError",
    "ImageLoader",
    "DEFAULT_CARD_CONFIG",
    "DEFAULT_TRANSITION_CONFIG",
    "CardConfig",
    "CustomColors",
    "Product",
    "RenderedImage",
    "TransitionConfig",
    "TEMPLATES",
    "Palette",
    "get_template",
    "resolve_palette",
    "TransitionFrameGenerator",
    "expected_frame_count",
    "frames_per_transition",
    "render_card",
    "render_frame_sequence",
]
