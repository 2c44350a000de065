"""Multi-image transition frame generator.

Produces the still frames for an animated product card: for every photo one
static card, then ``N`` frames morphing into the next photo (wrapping back to
the first). Frames are sampled at a fixed 30 fps; assembling them into a
GIF/video is left to the caller.
"""

import math
from fractions import Fraction
from typing import Optional, Sequence, Union

from PIL import Image

from .card_compositor import CardCompositor, CardScene, as_product
from .drawing import with_opacity
from .image_loader import ImageSource, describe_source
from .models import (
    DEFAULT_CARD_CONFIG,
    DEFAULT_TRANSITION_CONFIG,
    CardConfig,
    Product,
    RenderedImage,
    TransitionConfig,
)
from .utils import get_logger

logger = get_logger(__name__)

FRAME_RATE = 30

# Zoom effect: outgoing photo grows to 1.2x, incoming grows from 0.8x to 1x
ZOOM_OUT_GROWTH = 0.2
ZOOM_IN_START = 0.8


def frames_per_transition(transition_ms: Union[int, float]) -> int:
    """``ceil(transition_ms / 1000 * 30)`` computed exactly (no float drift)."""
    if transition_ms <= 0:
        return 0
    return math.ceil(Fraction(transition_ms) * FRAME_RATE / 1000)


def expected_frame_count(image_count: int, transition_config: TransitionConfig) -> int:
    """Length of the sequence ``render_frame_sequence`` returns for ``image_count`` photos."""
    if image_count <= 1 or not transition_config.enabled:
        return 1
    return image_count * (1 + frames_per_transition(transition_config.effective_transition_time))


class TransitionFrameGenerator:
    """Renders frame sequences that cross between product photos."""

    def __init__(self, compositor: Optional[CardCompositor] = None):
        self.compositor = compositor or CardCompositor()

    async def render_frame_sequence(
        self,
        product: Union[Product, dict],
        description: str,
        images: Optional[Sequence[ImageSource]] = None,
        config: Optional[CardConfig] = None,
        transition_config: Optional[TransitionConfig] = None,
    ) -> list[RenderedImage]:
        """
        Render the full frame sequence in playback order.

        Args:
            product: Product snapshot (or its API record)
            description: Description copy, identical on every frame
            images: Photos to cycle through; empty means ``[product.image_url]``
            config: Card render options
            transition_config: Timing and effect

        Returns:
            ``L * (1 + N)`` encoded frames for ``L`` photos, or a single card
            when there is one photo or transitions are disabled

        Raises:
            ImageLoadError: any photo fails to load (no partial sequence)
        """
        product = as_product(product)
        config = config or DEFAULT_CARD_CONFIG
        transition_config = transition_config or DEFAULT_TRANSITION_CONFIG
        sources = list(images or []) or [product.image_url]

        if len(sources) == 1 or not transition_config.enabled:
            card = await self.compositor.render_card(product, description, config, image=sources[0])
            card.metadata.update({"frame": 0, "image_index": 0, "kind": "static", "progress": 0.0})
            return [card]

        scene = self.compositor.prepare_scene(product, description, config)

        photos = []
        for source in sources:
            logger.debug(f"Loading photo {len(photos) + 1}/{len(sources)}: {describe_source(source)}")
            photos.append(await self.compositor.loader.load(source))

        photo_layers = [self.compositor.render_photo_layer(photo, scene) for photo in photos]
        cards = [self._full_card(layer, scene) for layer in photo_layers]

        steps = frames_per_transition(transition_config.effective_transition_time)
        effect = transition_config.effect
        frames: list[RenderedImage] = []

        for i, card in enumerate(cards):
            j = (i + 1) % len(cards)
            frames.append(self._encode(card, scene, len(frames), i, "static", 0.0))

            for k in range(1, steps + 1):
                progress = k / steps
                if effect == "slide":
                    surface = self.slide_frame(photo_layers[i], photo_layers[j], progress, scene)
                elif effect == "zoom":
                    surface = self.zoom_frame(photo_layers[i], photo_layers[j], progress, scene)
                else:
                    surface = self.fade_frame(card, cards[j], progress, scene)
                frames.append(self._encode(surface, scene, len(frames), i, effect, progress))

        logger.info(
            f"Rendered {len(frames)} frames ({len(cards)} photos, {steps} {effect} frames per transition)"
        )
        return frames

    # ==================================================================
    # Effects
    # ==================================================================

    def fade_frame(
        self,
        from_card: Image.Image,
        to_card: Image.Image,
        progress: float,
        scene: CardScene,
    ) -> Image.Image:
        """Cross-dissolve the complete cards, text and badges included."""
        surface = self.compositor.new_surface(scene.size, scene.palette.background)
        surface.alpha_composite(with_opacity(from_card, 1 - progress))
        surface.alpha_composite(with_opacity(to_card, progress))
        return surface

    def slide_frame(
        self,
        from_layer: Image.Image,
        to_layer: Image.Image,
        progress: float,
        scene: CardScene,
    ) -> Image.Image:
        """Push the outgoing photo left while the next one enters from the right edge."""
        width, _ = scene.size
        band = scene.layout.photo_band
        offset = round(progress * width)

        surface = self.compositor.render_background(scene)

        # Pass 1: photo band only, translated.
        moving = self.compositor.new_surface((width, band[3]))
        moving.paste(from_layer.crop(band), (-offset, 0))
        moving.paste(to_layer.crop(band), (width - offset, 0))
        surface.alpha_composite(moving)

        # Pass 2: fixed content, untransformed and unclipped.
        surface.alpha_composite(scene.content_layer)
        return surface

    def zoom_frame(
        self,
        from_layer: Image.Image,
        to_layer: Image.Image,
        progress: float,
        scene: CardScene,
    ) -> Image.Image:
        """Outgoing photo scales up and fades out; the next one scales up into place and fades in."""
        band = scene.layout.photo_band
        surface = self.compositor.render_background(scene)

        # Pass 1: photo band only, scaled around its centre.
        moving = self.compositor.new_surface((band[2], band[3]))
        moving.alpha_composite(
            self._scaled(from_layer.crop(band), 1 + progress * ZOOM_OUT_GROWTH, 1 - progress)
        )
        moving.alpha_composite(
            self._scaled(to_layer.crop(band), ZOOM_IN_START + progress * (1 - ZOOM_IN_START), progress)
        )
        surface.alpha_composite(moving)

        # Pass 2: fixed content, untransformed and unclipped.
        surface.alpha_composite(scene.content_layer)
        return surface

    # ==================================================================
    # Helpers
    # ==================================================================

    def _full_card(self, photo_layer: Image.Image, scene: CardScene) -> Image.Image:
        card = photo_layer.copy()
        card.alpha_composite(scene.content_layer)
        return card

    def _scaled(self, band_image: Image.Image, scale: float, opacity: float) -> Image.Image:
        """``band_image`` scaled around its centre, faded, on a same-size transparent canvas."""
        width, height = band_image.size
        scaled_w = max(1, round(width * scale))
        scaled_h = max(1, round(height * scale))
        scaled = with_opacity(band_image.resize((scaled_w, scaled_h), Image.LANCZOS), opacity)

        canvas = self.compositor.new_surface((width, height))
        canvas.paste(scaled, (round((width - scaled_w) / 2), round((height - scaled_h) / 2)))
        return canvas

    def _encode(
        self,
        surface: Image.Image,
        scene: CardScene,
        frame: int,
        image_index: int,
        kind: str,
        progress: float,
    ) -> RenderedImage:
        rendered = self.compositor.encode(surface, scene)
        rendered.metadata.update(
            {"frame": frame, "image_index": image_index, "kind": kind, "progress": progress}
        )
        return rendered
