"""Single-frame product card compositor.

Draws a product photo, price/rating/badge overlays and the description chip
onto a fixed-size canvas and encodes it as PNG or JPEG.

The card is built from two layers:

- photo layer: background, fitted photo with drop shadow, vignette and the
  seam gradient at the bottom of the photo band (depends on the image)
- content layer: badges, title, price block, rating, shipping line,
  description chip, call-to-action button and watermark (independent of
  the image, so it is computed once per scene and reused for every frame)
"""

import math
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from PIL import Image, ImageDraw

from .config import settings
from .drawing import (
    RGBA,
    adjust_alpha,
    adjust_color,
    composite_with_shadow,
    draw_star,
    draw_wrapped_text,
    fit_contain,
    linear_gradient,
    paste_rounded,
    rounded_rect,
    text_width,
    vignette,
    wrap_lines,
)
from .encoder import encode_surface
from .errors import ConfigurationError, RenderSurfaceError
from .fonts import FontBook
from .image_loader import ImageLoader, ImageSource
from .models import DEFAULT_CARD_CONFIG, CardConfig, Product, RenderedImage
from .templates import Palette, Typography, get_template, resolve_palette
from .utils import get_logger

logger = get_logger(__name__)

Box = tuple[int, int, int, int]

# Layout constants (pixels unless noted)
PHOTO_BAND_RATIO = 0.55
MARGIN = 40
SEAM_HEIGHT = 200
TITLE_LINE_HEIGHT = 58
BADGE_HEIGHT = 60
BADGE_PADDING = 40
BADGE_RADIUS = 30
BADGE_ROW_GAP = 16
CHIP_PADDING = 30
CHIP_RADIUS = 20
CHIP_MIN_HEIGHT = 60
DESCRIPTION_LINE_HEIGHT = 42
CTA_HEIGHT = 80
CTA_BOTTOM_OFFSET = 120
CTA_RADIUS = 16

WHITE = (255, 255, 255, 255)
STAR_GOLD = (255, 215, 0, 255)

FREE_SHIPPING_LABEL = "FRETE GRÁTIS"

HIGHLIGHT_PATTERN = re.compile(r"^[^\w\s]|OFERTA|PROMOÇÃO|DESCONTO|GRÁTIS|FRETE", re.IGNORECASE)
MARKER_EMOJI = "🔥💰⭐✅🚚💯🎁"
_MARKER_PATTERN = re.compile(f"([^\\n])([{MARKER_EMOJI}])")


def format_description(description: str) -> str:
    """Normalise AI copy: collapse blank runs, space out hashtags, break before marker emoji."""
    formatted = re.sub(r"\n{3,}", "\n\n", description or "")
    formatted = re.sub(r"(#\w+)", r"\1 ", formatted)
    return _MARKER_PATTERN.sub(r"\1\n\2", formatted)


def is_highlight(paragraph: str) -> bool:
    """Paragraphs led by a symbol/emoji or carrying a promo keyword get the accent style."""
    return bool(HIGHLIGHT_PATTERN.search(paragraph))


def format_sales(count: int) -> str:
    """pt-BR thousands separator: 1500 -> 1.500."""
    return f"{count:,}".replace(",", ".")


def photo_band_height(height: int) -> int:
    return max(1, round(height * PHOTO_BAND_RATIO))


@dataclass
class CardLayout:
    """Geometry of the content layer, kept for frame rendering and inspection."""

    photo_band: Box
    discount_badge: Optional[Box] = None
    shipping_badge: Optional[Box] = None
    title_lines: list[str] = field(default_factory=list)
    price_text: str = ""
    original_price_text: Optional[str] = None
    original_price_width: float = 0.0
    strikethrough: Optional[tuple[float, float, float]] = None
    description_box: Optional[Box] = None
    description_lines: list[tuple[str, bool]] = field(default_factory=list)
    description_baselines: list[float] = field(default_factory=list)
    cta_box: Optional[Box] = None


@dataclass
class CardScene:
    """Everything about a card that does not depend on the product photo."""

    product: Product
    description: str
    config: CardConfig
    palette: Palette
    typography: Typography
    content_layer: Image.Image
    layout: CardLayout

    @property
    def size(self) -> tuple[int, int]:
        return self.config.size


class CardCompositor:
    """Renders product cards with Pillow."""

    def __init__(
        self,
        loader: Optional[ImageLoader] = None,
        fonts: Optional[FontBook] = None,
        cta_label: Optional[str] = None,
        watermark_text: Optional[str] = None,
    ):
        self.loader = loader or ImageLoader()
        self.fonts = fonts or FontBook()
        self.cta_label = cta_label or settings.cta_label
        self.watermark_text = watermark_text if watermark_text is not None else settings.watermark_text

    # ==================================================================
    # Public API
    # ==================================================================

    async def render_card(
        self,
        product: Union[Product, dict],
        description: str,
        config: Optional[CardConfig] = None,
        image: Optional[ImageSource] = None,
    ) -> RenderedImage:
        """
        Render one still card.

        Args:
            product: Product snapshot (or its API record)
            description: Description copy drawn in the chip
            config: Render options; defaults to DEFAULT_CARD_CONFIG
            image: Photo to use instead of ``product.image_url``

        Returns:
            Encoded card tagged with its MIME type

        Raises:
            ConfigurationError: unknown template, bad dimensions, no image
            ImageLoadError: the photo could not be fetched or decoded
            RenderSurfaceError: the canvas could not be created or encoded
        """
        product = as_product(product)
        config = config or DEFAULT_CARD_CONFIG
        source = image if image is not None else product.image_url
        if source is None or (isinstance(source, str) and not source):
            raise ConfigurationError(f"Product {product.product_name!r} has no imageUrl")

        scene = self.prepare_scene(product, description, config)
        photo = await self.loader.load(source)
        surface = self.compose_card(photo, scene)
        rendered = self.encode(surface, scene)

        logger.info(
            f"Rendered {config.template} card {config.width}x{config.height} "
            f"{config.format} ({len(rendered.data)} bytes)"
        )
        return rendered

    async def render_alternative_card(
        self,
        product: Union[Product, dict],
        description: str,
        config: Optional[CardConfig] = None,
    ) -> RenderedImage:
        """Alternative look for the same product; uses the elegant template unless configured."""
        config = config or DEFAULT_CARD_CONFIG.with_overrides(template="elegant")
        return await self.render_card(product, description, config)

    def prepare_scene(self, product: Product, description: str, config: CardConfig) -> CardScene:
        """Resolve the palette and draw the image-independent content layer."""
        palette = resolve_palette(config.template, config.custom_colors)
        typography = get_template(config.template).typography
        layer, layout = self._render_content(product, description or "", config, palette, typography)
        return CardScene(
            product=product,
            description=description or "",
            config=config,
            palette=palette,
            typography=typography,
            content_layer=layer,
            layout=layout,
        )

    def compose_card(self, photo: Image.Image, scene: CardScene) -> Image.Image:
        """Full card surface for one photo."""
        surface = self.render_photo_layer(photo, scene)
        surface.alpha_composite(scene.content_layer)
        return surface

    def encode(self, surface: Image.Image, scene: CardScene) -> RenderedImage:
        return encode_surface(surface, scene.config, scene.palette.background)

    # ==================================================================
    # Surfaces and photo layer
    # ==================================================================

    def new_surface(self, size: tuple[int, int], color: RGBA = (0, 0, 0, 0)) -> Image.Image:
        try:
            return Image.new("RGBA", size, color)
        except (ValueError, MemoryError) as e:
            raise RenderSurfaceError(f"Could not allocate {size[0]}x{size[1]} surface: {e}") from e

    def render_background(self, scene: CardScene) -> Image.Image:
        """Solid palette background, or the vertical palette gradient."""
        palette = scene.palette
        if scene.config.use_gradient:
            try:
                return linear_gradient(scene.size, palette.gradient_start, palette.gradient_end)
            except (ValueError, MemoryError) as e:
                raise RenderSurfaceError(f"Could not allocate background gradient: {e}") from e
        return self.new_surface(scene.size, palette.background)

    def render_photo_layer(self, photo: Image.Image, scene: CardScene) -> Image.Image:
        """Background plus the fitted photo, its shadow, the vignette and the seam gradient."""
        width, _ = scene.size
        band_h = scene.layout.photo_band[3]
        background = scene.palette.background
        surface = self.render_background(scene)

        x, y, draw_w, draw_h = fit_contain(photo.size, (width, band_h))
        fitted = photo.convert("RGBA").resize(
            (max(1, round(draw_w)), max(1, round(draw_h))), Image.LANCZOS
        )
        photo_layer = self.new_surface(scene.size)
        photo_layer.paste(fitted, (round(x), round(y)))
        composite_with_shadow(surface, photo_layer, offset=(0, 10), blur=20, opacity=0.3)

        surface.alpha_composite(vignette((width, band_h), background, strength=0.6))

        seam_h = min(SEAM_HEIGHT, band_h)
        seam = linear_gradient((width, seam_h), adjust_alpha(background, 0.0), background)
        surface.alpha_composite(seam, (0, band_h - seam_h))
        return surface

    # ==================================================================
    # Content layer
    # ==================================================================

    def _render_content(
        self,
        product: Product,
        description: str,
        config: CardConfig,
        palette: Palette,
        typography: Typography,
    ) -> tuple[Image.Image, CardLayout]:
        width, height = config.size
        band_h = photo_band_height(height)
        layer = self.new_surface(config.size)
        layout = CardLayout(photo_band=(0, 0, width, band_h))

        if config.show_badges:
            self._draw_badges(layer, product, palette, typography, layout)

        y = band_h + MARGIN
        y = self._draw_title(layer, product.product_name, y, palette, typography, layout)
        y += 40

        y = self._draw_price(layer, product, MARGIN, y, palette, typography, layout)
        y += 30

        draw = ImageDraw.Draw(layer)
        info_font = self.fonts.get(typography.info)
        if config.show_rating:
            self._draw_rating(draw, product, MARGIN, y, palette, typography)
            y += 70

        if config.show_shop_name and product.shop_name:
            draw.text((MARGIN, y), f"Vendido por {product.shop_name}", font=info_font,
                      fill=palette.text_secondary, anchor="ls")
            y += 60

        if product.free_shipping:
            draw.text((MARGIN, y), FREE_SHIPPING_LABEL, font=info_font, fill=palette.accent, anchor="ls")
            y += 60
        elif product.shipping_info:
            draw.text((MARGIN, y), f"Envio: {product.shipping_info}", font=info_font,
                      fill=palette.text_secondary, anchor="ls")
            y += 60

        space = height - y - 140
        self._draw_description(layer, description, MARGIN, y, width - 2 * MARGIN, space,
                               palette, typography, layout)
        self._draw_call_to_action(layer, height - CTA_BOTTOM_OFFSET, palette, typography, layout)
        self._draw_watermark(layer, palette, typography)
        return layer, layout

    def _draw_badges(
        self,
        layer: Image.Image,
        product: Product,
        palette: Palette,
        typography: Typography,
        layout: CardLayout,
    ) -> None:
        """Discount pill top-right, free-shipping pill top-left; never overlapping."""
        width = layer.width
        font = self.fonts.get(typography.badge)
        badges: list[tuple[Box, str, RGBA]] = []

        if product.discount_rate > 0:
            text = product.discount_label
            badge_w = math.ceil(text_width(font, text)) + BADGE_PADDING
            box = (width - badge_w - MARGIN, MARGIN, width - MARGIN, MARGIN + BADGE_HEIGHT)
            layout.discount_badge = box
            badges.append((box, text, palette.badge_bg))

        if product.free_shipping:
            text = FREE_SHIPPING_LABEL
            badge_w = math.ceil(text_width(font, text)) + BADGE_PADDING
            top = MARGIN
            # Narrow canvases: drop to a second row instead of colliding.
            if layout.discount_badge and MARGIN + badge_w >= layout.discount_badge[0]:
                top = layout.discount_badge[3] + BADGE_ROW_GAP
            box = (MARGIN, top, MARGIN + badge_w, top + BADGE_HEIGHT)
            layout.shipping_badge = box
            badges.append((box, text, palette.free_badge_bg))

        if not badges:
            return

        shapes = self.new_surface(layer.size)
        shape_draw = ImageDraw.Draw(shapes)
        for box, _, fill in badges:
            rounded_rect(shape_draw, box, BADGE_RADIUS, fill=fill)
        composite_with_shadow(layer, shapes, offset=(0, 4), blur=10, opacity=0.3)

        draw = ImageDraw.Draw(layer)
        for (x0, y0, x1, y1), text, _ in badges:
            draw.text(((x0 + x1) / 2, (y0 + y1) / 2), text, font=font, fill=WHITE, anchor="mm")

    def _draw_title(
        self,
        layer: Image.Image,
        title: str,
        y: float,
        palette: Palette,
        typography: Typography,
        layout: CardLayout,
    ) -> float:
        font = self.fonts.get(typography.title)
        max_width = layer.width - 2 * MARGIN
        layout.title_lines = wrap_lines(title, font, max_width)

        title_layer = self.new_surface(layer.size)
        next_y = draw_wrapped_text(
            ImageDraw.Draw(title_layer), title, MARGIN, y, font, palette.text, max_width, TITLE_LINE_HEIGHT
        )
        composite_with_shadow(layer, title_layer, offset=(0, 2), blur=10, opacity=0.5)
        return next_y

    def _draw_price(
        self,
        layer: Image.Image,
        product: Product,
        x: float,
        y: float,
        palette: Palette,
        typography: Typography,
        layout: CardLayout,
    ) -> float:
        """Current price, plus the struck-through original price when discounted."""
        price_text = f"R$ {product.display_price}"
        layout.price_text = price_text

        price_layer = self.new_surface(layer.size)
        ImageDraw.Draw(price_layer).text(
            (x, y), price_text, font=self.fonts.get(typography.price), fill=palette.primary, anchor="ls"
        )
        composite_with_shadow(layer, price_layer, offset=(0, 2), blur=5, opacity=0.3)

        original = product.original_price
        if original is None:
            return y + 70

        font = self.fonts.get(typography.original_price)
        original_text = f"De R$ {original}"
        original_width = text_width(font, original_text)
        strike_y = y + 35

        draw = ImageDraw.Draw(layer)
        draw.text((x, y + 50), original_text, font=font, fill=palette.text_secondary, anchor="ls")
        draw.line([(x, strike_y), (x + original_width, strike_y)], fill=palette.text_secondary, width=2)

        layout.original_price_text = original_text
        layout.original_price_width = original_width
        layout.strikethrough = (x, x + original_width, strike_y)
        return y + 90

    def _draw_rating(
        self,
        draw: ImageDraw.ImageDraw,
        product: Product,
        x: float,
        y: float,
        palette: Palette,
        typography: Typography,
    ) -> None:
        font = self.fonts.get(typography.info)
        draw_star(draw, (x + 15, y - 13), 15, STAR_GOLD)
        text = f"{product.rating} • {format_sales(product.sales_count)} vendas"
        draw.text((x + 40, y), text, font=font, fill=palette.text_secondary, anchor="ls")

    def _draw_description(
        self,
        layer: Image.Image,
        description: str,
        x: float,
        y: float,
        max_width: float,
        max_height: float,
        palette: Palette,
        typography: Typography,
        layout: CardLayout,
    ) -> float:
        """
        Description inside a bordered, rounded chip filling the remaining space.

        Paragraphs are wrapped independently. Highlight paragraphs use the
        accent colour and the bolder face; lines that would spill past the
        chip's bottom edge are dropped.
        """
        if max_height < CHIP_MIN_HEIGHT or max_width <= 0:
            return y

        box = (
            round(x - CHIP_PADDING),
            round(y - CHIP_PADDING),
            round(x + max_width + CHIP_PADDING),
            round(y + max_height),
        )
        layout.description_box = box
        chip_w, chip_h = box[2] - box[0], box[3] - box[1]

        fade_to = adjust_alpha(palette.description_bg, palette.description_bg[3] / 255 * 0.7)
        chip_fill = linear_gradient((chip_w, chip_h), palette.description_bg, fade_to)
        chip = self.new_surface(layer.size)
        paste_rounded(chip, chip_fill, (box[0], box[1]), CHIP_RADIUS)
        composite_with_shadow(layer, chip, offset=(0, 5), blur=15, opacity=0.2)

        draw = ImageDraw.Draw(layer)
        rounded_rect(draw, box, CHIP_RADIUS, outline=adjust_alpha(palette.text_secondary, 0.18), width=2)

        body = self.fonts.get(typography.body)
        highlight = self.fonts.get(typography.body_highlight)
        bottom_limit = box[3] - CHIP_PADDING / 2
        current_y = y + 10

        for paragraph in format_description(description).split("\n"):
            if not paragraph.strip():
                current_y += 20
                continue

            emphasised = is_highlight(paragraph)
            font = highlight if emphasised else body
            fill = palette.accent if emphasised else palette.text
            for line in wrap_lines(paragraph, font, max_width):
                if current_y > bottom_limit:
                    return current_y
                draw.text((x, current_y), line, font=font, fill=fill, anchor="ls")
                layout.description_lines.append((line, emphasised))
                layout.description_baselines.append(current_y)
                current_y += DESCRIPTION_LINE_HEIGHT
            current_y += 10

        return current_y

    def _draw_call_to_action(
        self,
        layer: Image.Image,
        y: int,
        palette: Palette,
        typography: Typography,
        layout: CardLayout,
    ) -> None:
        """Full-width gradient button with a centred label."""
        width = layer.width
        button_w = max(1, width - 2 * MARGIN)
        box = (MARGIN, y, MARGIN + button_w, y + CTA_HEIGHT)
        layout.cta_box = box

        fill = linear_gradient((button_w, CTA_HEIGHT), palette.primary, adjust_color(palette.primary, 20),
                               horizontal=True)
        button = self.new_surface(layer.size)
        paste_rounded(button, fill, (box[0], y), CTA_RADIUS)
        composite_with_shadow(layer, button, offset=(0, 8), blur=15, opacity=0.3)

        label = self.new_surface(layer.size)
        ImageDraw.Draw(label).text(
            (width / 2, y + 50), self.cta_label, font=self.fonts.get(typography.button), fill=WHITE, anchor="ms"
        )
        composite_with_shadow(layer, label, offset=(0, 2), blur=4, opacity=0.5)

    def _draw_watermark(self, layer: Image.Image, palette: Palette, typography: Typography) -> None:
        if not self.watermark_text:
            return
        width, height = layer.size
        ImageDraw.Draw(layer).text(
            (width - MARGIN, height - 12),
            self.watermark_text,
            font=self.fonts.get(typography.watermark),
            fill=adjust_alpha(palette.text_secondary, 0.5),
            anchor="rs",
        )


def as_product(product: Union[Product, dict]) -> Product:
    if isinstance(product, Product):
        return product
    if isinstance(product, dict):
        return Product.from_dict(product)
    raise ConfigurationError(f"Unsupported product value: {type(product).__name__}")
