"""Tests for the single-frame card compositor."""

import asyncio
import base64
import io

import pytest
from PIL import Image

from shopcards.card_compositor import (
    FREE_SHIPPING_LABEL,
    format_description,
    format_sales,
    is_highlight,
)
from shopcards.drawing import text_width
from shopcards.errors import ConfigurationError, ImageLoadError
from shopcards.models import CardConfig, CustomColors, Product

from .conftest import png_bytes


def _overlaps(a, b):
    return a[0] < b[2] and b[0] < a[2] and a[1] < b[3] and b[1] < a[3]


def decode(rendered):
    return Image.open(io.BytesIO(rendered.data))


class TestHelpers:
    def test_format_description(self):
        text = "Linha\n\n\n\nOutra #oferta\nCompre 🔥 já"
        assert format_description(text) == "Linha\n\nOutra #oferta \nCompre \n🔥 já"

    def test_marker_at_line_start_untouched(self):
        assert format_description("🔥 Oferta") == "🔥 Oferta"

    @pytest.mark.parametrize(
        "paragraph,expected",
        [
            ("🔥 Super oferta", True),
            ("Frete grátis para todo Brasil", True),
            ("Som limpo e potente", False),
        ],
    )
    def test_is_highlight(self, paragraph, expected):
        assert is_highlight(paragraph) is expected

    def test_format_sales(self):
        assert format_sales(1500) == "1.500"
        assert format_sales(12) == "12"


class TestRenderCard:
    def test_png_dimensions(self, compositor, product, description, small_config, make_photo):
        rendered = asyncio.run(
            compositor.render_card(product, description, small_config, image=make_photo())
        )
        assert rendered.mime_type == "image/png"
        assert (rendered.width, rendered.height) == (160, 240)
        assert decode(rendered).size == (160, 240)

    def test_jpeg_dimensions(self, compositor, product, description, make_photo):
        config = CardConfig(width=200, height=300, format="jpeg", quality=0.8)
        rendered = asyncio.run(compositor.render_card(product, description, config, image=make_photo()))
        assert rendered.mime_type == "image/jpeg"
        image = decode(rendered)
        assert image.format == "JPEG"
        assert image.size == (200, 300)

    def test_idempotent(self, compositor, product, description, small_config, make_photo):
        photo = make_photo()
        first = asyncio.run(compositor.render_card(product, description, small_config, image=photo))
        second = asyncio.run(compositor.render_card(product, description, small_config, image=photo))
        assert first.data == second.data

    def test_accepts_product_dict(self, compositor, small_config, make_photo):
        rendered = asyncio.run(
            compositor.render_card(
                {"productName": "Fone X", "price": "99.90"}, "", small_config, image=make_photo()
            )
        )
        assert rendered.width == 160

    def test_missing_image_source(self, compositor, product, small_config):
        with pytest.raises(ConfigurationError):
            asyncio.run(compositor.render_card(product, "", small_config))

    def test_image_load_failure_propagates(self, compositor, product, small_config):
        with pytest.raises(ImageLoadError):
            asyncio.run(compositor.render_card(product, "", small_config, image="https://example.com/x.png"))

    def test_solid_background(self, compositor, product, make_photo):
        config = CardConfig(width=200, height=400, template="minimal", use_gradient=False)
        image = decode(asyncio.run(compositor.render_card(product, "", config, image=make_photo())))
        assert image.getpixel((0, 399)) == (255, 255, 255, 255)

    def test_custom_background(self, compositor, product, make_photo):
        config = CardConfig(
            width=200, height=400, use_gradient=False, custom_colors=CustomColors(background="#123456")
        )
        image = decode(asyncio.run(compositor.render_card(product, "", config, image=make_photo())))
        assert image.getpixel((0, 399)) == (0x12, 0x34, 0x56, 255)


class TestLayout:
    def test_strikethrough_matches_original_price_width(self, compositor, product, description):
        config = CardConfig(width=540, height=960)
        scene = compositor.prepare_scene(product, description, config)
        layout = scene.layout

        assert layout.price_text == "R$ 99.90"
        assert layout.original_price_text == "De R$ 124.88"

        font = compositor.fonts.get(scene.typography.original_price)
        x0, x1, _ = layout.strikethrough
        assert x1 - x0 == pytest.approx(text_width(font, "De R$ 124.88"))
        assert layout.original_price_width == pytest.approx(x1 - x0)

    def test_no_discount_no_original_price(self, compositor, description):
        product = Product(product_name="Fone X", price="99.90")
        scene = compositor.prepare_scene(product, description, CardConfig(width=540, height=960))
        assert scene.layout.original_price_text is None
        assert scene.layout.strikethrough is None
        assert scene.layout.discount_badge is None

    @pytest.mark.parametrize("width", [160, 270, 540, 1080])
    def test_badges_never_overlap(self, compositor, product, width):
        scene = compositor.prepare_scene(product, "", CardConfig(width=width, height=960))
        discount, shipping = scene.layout.discount_badge, scene.layout.shipping_badge
        assert discount is not None and shipping is not None
        assert not _overlaps(discount, shipping)

    def test_badges_share_row_when_room(self, compositor, product):
        scene = compositor.prepare_scene(product, "", CardConfig(width=1080, height=1920))
        discount, shipping = scene.layout.discount_badge, scene.layout.shipping_badge
        assert discount[1] == shipping[1]
        assert discount[2] == 1080 - 40
        assert shipping[0] == 40

    def test_badges_hidden(self, compositor, product):
        config = CardConfig(width=540, height=960, show_badges=False)
        scene = compositor.prepare_scene(product, "", config)
        assert scene.layout.discount_badge is None
        assert scene.layout.shipping_badge is None

    def test_description_stays_inside_chip(self, compositor, product):
        text = "\n".join(f"Parágrafo número {i} com bastante texto" for i in range(60))
        scene = compositor.prepare_scene(product, text, CardConfig(width=540, height=1600))
        box = scene.layout.description_box
        assert box is not None
        assert box[3] < scene.layout.cta_box[1]
        assert 0 < len(scene.layout.description_lines) < 60


def test_end_to_end_scenario(compositor, make_photo):
    product = Product(
        product_name="Fone X",
        price="99.90",
        price_discount_rate="20",
        rating_star="4.7",
        sales="500",
        free_shipping=True,
    )
    description = "Oferta imperdível! 🔥 #promo"
    config = CardConfig(width=1080, height=1920)

    scene = compositor.prepare_scene(product, description, config)
    layout = scene.layout
    assert layout.discount_badge is not None
    assert layout.shipping_badge is not None
    assert layout.price_text == "R$ 99.90"
    assert layout.original_price_text == "De R$ 124.88"
    # The marker emoji starts its own accent-coloured paragraph.
    assert layout.description_lines == [("Oferta imperdível!", True), ("🔥 #promo", True)]
    assert layout.discount_badge[2] == 1080 - 40
    assert layout.shipping_badge[0] == 40
    assert layout.shipping_badge[2] < layout.discount_badge[0]

    rendered = asyncio.run(compositor.render_card(product, description, config, image=make_photo()))
    image = decode(rendered)
    assert image.size == (1080, 1920)
    # Discount pill is painted in the badge colour.
    x0, y0, x1, y1 = layout.discount_badge
    assert image.getpixel((x0 + 8, (y0 + y1) // 2)) == scene.palette.badge_bg

    # The "🔥 #promo" line is painted in the accent colour, not the body text colour.
    baseline = round(layout.description_baselines[1])
    line_box = (40, baseline - 30, 40 + 200, baseline)
    colours = {colour for _, colour in image.crop(line_box).getcolors(maxcolors=200 * 30)}
    assert scene.palette.accent in colours
    assert scene.palette.text not in colours

    # The strikethrough row spans the measured width of the original price.
    sx0, sx1, strike_y = layout.strikethrough
    strike = scene.palette.text_secondary
    spans = []
    for row in range(round(strike_y) - 1, round(strike_y) + 2):
        xs = [x for x in range(1080) if image.getpixel((x, row)) == strike]
        if xs:
            spans.append(xs[-1] - xs[0] + 1)
    assert spans
    assert max(spans) == pytest.approx(layout.original_price_width, abs=1)
    assert round(sx1 - sx0) == round(layout.original_price_width)
    assert FREE_SHIPPING_LABEL == "FRETE GRÁTIS"


def test_alternative_card_uses_elegant(compositor, make_photo):
    data_uri = "data:image/png;base64," + base64.b64encode(png_bytes(make_photo())).decode()
    product = Product(product_name="Fone X", price="99.90", image_url=data_uri)
    image = decode(asyncio.run(compositor.render_alternative_card(product, "")))
    assert image.size == (1080, 1920)
    # Bottom edge of the elegant gradient (#2C2C2E).
    assert image.getpixel((0, 1919)) == (0x2C, 0x2C, 0x2E, 255)
