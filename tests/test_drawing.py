"""Tests for the drawing primitives."""

import pytest
from PIL import Image, ImageFont

from shopcards.drawing import (
    adjust_alpha,
    adjust_color,
    drop_shadow,
    fit_contain,
    linear_gradient,
    parse_color,
    rounded_rect_mask,
    text_width,
    with_opacity,
    wrap_lines,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("#FF4D4F", (255, 77, 79, 255)),
        ("rgba(0,0,0,0.5)", (0, 0, 0, 128)),
        ("rgb(1, 2, 3)", (1, 2, 3, 255)),
        ((9, 8, 7), (9, 8, 7, 255)),
        ((9, 8, 7, 6), (9, 8, 7, 6)),
    ],
)
def test_parse_color(value, expected):
    assert parse_color(value) == expected


def test_parse_color_rejects_garbage():
    with pytest.raises(ValueError):
        parse_color("nope")


def test_adjust_color_clamps():
    assert adjust_color("#FAFAFA", 20) == (255, 255, 255, 255)
    assert adjust_color("#050505", -20) == (0, 0, 0, 255)
    assert adjust_alpha("#102030", 0.0) == (16, 32, 48, 0)


def test_linear_gradient_endpoints():
    gradient = linear_gradient((4, 11), "#000000", "#FFFFFF")
    assert gradient.size == (4, 11)
    assert gradient.getpixel((2, 0)) == (0, 0, 0, 255)
    assert gradient.getpixel((2, 10)) == (255, 255, 255, 255)
    assert gradient.getpixel((0, 5)) == gradient.getpixel((3, 5))


def test_horizontal_gradient():
    gradient = linear_gradient((11, 3), "#FF0000", "#0000FF", horizontal=True)
    assert gradient.getpixel((0, 1)) == (255, 0, 0, 255)
    assert gradient.getpixel((10, 1)) == (0, 0, 255, 255)


def test_gradient_to_transparent_keeps_colour():
    gradient = linear_gradient((1, 3), (10, 20, 30, 255), (10, 20, 30, 0))
    r, g, b, a = gradient.getpixel((0, 1))
    assert (r, g, b) == (10, 20, 30)
    assert 120 <= a <= 135


def test_rounded_rect_mask_corners():
    mask = rounded_rect_mask((40, 20), 10)
    assert mask.getpixel((0, 0)) == 0
    assert mask.getpixel((20, 10)) == 255


def test_with_opacity_scales_alpha():
    image = Image.new("RGBA", (2, 2), (10, 10, 10, 200))
    assert with_opacity(image, 0.5).getpixel((0, 0))[3] == 100
    assert with_opacity(image, 0).getpixel((0, 0))[3] == 0
    assert image.getpixel((0, 0))[3] == 200


def test_drop_shadow_is_offset():
    layer = Image.new("RGBA", (50, 50), (0, 0, 0, 0))
    layer.paste((255, 255, 255, 255), (10, 10, 20, 20))
    shadow = drop_shadow(layer, offset=(0, 20), blur=0, opacity=1.0)
    assert shadow.getpixel((15, 15))[3] == 0
    assert shadow.getpixel((15, 35))[3] == 255


def test_fit_contain_wide_and_tall():
    # Wide image fills the width, centred vertically.
    assert fit_contain((200, 100), (100, 100)) == (0.0, 25.0, 100, 50.0)
    # Tall image fills the height, centred horizontally.
    assert fit_contain((50, 200), (100, 100)) == (37.5, 0.0, 25.0, 100)


def test_wrap_lines_respects_width():
    font = ImageFont.load_default(size=20)
    text = "fone de ouvido sem fio com cancelamento de ruído ativo"
    lines = wrap_lines(text, font, 120)
    assert len(lines) > 1
    assert " ".join(lines) == text
    for line in lines:
        assert text_width(font, line) <= 120 or " " not in line


def test_wrap_lines_empty():
    assert wrap_lines("", ImageFont.load_default(size=20), 100) == []
