"""Geometry and drawing primitives shared by the card and frame renderers.

All helpers are stateless. Raster helpers return new RGBA images rather than
mutating their inputs, except ``composite_with_shadow`` and the ``draw_*``
functions, which paint onto the surface they are given.
"""

import math
import re
from typing import Sequence, Union

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFilter, ImageFont

RGBA = tuple[int, int, int, int]
ColorLike = Union[str, Sequence[int]]
Font = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

_RGBA_PATTERN = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)$",
    re.IGNORECASE,
)


# ----------------------------------------------------------------------
# Colours
# ----------------------------------------------------------------------

def parse_color(value: ColorLike) -> RGBA:
    """Parse ``#RRGGBB``, ``#RRGGBBAA``, CSS ``rgb()/rgba()`` (alpha 0..1) or a tuple."""
    if isinstance(value, (tuple, list)):
        if len(value) not in (3, 4):
            raise ValueError(f"Colour tuple must have 3 or 4 components: {value!r}")
        r, g, b = (int(c) for c in value[:3])
        a = int(value[3]) if len(value) == 4 else 255
        return r, g, b, a

    text = str(value).strip()
    match = _RGBA_PATTERN.match(text)
    if match:
        r, g, b = (int(float(c)) for c in match.groups()[:3])
        alpha = match.group(4)
        a = round(float(alpha) * 255) if alpha is not None else 255
        return r, g, b, max(0, min(255, a))

    rgb = ImageColor.getrgb(text)
    if len(rgb) == 3:
        return rgb[0], rgb[1], rgb[2], 255
    return rgb[0], rgb[1], rgb[2], rgb[3]


def adjust_color(color: ColorLike, amount: int) -> RGBA:
    """Lighten (positive) or darken (negative) every channel by ``amount``."""
    r, g, b, a = parse_color(color)
    return (
        max(0, min(255, r + amount)),
        max(0, min(255, g + amount)),
        max(0, min(255, b + amount)),
        a,
    )


def adjust_alpha(color: ColorLike, alpha: float) -> RGBA:
    """Replace the colour's opacity with ``alpha`` (0..1)."""
    r, g, b, _ = parse_color(color)
    return r, g, b, max(0, min(255, round(alpha * 255)))


def with_opacity(image: Image.Image, opacity: float) -> Image.Image:
    """Return a copy of an RGBA image with its alpha channel scaled by ``opacity``."""
    image = image.convert("RGBA")
    if opacity >= 1:
        return image
    alpha = image.getchannel("A").point(lambda v: round(v * max(0.0, opacity)))
    faded = image.copy()
    faded.putalpha(alpha)
    return faded


# ----------------------------------------------------------------------
# Gradients
# ----------------------------------------------------------------------

def _mix(start: RGBA, end: RGBA, t: np.ndarray) -> np.ndarray:
    """Interpolate two colours in premultiplied space for every value of ``t``."""
    s = np.asarray(start, dtype=np.float32)
    e = np.asarray(end, dtype=np.float32)
    t = np.clip(t.astype(np.float32), 0.0, 1.0)[..., None]

    sa, ea = s[3] / 255.0, e[3] / 255.0
    alpha = sa + (ea - sa) * t
    premult = s[:3] * sa + (e[:3] * ea - s[:3] * sa) * t
    rgb = np.divide(premult, alpha, out=np.zeros_like(premult), where=alpha > 0)

    out = np.concatenate([rgb, alpha * 255.0], axis=-1)
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def linear_gradient(
    size: tuple[int, int],
    start: ColorLike,
    end: ColorLike,
    horizontal: bool = False,
) -> Image.Image:
    """Top-to-bottom (or left-to-right) gradient filling ``size``."""
    width, height = size
    start, end = parse_color(start), parse_color(end)

    if horizontal:
        cols = _mix(start, end, np.linspace(0.0, 1.0, width))
        pixels = np.broadcast_to(cols[None, :, :], (height, width, 4))
    else:
        rows = _mix(start, end, np.linspace(0.0, 1.0, height))
        pixels = np.broadcast_to(rows[:, None, :], (height, width, 4))
    return Image.fromarray(np.ascontiguousarray(pixels))


def radial_gradient(
    size: tuple[int, int],
    center: tuple[float, float],
    inner_radius: float,
    outer_radius: float,
    inner: ColorLike,
    outer: ColorLike,
) -> Image.Image:
    """Radial gradient: ``inner`` up to ``inner_radius``, ``outer`` beyond ``outer_radius``."""
    width, height = size
    cx, cy = center
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    dist = np.hypot(xs + 0.5 - cx, ys + 0.5 - cy)
    span = max(outer_radius - inner_radius, 1e-6)
    t = (dist - inner_radius) / span
    return Image.fromarray(_mix(parse_color(inner), parse_color(outer), t))


def vignette(size: tuple[int, int], color: ColorLike, strength: float = 0.6) -> Image.Image:
    """Transparent centre fading to ``color`` at ``strength`` opacity towards the edges."""
    width, height = size
    edge = adjust_alpha(color, strength)
    clear = adjust_alpha(color, 0.0)
    return radial_gradient(
        size,
        (width / 2, height / 2),
        height * 0.3,
        height * 0.8,
        clear,
        edge,
    )


# ----------------------------------------------------------------------
# Shapes and compositing
# ----------------------------------------------------------------------

def rounded_rect(
    draw: ImageDraw.ImageDraw,
    box: tuple[float, float, float, float],
    radius: float,
    fill: ColorLike = None,
    outline: ColorLike = None,
    width: int = 1,
) -> None:
    """Rounded rectangle with the radius clamped to half the shorter side."""
    x0, y0, x1, y1 = box
    radius = max(0, min(radius, (x1 - x0) / 2, (y1 - y0) / 2))
    draw.rounded_rectangle(
        (x0, y0, x1, y1),
        radius=radius,
        fill=parse_color(fill) if fill is not None else None,
        outline=parse_color(outline) if outline is not None else None,
        width=width,
    )


def rounded_rect_mask(size: tuple[int, int], radius: float) -> Image.Image:
    """An L-mode mask of a rounded rectangle covering ``size``."""
    mask = Image.new("L", size, 0)
    width, height = size
    radius = max(0, min(radius, (width - 1) / 2, (height - 1) / 2))
    ImageDraw.Draw(mask).rounded_rectangle((0, 0, width - 1, height - 1), radius=radius, fill=255)
    return mask


def paste_rounded(
    surface: Image.Image,
    fill_image: Image.Image,
    origin: tuple[int, int],
    radius: float,
) -> None:
    """Paint ``fill_image`` (e.g. a gradient) onto ``surface`` through a rounded mask."""
    mask = rounded_rect_mask(fill_image.size, radius)
    alpha = Image.composite(fill_image.getchannel("A"), Image.new("L", fill_image.size, 0), mask)
    shaped = fill_image.copy()
    shaped.putalpha(alpha)
    layer = Image.new("RGBA", surface.size, (0, 0, 0, 0))
    layer.paste(shaped, origin)
    surface.alpha_composite(layer)


def drop_shadow(
    layer: Image.Image,
    offset: tuple[int, int] = (0, 4),
    blur: float = 10,
    opacity: float = 0.3,
    color: ColorLike = (0, 0, 0),
) -> Image.Image:
    """Build the shadow cast by the opaque pixels of ``layer``."""
    alpha = layer.getchannel("A")
    shifted = Image.new("L", layer.size, 0)

    bbox = alpha.getbbox()
    if bbox is not None:
        # Only blur around the painted pixels; 3 sigma covers the falloff.
        width, height = layer.size
        pad = math.ceil(blur * 1.5) + 1
        x0, y0 = max(0, bbox[0] - pad), max(0, bbox[1] - pad)
        x1, y1 = min(width, bbox[2] + pad), min(height, bbox[3] + pad)
        region = alpha.crop((x0, y0, x1, y1))
        if opacity < 1:
            region = region.point(lambda v: round(v * opacity))
        if blur > 0:
            region = region.filter(ImageFilter.GaussianBlur(blur / 2))
        shifted.paste(region, (x0 + offset[0], y0 + offset[1]))

    r, g, b, _ = parse_color(color)
    shadow = Image.new("RGBA", layer.size, (r, g, b, 0))
    shadow.putalpha(shifted)
    return shadow


def composite_with_shadow(
    surface: Image.Image,
    layer: Image.Image,
    offset: tuple[int, int] = (0, 4),
    blur: float = 10,
    opacity: float = 0.3,
) -> None:
    """Composite ``layer`` onto ``surface`` with a soft drop shadow underneath."""
    surface.alpha_composite(drop_shadow(layer, offset, blur, opacity))
    surface.alpha_composite(layer)


def fit_contain(
    image_size: tuple[int, int],
    band_size: tuple[int, int],
) -> tuple[float, float, float, float]:
    """
    Fit an image into a band.

    Scales to the band width first; when that overflows the band height the
    image is scaled to the band height instead and centred horizontally.
    Width-constrained images are centred vertically.

    Returns:
        (x, y, width, height) of the placed image
    """
    img_w, img_h = image_size
    band_w, band_h = band_size
    ratio = img_w / img_h

    draw_w = band_w
    draw_h = band_w / ratio
    if draw_h > band_h:
        draw_h = band_h
        draw_w = band_h * ratio
        return (band_w - draw_w) / 2, 0.0, draw_w, draw_h
    return 0.0, (band_h - draw_h) / 2, draw_w, draw_h


def draw_star(
    draw: ImageDraw.ImageDraw,
    center: tuple[float, float],
    radius: float,
    fill: ColorLike,
) -> None:
    """Five-pointed star (rating glyph)."""
    cx, cy = center
    points = []
    for i in range(10):
        r = radius if i % 2 == 0 else radius * 0.45
        angle = -math.pi / 2 + i * math.pi / 5
        points.append((cx + r * math.cos(angle), cy + r * math.sin(angle)))
    draw.polygon(points, fill=parse_color(fill))


# ----------------------------------------------------------------------
# Text
# ----------------------------------------------------------------------

def text_width(font: Font, text: str) -> float:
    """Advance width of ``text`` in pixels."""
    return font.getlength(text)


def wrap_lines(text: str, font: Font, max_width: float) -> list[str]:
    """Greedy word wrap; a single over-long word still gets its own line."""
    if not text:
        return []
    words = text.split()
    lines = []
    current_line = ""
    for word in words:
        test_line = f"{current_line} {word}".strip()
        if text_width(font, test_line) <= max_width:
            current_line = test_line
        else:
            if current_line:
                lines.append(current_line)
            current_line = word
    if current_line:
        lines.append(current_line)
    return lines


def draw_wrapped_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    x: float,
    y: float,
    font: Font,
    fill: ColorLike,
    max_width: float,
    line_height: float,
) -> float:
    """
    Draw word-wrapped text with ``y`` as the first baseline.

    Returns:
        Baseline for whatever is drawn next, so wrapped blocks can be chained.
    """
    color = parse_color(fill)
    for line in wrap_lines(text, font, max_width):
        draw.text((x, y), line, font=font, fill=color, anchor="ls")
        y += line_height
    return y
