"""Palette/template registry.

A closed table of visual themes. Each template pairs a colour palette with
the typography used for every text element on the card.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .drawing import RGBA, adjust_color, parse_color
from .errors import ConfigurationError

if TYPE_CHECKING:
    from .models import CustomColors


@dataclass(frozen=True)
class FontSpec:
    """A font weight (Montserrat face name) and pixel size."""

    weight: str
    size: int


@dataclass(frozen=True)
class Typography:
    title: FontSpec
    price: FontSpec
    original_price: FontSpec
    badge: FontSpec
    info: FontSpec
    body: FontSpec
    body_highlight: FontSpec
    button: FontSpec
    watermark: FontSpec


@dataclass(frozen=True)
class Palette:
    """Colours resolved for one render call (RGBA tuples)."""

    background: RGBA
    gradient_start: RGBA
    gradient_end: RGBA
    primary: RGBA
    secondary: RGBA
    accent: RGBA
    text: RGBA
    text_secondary: RGBA
    description_bg: RGBA
    badge_bg: RGBA
    free_badge_bg: RGBA


@dataclass(frozen=True)
class Template:
    name: str
    colors: dict
    typography: Typography


DEFAULT_TYPOGRAPHY = Typography(
    title=FontSpec("Bold", 48),
    price=FontSpec("Bold", 72),
    original_price=FontSpec("Regular", 36),
    badge=FontSpec("Bold", 32),
    info=FontSpec("Regular", 36),
    body=FontSpec("Regular", 36),
    body_highlight=FontSpec("Bold", 36),
    button=FontSpec("Bold", 40),
    watermark=FontSpec("Regular", 24),
)

TEMPLATES: dict[str, Template] = {
    "modern": Template(
        name="modern",
        colors={
            "background": "#0A0A0F",
            "gradient": ("#0A0A0F", "#1A1A25"),
            "primary": "#FF4D4F",
            "secondary": "#FFFFFF",
            "accent": "#FFD700",
            "text": "#FFFFFF",
            "text_secondary": "#CCCCCC",
            "description_bg": "rgba(255,255,255,0.08)",
            "badge_bg": "#FF4D4F",
            "free_badge_bg": "#00C853",
        },
        typography=DEFAULT_TYPOGRAPHY,
    ),
    "minimal": Template(
        name="minimal",
        colors={
            "background": "#FFFFFF",
            "gradient": ("#FFFFFF", "#F5F5F7"),
            "primary": "#000000",
            "secondary": "#333333",
            "accent": "#0066FF",
            "text": "#000000",
            "text_secondary": "#666666",
            "description_bg": "rgba(0,0,0,0.04)",
            "badge_bg": "#FF3B30",
            "free_badge_bg": "#34C759",
        },
        typography=Typography(
            title=FontSpec("Medium", 46),
            price=FontSpec("Bold", 68),
            original_price=FontSpec("Regular", 34),
            badge=FontSpec("Medium", 30),
            info=FontSpec("Regular", 34),
            body=FontSpec("Regular", 34),
            body_highlight=FontSpec("Medium", 34),
            button=FontSpec("Medium", 38),
            watermark=FontSpec("Regular", 22),
        ),
    ),
    "bold": Template(
        name="bold",
        colors={
            "background": "#0D0D2B",
            "gradient": ("#0D0D2B", "#1A1A45"),
            "primary": "#FF6B6B",
            "secondary": "#FFFFFF",
            "accent": "#4FFFB0",
            "text": "#FFFFFF",
            "text_secondary": "#A0A0A0",
            "description_bg": "rgba(255,255,255,0.1)",
            "badge_bg": "#FF6B6B",
            "free_badge_bg": "#4FFFB0",
        },
        typography=Typography(
            title=FontSpec("Bold", 54),
            price=FontSpec("Bold", 80),
            original_price=FontSpec("Medium", 36),
            badge=FontSpec("Bold", 34),
            info=FontSpec("Medium", 36),
            body=FontSpec("Regular", 36),
            body_highlight=FontSpec("Bold", 38),
            button=FontSpec("Bold", 44),
            watermark=FontSpec("Regular", 24),
        ),
    ),
    "elegant": Template(
        name="elegant",
        colors={
            "background": "#1C1C1E",
            "gradient": ("#1C1C1E", "#2C2C2E"),
            "primary": "#E5B80B",
            "secondary": "#FFFFFF",
            "accent": "#D4AF37",
            "text": "#FFFFFF",
            "text_secondary": "#CCCCCC",
            "description_bg": "rgba(255,255,255,0.07)",
            "badge_bg": "#E5B80B",
            "free_badge_bg": "#00BFA5",
        },
        typography=DEFAULT_TYPOGRAPHY,
    ),
    "vibrant": Template(
        name="vibrant",
        colors={
            "background": "#6200EA",
            "gradient": ("#6200EA", "#3700B3"),
            "primary": "#FF4081",
            "secondary": "#FFFFFF",
            "accent": "#00E5FF",
            "text": "#FFFFFF",
            "text_secondary": "#E0E0E0",
            "description_bg": "rgba(255,255,255,0.12)",
            "badge_bg": "#FF4081",
            "free_badge_bg": "#00E5FF",
        },
        typography=DEFAULT_TYPOGRAPHY,
    ),
}


def get_template(template_key: str) -> Template:
    """Look up a template by key, raising ConfigurationError when unknown."""
    try:
        return TEMPLATES[template_key]
    except KeyError:
        raise ConfigurationError(
            f"Unknown template {template_key!r}; expected one of {sorted(TEMPLATES)}"
        ) from None


def resolve_palette(template_key: str, custom_colors: Optional["CustomColors"] = None) -> Palette:
    """
    Resolve the palette for one render.

    Args:
        template_key: Registry key (modern, minimal, bold, elegant, vibrant)
        custom_colors: Optional overrides; only non-null fields replace
            the template's primary/secondary/accent/background

    Returns:
        Immutable Palette with every colour parsed to RGBA
    """
    colors = dict(get_template(template_key).colors)
    if custom_colors is not None:
        for name in ("primary", "secondary", "accent", "background"):
            value = getattr(custom_colors, name, None)
            if value:
                colors[name] = value

    try:
        start, end = colors["gradient"]
        if custom_colors is not None and getattr(custom_colors, "background", None):
            # The gradient follows an overridden background.
            start, end = colors["background"], adjust_color(colors["background"], 16)
        return Palette(
            background=parse_color(colors["background"]),
            gradient_start=parse_color(start),
            gradient_end=parse_color(end),
            primary=parse_color(colors["primary"]),
            secondary=parse_color(colors["secondary"]),
            accent=parse_color(colors["accent"]),
            text=parse_color(colors["text"]),
            text_secondary=parse_color(colors["text_secondary"]),
            description_bg=parse_color(colors["description_bg"]),
            badge_bg=parse_color(colors["badge_bg"]),
            free_badge_bg=parse_color(colors["free_badge_bg"]),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid colour in palette for {template_key!r}: {e}") from e
