"""Error taxonomy for card rendering.

Every failure is terminal for the render call that raised it; nothing here
is retried by the compositor or the frame generator.
"""

from typing import Optional


class CardError(Exception):
    """Base class for all rendering errors."""


class ConfigurationError(CardError):
    """Invalid caller input: unknown template, bad dimensions, missing fields."""


class ImageLoadError(CardError):
    """A product image could not be fetched or decoded."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class RenderSurfaceError(CardError):
    """The drawing surface could not be created, sized or encoded."""
