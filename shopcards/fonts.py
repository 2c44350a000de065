"""Font loading for the typography specs."""

from pathlib import Path
from typing import Optional

from PIL import ImageFont

from .config import settings
from .drawing import Font
from .templates import FontSpec
from .utils import get_logger

logger = get_logger(__name__)

FONT_FAMILY = "Montserrat"


class FontBook:
    """Caches Montserrat faces by (weight, size), falling back to Pillow's default font."""

    def __init__(self, fonts_dir: Optional[Path] = None):
        self.fonts_dir = fonts_dir or settings.fonts_dir
        self._cache: dict[tuple[str, int], Font] = {}
        self._missing: set[str] = set()

    def font_path(self, weight: str) -> Path:
        return self.fonts_dir / f"{FONT_FAMILY}-{weight}.ttf"

    def get(self, spec: FontSpec) -> Font:
        key = (spec.weight, spec.size)
        if key not in self._cache:
            self._cache[key] = self._load(spec)
        return self._cache[key]

    def _load(self, spec: FontSpec) -> Font:
        for weight in (spec.weight, "Bold", "Regular"):
            path = self.font_path(weight)
            if path.exists():
                try:
                    return ImageFont.truetype(str(path), spec.size)
                except OSError as e:
                    logger.warning(f"Failed to load font {path}: {e}")

        if spec.weight not in self._missing:
            self._missing.add(spec.weight)
            logger.debug(f"{FONT_FAMILY}-{spec.weight} not found in {self.fonts_dir}, using default font")
        return ImageFont.load_default(size=spec.size)
