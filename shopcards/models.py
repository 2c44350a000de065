"""Value objects passed into the card pipeline."""

from dataclasses import dataclass, field, fields, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Literal, Optional

from .config import settings
from .errors import ConfigurationError
from .templates import TEMPLATES

CardFormat = Literal["png", "jpeg"]
TransitionEffect = Literal["fade", "slide", "zoom"]

CARD_FORMATS = ("png", "jpeg")
TRANSITION_EFFECTS = ("fade", "slide", "zoom")

DEFAULT_RATING = "4.5"
CENTS = Decimal("0.01")


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a decimal string such as "99.90", "99,90" or "20%"."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip().replace("%", "").replace(",", ".")
    if not text:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "sim")
    return bool(value)


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class Product:
    """Snapshot of a marketplace product, as supplied by the search layer."""

    product_name: str
    price: str
    image_url: str = ""
    price_discount_rate: str = "0"
    sales: str = "0"
    rating_star: str = ""
    shop_name: str = ""
    free_shipping: bool = False
    shipping_info: str = ""
    product_id: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        """Build a product from an API record (camelCase or snake_case keys)."""
        name = _pick(data, "productName", "product_name", "name")
        price = _pick(data, "price")
        if not name:
            raise ConfigurationError("Product record is missing 'productName'")
        if price is None or str(price).strip() == "":
            raise ConfigurationError("Product record is missing 'price'")

        return cls(
            product_name=str(name),
            price=str(price),
            image_url=str(_pick(data, "imageUrl", "image_url", default="")),
            price_discount_rate=str(_pick(data, "priceDiscountRate", "price_discount_rate", default="0")),
            sales=str(_pick(data, "sales", default="0")),
            rating_star=str(_pick(data, "ratingStar", "rating_star", default="")),
            shop_name=str(_pick(data, "shopName", "shop_name", default="")),
            free_shipping=_to_bool(_pick(data, "freeShipping", "free_shipping", default=False)),
            shipping_info=str(_pick(data, "shippingInfo", "shipping_info", default="")),
            product_id=str(_pick(data, "itemId", "id", "product_id", default="")),
        )

    @property
    def display_price(self) -> str:
        """Price with two decimals ("99.9" -> "99.90"); unparsable prices are shown as given."""
        price = _to_decimal(self.price)
        if price is None:
            return self.price
        return str(price.quantize(CENTS, rounding=ROUND_HALF_UP))

    @property
    def discount_rate(self) -> Decimal:
        """Discount percentage (0-100); anything unparsable or negative is 0."""
        rate = _to_decimal(self.price_discount_rate)
        if rate is None or rate <= 0:
            return Decimal(0)
        return rate

    @property
    def discount_label(self) -> str:
        rate = self.discount_rate.quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return f"-{rate}%"

    @property
    def original_price(self) -> Optional[Decimal]:
        """Pre-discount price, ``price / (1 - rate/100)`` rounded to cents."""
        rate = self.discount_rate
        price = _to_decimal(self.price)
        if price is None or rate <= 0 or rate >= 100:
            return None
        original = price / (1 - rate / 100)
        return original.quantize(CENTS, rounding=ROUND_HALF_UP)

    @property
    def rating(self) -> str:
        return self.rating_star.strip() or DEFAULT_RATING

    @property
    def sales_count(self) -> int:
        value = _to_decimal(self.sales)
        return int(value) if value is not None and value > 0 else 0


@dataclass(frozen=True)
class CustomColors:
    """Per-call palette overrides; ``None`` fields keep the template colour."""

    primary: Optional[str] = None
    secondary: Optional[str] = None
    accent: Optional[str] = None
    background: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["CustomColors"]:
        if not data:
            return None
        return cls(**{f.name: data.get(f.name) for f in fields(cls)})


@dataclass(frozen=True)
class CardConfig:
    """Resolved render options for a single card."""

    width: int = 1080
    height: int = 1920
    format: CardFormat = "png"
    quality: float = 0.9
    template: str = "modern"
    show_badges: bool = True
    show_rating: bool = True
    show_shop_name: bool = False
    use_gradient: bool = True
    custom_colors: Optional[CustomColors] = None

    def __post_init__(self):
        """Validate dimensions, format, quality and template."""
        fmt = str(self.format).lower()
        if fmt == "jpg":
            fmt = "jpeg"
        object.__setattr__(self, "format", fmt)

        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"Card {name} must be an integer, got {value!r}")
            if value <= 0 or value > settings.max_dimension:
                raise ConfigurationError(
                    f"Card {name} must be between 1 and {settings.max_dimension}, got {value}"
                )
        if fmt not in CARD_FORMATS:
            raise ConfigurationError(f"Unsupported card format: {self.format!r}")
        if isinstance(self.quality, bool) or not isinstance(self.quality, (int, float)):
            raise ConfigurationError(f"Quality must be a number, got {self.quality!r}")
        # Only JPEG encoding reads quality.
        if fmt == "jpeg" and not 0 <= self.quality <= 1:
            raise ConfigurationError(f"JPEG quality must be within 0..1, got {self.quality}")
        if self.template not in TEMPLATES:
            raise ConfigurationError(
                f"Unknown template {self.template!r}; expected one of {sorted(TEMPLATES)}"
            )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def mime_type(self) -> str:
        return f"image/{self.format}"

    def with_overrides(self, **changes: Any) -> "CardConfig":
        """Return a copy with the given fields replaced (re-validated)."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict, base: Optional["CardConfig"] = None) -> "CardConfig":
        """Merge a JSON config (camelCase keys) over ``base`` or the defaults."""
        base = base or DEFAULT_CARD_CONFIG
        keys = {
            "width": "width",
            "height": "height",
            "format": "format",
            "quality": "quality",
            "template": "template",
            "showBadges": "show_badges",
            "showRating": "show_rating",
            "showShopName": "show_shop_name",
            "useGradient": "use_gradient",
        }
        changes: dict[str, Any] = {}
        for key, attr in keys.items():
            value = _pick(data, key, attr)
            if value is not None:
                changes[attr] = value
        colors = _pick(data, "customColors", "custom_colors")
        if colors is not None:
            changes["custom_colors"] = CustomColors.from_dict(colors)
        return replace(base, **changes)


DEFAULT_CARD_CONFIG = CardConfig()


@dataclass(frozen=True)
class TransitionConfig:
    """Timing and effect for a multi-image frame sequence (milliseconds)."""

    enabled: bool = True
    duration: int = 1500
    transition_time: int = 500
    effect: TransitionEffect = "fade"

    def __post_init__(self):
        if self.effect not in TRANSITION_EFFECTS:
            raise ConfigurationError(
                f"Unknown transition effect {self.effect!r}; expected one of {TRANSITION_EFFECTS}"
            )
        if self.duration <= 0:
            raise ConfigurationError(f"Transition duration must be positive, got {self.duration}")
        if self.transition_time < 0:
            raise ConfigurationError(
                f"Transition time must not be negative, got {self.transition_time}"
            )

    @property
    def effective_transition_time(self) -> int:
        """Transition time clamped to the per-image hold duration."""
        return min(self.transition_time, self.duration)

    @classmethod
    def from_dict(cls, data: dict) -> "TransitionConfig":
        base = DEFAULT_TRANSITION_CONFIG
        try:
            duration = int(_pick(data, "duration", default=base.duration))
            transition_time = int(_pick(data, "transitionTime", "transition_time", default=base.transition_time))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Transition timings must be integers (milliseconds): {e}") from e
        return cls(
            enabled=_to_bool(_pick(data, "enabled", default=base.enabled)),
            duration=duration,
            transition_time=transition_time,
            effect=_pick(data, "effect", default=base.effect),
        )


DEFAULT_TRANSITION_CONFIG = TransitionConfig()


@dataclass
class RenderedImage:
    """An encoded card or frame, tagged with its MIME type."""

    data: bytes
    mime_type: str
    width: int
    height: int
    metadata: dict = field(default_factory=dict)

    @property
    def extension(self) -> str:
        return "jpg" if self.mime_type == "image/jpeg" else "png"

    def save(self, path: Path) -> Path:
        """Write the buffer to ``path`` (parent directories are created)."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        return path
