"""Utility modules for ShopCards."""

from .logging_config import get_logger, setup_logging
from .retry import image_fetch_retry

__all__ = ["get_logger", "setup_logging", "image_fetch_retry"]
