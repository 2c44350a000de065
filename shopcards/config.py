"""Configuration management using Pydantic Settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    output_dir: Path = Field(default=Path("output"), alias="OUTPUT_DIR")
    assets_dir: Path = Field(default=Path("assets"), alias="ASSETS_DIR")

    # Card copy
    watermark_text: str = Field(default="Gerado por ShopeeCards", alias="CARD_WATERMARK_TEXT")
    cta_label: str = Field(default="COMPRE AGORA • LINK NA BIO", alias="CARD_CTA_LABEL")

    # Surface limits
    max_dimension: int = Field(default=8192, alias="CARD_MAX_DIMENSION")

    # Image transport
    image_fetch_timeout_seconds: float = Field(default=15.0, alias="IMAGE_FETCH_TIMEOUT_SECONDS")
    image_fetch_max_attempts: int = Field(default=3, alias="IMAGE_FETCH_MAX_ATTEMPTS")
    image_max_bytes: int = Field(default=20 * 1024 * 1024, alias="IMAGE_MAX_BYTES")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def fonts_dir(self) -> Path:
        """Path to the fonts directory."""
        return self.assets_dir / "fonts"


# Global settings instance
settings = Settings()
