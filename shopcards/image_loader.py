"""Asynchronous image acquisition and decoding.

Product photos arrive as URLs, data URIs, local paths, raw bytes or already
decoded Pillow images. Fetching and decoding run in a worker thread so the
event loop stays free; every failure surfaces as ImageLoadError.
"""

import asyncio
import base64
import binascii
import io
from pathlib import Path
from typing import Optional, Union

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

from .config import settings
from .errors import ImageLoadError
from .utils import get_logger, image_fetch_retry

logger = get_logger(__name__)

ImageSource = Union[str, Path, bytes, Image.Image]

USER_AGENT = "Mozilla/5.0 (compatible; ShopCards/1.0)"


def describe_source(source: ImageSource) -> str:
    """Short, log-safe description of an image source."""
    if isinstance(source, Image.Image):
        return f"<image {source.size[0]}x{source.size[1]}>"
    if isinstance(source, bytes):
        return f"<{len(source)} bytes>"
    text = str(source)
    if text.startswith("data:"):
        return text[:30] + "..."
    return text


class ImageLoader:
    """Loads product photos into RGBA Pillow images."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ):
        self.timeout = timeout or settings.image_fetch_timeout_seconds
        self.max_bytes = max_bytes or settings.image_max_bytes
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})
        attempts = max_attempts or settings.image_fetch_max_attempts
        self._http_get = image_fetch_retry(attempts)(self._http_get_once)

    async def load(self, source: ImageSource) -> Image.Image:
        """Fetch and decode one image without blocking the event loop."""
        return await asyncio.to_thread(self.load_sync, source)

    def load_sync(self, source: ImageSource) -> Image.Image:
        """Fetch and decode one image in the calling thread."""
        if isinstance(source, Image.Image):
            return source.convert("RGBA")
        if isinstance(source, (bytes, bytearray)):
            return self._decode(bytes(source), describe_source(source))
        if not source:
            raise ImageLoadError("No image source given", source=None)

        text = str(source)
        if text.startswith(("http://", "https://")):
            data = self._fetch_http(text)
        elif text.startswith("data:"):
            data = self._decode_data_uri(text)
        else:
            data = self._read_file(Path(text))
        return self._decode(data, describe_source(source))

    def _http_get_once(self, url: str) -> requests.Response:
        response = self._session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response

    def _fetch_http(self, url: str) -> bytes:
        try:
            response = self._http_get(url)
        except requests.RequestException as e:
            raise ImageLoadError(f"Failed to fetch image {url}: {e}", source=url) from e

        data = response.content
        if len(data) > self.max_bytes:
            raise ImageLoadError(
                f"Image {url} is {len(data)} bytes, above the {self.max_bytes} byte limit",
                source=url,
            )
        logger.debug(f"Fetched {len(data)} bytes from {url}")
        return data

    def _decode_data_uri(self, uri: str) -> bytes:
        header, _, payload = uri.partition(",")
        if ";base64" not in header:
            raise ImageLoadError("Only base64 data URIs are supported", source=describe_source(uri))
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageLoadError(f"Malformed data URI: {e}", source=describe_source(uri)) from e

    def _read_file(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise ImageLoadError(f"Failed to read image file {path}: {e}", source=str(path)) from e

    def _decode(self, data: bytes, label: str) -> Image.Image:
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                img = ImageOps.exif_transpose(img)
                return img.convert("RGBA")
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise ImageLoadError(f"Failed to decode image {label}: {e}", source=label) from e
