"""Tests for image acquisition."""

import asyncio
import base64
import io

import pytest
import requests
from PIL import Image

from shopcards.errors import ImageLoadError
from shopcards.image_loader import USER_AGENT, ImageLoader

from .conftest import StubResponse, StubSession, png_bytes


@pytest.fixture
def photo_png(make_photo):
    return png_bytes(make_photo(size=(30, 20)))


def test_pil_image_source(make_photo):
    loader = ImageLoader(session=StubSession(StubResponse()))
    image = loader.load_sync(make_photo())
    assert image.mode == "RGBA"
    assert image.size == (120, 90)


def test_bytes_source(photo_png):
    image = ImageLoader(session=StubSession(StubResponse())).load_sync(photo_png)
    assert image.size == (30, 20)
    assert image.mode == "RGBA"


def test_data_uri(photo_png):
    uri = "data:image/png;base64," + base64.b64encode(photo_png).decode()
    image = ImageLoader(session=StubSession(StubResponse())).load_sync(uri)
    assert image.size == (30, 20)


def test_file_path(tmp_path, photo_png):
    path = tmp_path / "photo.png"
    path.write_bytes(photo_png)
    loader = ImageLoader(session=StubSession(StubResponse()))
    assert loader.load_sync(path).size == (30, 20)
    assert loader.load_sync(str(path)).size == (30, 20)


def test_missing_file(tmp_path):
    with pytest.raises(ImageLoadError) as excinfo:
        ImageLoader(session=StubSession(StubResponse())).load_sync(tmp_path / "nope.png")
    assert excinfo.value.source.endswith("nope.png")


def test_undecodable_bytes():
    with pytest.raises(ImageLoadError):
        ImageLoader(session=StubSession(StubResponse())).load_sync(b"definitely not an image")


def test_empty_source():
    with pytest.raises(ImageLoadError):
        ImageLoader(session=StubSession(StubResponse())).load_sync("")


def test_http_fetch(photo_png):
    session = StubSession(StubResponse(200, photo_png))
    loader = ImageLoader(session=session, timeout=3)
    image = asyncio.run(loader.load("https://example.com/a.png"))
    assert image.size == (30, 20)
    assert session.calls == [("https://example.com/a.png", 3)]
    assert session.headers["User-Agent"] == USER_AGENT


def test_http_client_error_is_not_retried():
    session = StubSession(StubResponse(404))
    loader = ImageLoader(session=session, max_attempts=3)
    with pytest.raises(ImageLoadError):
        loader.load_sync("https://example.com/missing.png")
    assert len(session.calls) == 1


def test_http_server_error_is_retried(photo_png):
    session = StubSession(StubResponse(503), StubResponse(200, photo_png))
    loader = ImageLoader(session=session, max_attempts=2)
    assert loader.load_sync("https://example.com/a.png").size == (30, 20)
    assert len(session.calls) == 2


def test_connection_error_gives_up():
    session = StubSession(requests.ConnectionError("boom"))
    loader = ImageLoader(session=session, max_attempts=2)
    with pytest.raises(ImageLoadError) as excinfo:
        loader.load_sync("https://example.com/a.png")
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)
    assert len(session.calls) == 2


def test_oversize_payload(photo_png):
    session = StubSession(StubResponse(200, photo_png))
    loader = ImageLoader(session=session, max_bytes=10)
    with pytest.raises(ImageLoadError):
        loader.load_sync("https://example.com/a.png")


def test_exif_orientation_applied():
    image = Image.new("RGB", (40, 10), (0, 0, 255))
    exif = image.getexif()
    exif[0x0112] = 6  # rotate 90 CW on display
    buffer = io.BytesIO()
    image.save(buffer, "JPEG", exif=exif)
    loaded = ImageLoader(session=StubSession(StubResponse())).load_sync(buffer.getvalue())
    assert loaded.size == (10, 40)
