"""Shared fixtures: synthetic photos, small canvases and a stubbed HTTP session."""

import io

import pytest
import requests
from PIL import Image

from shopcards.card_compositor import CardCompositor
from shopcards.image_loader import ImageLoader
from shopcards.models import CardConfig, Product


class StubResponse:
    def __init__(self, status_code=200, content=b""):
        self.status_code = status_code
        self.content = content

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class StubSession:
    """Replays queued responses (or exceptions) in order; the last one repeats."""

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        outcome = self.responses[0] if len(self.responses) == 1 else self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def make_photo():
    def _make(color=(200, 40, 40), size=(120, 90)):
        return Image.new("RGB", size, color)

    return _make


@pytest.fixture
def small_config():
    return CardConfig(width=160, height=240)


@pytest.fixture
def product():
    return Product(
        product_name="Fone X",
        price="99.90",
        price_discount_rate="20",
        sales="1500",
        rating_star="4.8",
        shop_name="Loja do Som",
        free_shipping=True,
    )


@pytest.fixture
def description():
    return "Som incrível com graves potentes.\n🔥 OFERTA #fone #audio"


@pytest.fixture
def compositor():
    return CardCompositor(loader=ImageLoader(session=StubSession(StubResponse(404))))
