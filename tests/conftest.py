"""
Shared test fixtures and configuration for BGArt Mockup tests.
"""
from io import BytesIO
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient
from PIL import Image

from bgart import create_app
from bgart.config import Config
from bgart.models import ImageItem, LightingOptions, Placement, ShadingOptions
from bgart.storage.session_store import SessionStore
from bgart.utils.images import image_to_data_url


class TestingConfig(Config):
    TESTING = True
    LOG_LEVEL = "DEBUG"


@pytest.fixture(scope="session")
def app() -> Flask:
    """Create and configure a test Flask application instance."""
    app = create_app(TestingConfig)
    yield app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def session_store(tmp_path: Path, mocker) -> SessionStore:
    """SessionStore on a temp dir, patched into every route module."""
    store = SessionStore(tmp_path / "sessions")
    for module in ("sessions_api", "mockups_api", "templates_api"):
        mocker.patch(f"bgart.routes.{module}.sessions", store)
    return store


@pytest.fixture
def no_shading() -> ShadingOptions:
    return ShadingOptions(enabled=False)


@pytest.fixture
def no_lighting() -> LightingOptions:
    return LightingOptions.default().with_enabled(False)


@pytest.fixture
def background_item() -> ImageItem:
    """200x200 white background with placement {0.1, 0.1, 0.5, 0.5}."""
    return make_item("background.png", 200, 200, (255, 255, 255, 255),
                     placement=Placement(0.1, 0.1, 0.5, 0.5))


@pytest.fixture
def product_item() -> ImageItem:
    """50x50 opaque red product."""
    return make_item("product.png", 50, 50, (255, 0, 0, 255))


@pytest.fixture
def logo_item() -> ImageItem:
    """20x20 opaque blue logo."""
    return make_item("logo.png", 20, 20, (0, 0, 255, 255))



@pytest.fixture
def item_factory():
    """Factory fixture: item_factory(name, width, height, color, placement=..., ...)."""
    return make_item


@pytest.fixture
def png_bytes():
    """Factory fixture: png_bytes(width, height, color, fmt="PNG") -> encoded image."""
    return image_bytes


# Helper functions for fixtures

def make_data_url(width: int = 100, height: int = 100,
                  color: tuple = (255, 0, 0, 255), fmt: str = "PNG") -> str:
    """Data URL of a solid color image."""
    img = Image.new("RGBA", (width, height), color)
    if fmt.upper() == "JPEG":
        img = img.convert("RGB")
    return image_to_data_url(img, fmt)


def make_item(name: str, width: int = 100, height: int = 100,
              color: tuple = (255, 0, 0, 255), placement: Placement | None = None,
              logo_placement: Placement | None = None, item_id: str | None = None) -> ImageItem:
    item = ImageItem.create(name, make_data_url(width, height, color), with_default_placements=False)
    if item_id:
        item.id = item_id
    item.placement = placement
    item.logo_placement = logo_placement
    return item


def image_bytes(width: int = 100, height: int = 100,
                color: tuple = (255, 0, 0, 255), fmt: str = "PNG") -> bytes:
    img = Image.new("RGBA", (width, height), color)
    if fmt.upper() == "JPEG":
        img = img.convert("RGB")
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()
