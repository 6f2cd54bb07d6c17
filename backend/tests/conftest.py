"""
Test fixtures and configuration for pytest.
"""

import base64
import os
import sys
from io import BytesIO
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Settings fail fast without a provider key; tests never reach the real API.
os.environ.setdefault("GOOGLE_API_KEY", "test-api-key")
os.environ.setdefault("APP_MODE", "dev")

from fakes import FakeClassifier, FakeSynthesizer, make_png_bytes
from services.gallery_store import GalleryStore, get_gallery_store
from services.image_preprocessor import PreparedImage
from services.pipeline import GenerationPipeline, get_generation_pipeline


# ============== Test Data Fixtures ==============


@pytest.fixture
def sample_png_bytes() -> bytes:
    """Transparent 200x200 canvas snapshot with a circle doodle."""
    return make_png_bytes()


@pytest.fixture
def sample_data_url(sample_png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(sample_png_bytes).decode("ascii")


@pytest.fixture
def prepared_image(sample_png_bytes: bytes) -> PreparedImage:
    return PreparedImage(data=sample_png_bytes, mime_type="image/png", width=200, height=200)


@pytest.fixture
def rendered_png_bytes() -> bytes:
    """What a successful image-generation call would return."""
    img = Image.new("RGB", (64, 64), (255, 0, 0))
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


# ============== Pipeline Fixtures ==============


@pytest.fixture
def gallery_store() -> GalleryStore:
    return GalleryStore()


@pytest.fixture
def fake_classifier() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture
def fake_synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def pipeline(
    gallery_store: GalleryStore,
    fake_classifier: FakeClassifier,
    fake_synthesizer: FakeSynthesizer,
) -> GenerationPipeline:
    return GenerationPipeline(
        classifier=fake_classifier,
        synthesizer=fake_synthesizer,
        store=gallery_store,
    )


# ============== Client Fixtures ==============


@pytest_asyncio.fixture(scope="function")
async def client(
    pipeline: GenerationPipeline, gallery_store: GalleryStore
) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the pipeline and gallery swapped for fakes."""
    from main import app

    app.dependency_overrides[get_generation_pipeline] = lambda: pipeline
    app.dependency_overrides[get_gallery_store] = lambda: gallery_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
