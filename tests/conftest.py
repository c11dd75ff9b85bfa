"""Shared pytest fixtures for the zombie transformer tests."""

from __future__ import annotations

import io
from pathlib import Path
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from zombie_transformer.app import create_app
from zombie_transformer.config import Config
from zombie_transformer.errors import TransformationError
from zombie_transformer.providers import Provider, TransformationRequest, TransformationResult


def _encode_image(size=(64, 48), color=(200, 30, 30), fmt="PNG", mode="RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeProvider(Provider):
    """Records requests and returns a fixed result, or raises ``error`` when set."""

    name = "fake"

    def __init__(self, src: str = "https://cdn.example.com/zombie.png",
                 error: Optional[Exception] = None, requires_resize: bool = False) -> None:
        super().__init__("test-token")
        self.src = src
        self.error = error
        self.requires_resize = requires_resize
        self.requests: List[TransformationRequest] = []

    def transform(self, request: TransformationRequest) -> TransformationResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return TransformationResult(src=self.src, provider=self.name)


@pytest.fixture
def png_bytes() -> bytes:
    return _encode_image()


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def config(upload_dir: Path) -> Config:
    return Config(upload_dir=upload_dir, replicate_api_token="test-token")


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def client(config: Config, fake_provider: FakeProvider) -> TestClient:
    return TestClient(create_app(config, provider=fake_provider))


@pytest.fixture
def failing_provider() -> FakeProvider:
    return FakeProvider(error=TransformationError("503 Service Unavailable: overloaded", status=503, body="overloaded"))


@pytest.fixture
def make_image():
    """Encode a solid-colour image; accepts size, color, fmt and mode."""
    return _encode_image


@pytest.fixture
def make_provider():
    return FakeProvider
