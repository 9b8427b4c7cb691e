"""Shared fixtures for the signed transforms tests."""

from unittest.mock import MagicMock

import pytest

from signed_transforms.models import AssetRef
from signed_transforms.settings import Settings

SECRET = "test-secret"
WORKER_URL = "https://images.example.workers.dev"

ENV_KEYS = [
    'CFST_WORKER_URL',
    'CFST_SIGNATURE_SECRET',
    'CFST_DEFAULT_EXPIRATION',
    'CFST_ENABLE_CACHE_PURGE',
    'CFST_TRANSFORM_GIFS',
    'CFST_TRANSFORM_SVGS',
    'CFST_DEFAULT_IMAGE_QUALITY',
    'CLOUDFLARE_ZONE_ID',
    'CLOUDFLARE_API_KEY',
]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        worker_url=WORKER_URL,
        signature_secret=SECRET,
        default_expiration=0,
        enable_cache_purge=True,
        zone_id="zone123",
        api_key="token456",
    )


@pytest.fixture
def jpeg_asset() -> AssetRef:
    return AssetRef(mime_type="image/jpeg", public_url="https://cdn.example.com/uploads/photo.jpg")


@pytest.fixture
def clean_env(monkeypatch):
    """Remove configuration variables, restoring them after the test."""
    for key in ENV_KEYS + ['MY_API_TOKEN']:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def make_response(status_code: int = 200, body=None) -> MagicMock:
    """Fake requests.Response returning the given JSON body."""
    response = MagicMock()
    response.status_code = status_code
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = {'success': True, 'errors': [], 'result': {}} if body is None else body
    return response


@pytest.fixture
def session() -> MagicMock:
    """Fake requests.Session whose POSTs succeed."""
    fake = MagicMock()
    fake.headers = {}
    fake.post.return_value = make_response()
    return fake
