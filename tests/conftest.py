"""Shared fixtures for the images sync tests."""

import pytest

from images_sync.core.models import AppConfig, DerivativeSpec, SyncConfig
from images_sync.testing import FakeImageTransform, FakeObjectStore


@pytest.fixture
def sync_config():
    """Scenario configuration: one width spec and one height spec."""
    return SyncConfig(
        input_path="images/",
        output_path="pub/",
        output_images=[DerivativeSpec(width=800), DerivativeSpec(height=600)],
    )


@pytest.fixture
def app_config(sync_config):
    return AppConfig(bucket_name="test-bucket", input_config=sync_config)


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def transform():
    return FakeImageTransform()
