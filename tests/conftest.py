"""
XtreamTV Test Configuration

Shared fixtures and configuration for all tests.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

import xtreamtv.config as config_module
from tests.fixtures import FakeClock, ImageFactory


# ============ Time and Storage Fixtures ============


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at a fixed timestamp."""
    return FakeClock()


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    """Root directory for cache namespaces."""
    root = tmp_path / "caches"
    root.mkdir()
    return root


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Create a temporary config file."""
    config_file = tmp_path / "config.yaml"
    config_content = f"""
cache:
  directory: "{(tmp_path / 'config-cache').as_posix()}"
  content_size_budget: 5000
  maintenance_interval: 0

network:
  timeout: 5.0

logging:
  level: "DEBUG"
  max_size: "1MB"
"""
    config_file.write_text(config_content)
    return config_file


# ============ Image Fixtures ============


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG."""
    return ImageFactory.png()


# ============ Environment Fixtures ============


@pytest.fixture(autouse=True)
def clean_environment():
    """Clean environment variables and the loaded config for each test."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("XTREAMTV_"):
            del os.environ[key]

    with patch.object(config_module, "_config", None):
        yield

    os.environ.clear()
    os.environ.update(original_env)


# ============ Markers ============


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "slow: Slow tests")
