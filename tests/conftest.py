"""Test configuration and fixtures."""

import os

import pytest

from image_runner.isolation import bootstrap as bootstrap_module


@pytest.fixture
def image_root(tmp_path):
    """Empty image root with room for escape checks beside it."""
    root = tmp_path / "root"
    root.mkdir()
    return root


@pytest.fixture(autouse=True)
def unconfined_process(monkeypatch):
    """Reset the process-wide confinement flag between tests."""
    monkeypatch.setattr(bootstrap_module, "_process_confined", False)


# Pytest configuration
def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring Docker Hub"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly enabled."""
    skip_integration = pytest.mark.skip(reason="Set IMAGE_RUNNER_INTEGRATION=true to run")

    for item in items:
        if (
            "integration" in item.keywords
            and os.getenv("IMAGE_RUNNER_INTEGRATION", "false").lower() != "true"
        ):
            item.add_marker(skip_integration)
