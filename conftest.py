"""
Pytest configuration for curator tests.

Provides:
- @pytest.mark.integration marker for tests that exercise several components
  against a real SQLite file
- --skip-integration option to leave those tests out
"""

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--skip-integration",
        action="store_true",
        default=False,
        help="Skip tests marked as integration",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that run several components against SQLite"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests when --skip-integration is given."""
    if not config.getoption("--skip-integration"):
        return

    skip_integration = pytest.mark.skip(reason="--skip-integration given")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
