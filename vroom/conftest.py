"""Pytest configuration and shared fixtures."""

import pytest


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--online",
        action="store_true",
        default=False,
        help="Run tests that call live provider APIs (needs API keys in .env)",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line(
        "markers", "online: mark test as requiring external connectivity"
    )


def pytest_collection_modifyitems(config, items):
    """Skip online tests if --online flag is not provided."""
    if config.getoption("--online"):
        return

    skip_online = pytest.mark.skip(reason="need --online option to run")
    for item in items:
        if "online" in item.keywords:
            item.add_marker(skip_online)
