"""
Pytest configuration for the gobin test suite.

Tests marked ``integration`` need a real Go toolchain and only run with --full.
"""

import pytest


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (needs go on PATH)",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: needs a Go toolchain; run with --full")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --full is given."""
    if config.getoption("--full"):
        return

    skip_integration = pytest.mark.skip(reason="integration test, run with --full")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
