"""
Pytest configuration and shared fixtures for toolprovision tests.
"""

import pytest

# Import test fixtures to make them available to all tests
# ruff: noqa: F401
from tests.fixtures.archives import nested_tar_gz, nested_zip
from tests.fixtures.hosts import linux_env, windows_env, macos_env

from toolprovision.core.tool_cache import ToolCache


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_cache_env(monkeypatch, tmp_path):
    """Keep every test away from the real ~/.toolprovision and local config."""
    monkeypatch.setenv("TOOLPROVISION_CACHE_DIR", str(tmp_path / "global-cache"))
    for suffix in ("DOWNLOAD_TIMEOUT", "MAX_RETRIES", "RETRY_DELAY", "BACKOFF_CAP"):
        monkeypatch.delenv(f"TOOLPROVISION_{suffix}", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def tool_cache(tmp_path) -> ToolCache:
    """Empty tool cache rooted in the test directory."""
    return ToolCache(tmp_path / "toolcache")
