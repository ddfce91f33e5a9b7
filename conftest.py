"""Root pytest configuration for cosmosvnet.

Every test gets a private config directory, so nothing can read or rewrite
the real ~/.cosmosvnet/config.toml.
"""

import os

import pytest

from cosmosvnet.config_manager import ConfigManager


def pytest_report_header(config):
    if os.environ.get("RUN_E2E_TESTS") == "true":
        return "RUN_E2E_TESTS=true: e2e tests will provision REAL Azure resources"
    return None


@pytest.fixture(autouse=True)
def _private_config_dir(tmp_path_factory, monkeypatch):
    """Point ConfigManager's default location at a throwaway directory."""
    config_dir = tmp_path_factory.mktemp("cosmosvnet-home") / ".cosmosvnet"
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_DIR", config_dir)
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_FILE", config_dir / "config.toml")
