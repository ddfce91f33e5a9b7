"""
Shared test fixtures and configuration for cosmosvnet tests.

This module provides common fixtures used across all test types:
- In-memory resource client
- Sample configurations
- Service principal environment variables
- Isolated config directory
"""

from pathlib import Path

import pytest

from cosmosvnet.config_manager import ConfigManager, SampleConfig
from tests.mocks.cloud_mock import FakeResourceClient

# ============================================================================
# CONSTANTS
# ============================================================================

TENANT_ID = "87654321-4321-4321-4321-cba987654321"
CLIENT_ID = "11111111-2222-3333-4444-555555555555"
SUBSCRIPTION_ID = "12345678-1234-1234-1234-123456789abc"
CLIENT_SECRET = "fake-client-secret-value"  # noqa: S105 - test fixture, not a real credential


# ============================================================================
# CLIENT AND CONFIG FIXTURES
# ============================================================================


@pytest.fixture
def fake_client():
    """In-memory CloudResourceClient that records every call."""
    return FakeResourceClient()


@pytest.fixture
def sample_config():
    """Default sample configuration."""
    return SampleConfig()


@pytest.fixture
def scenario_config():
    """Configuration for the RG1 / VNet1 / DB1 scenario."""
    return SampleConfig(
        address_space="10.10.0.0/16",
        subnets=[
            {"name": "subnet1", "address_prefix": "10.10.1.0/24"},
            {"name": "subnet2", "address_prefix": "10.10.2.0/24"},
        ],
        max_staleness_prefix=100000,
        max_interval_in_seconds=300,
    )


# ============================================================================
# ENVIRONMENT FIXTURES
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every credential variable from the environment."""
    for name in (
        "CLIENT_ID",
        "CLIENT_SECRET",
        "TENANT_ID",
        "SUBSCRIPTION_ID",
        "AZURE_CLIENT_ID",
        "AZURE_CLIENT_SECRET",
        "AZURE_TENANT_ID",
        "AZURE_SUBSCRIPTION_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def sp_env(clean_env):
    """Set service principal credentials in the environment."""
    clean_env.setenv("CLIENT_ID", CLIENT_ID)
    clean_env.setenv("CLIENT_SECRET", CLIENT_SECRET)
    clean_env.setenv("TENANT_ID", TENANT_ID)
    clean_env.setenv("SUBSCRIPTION_ID", SUBSCRIPTION_ID)
    return clean_env


@pytest.fixture
def isolated_config(tmp_path, monkeypatch) -> Path:
    """Point ConfigManager at a temporary directory instead of ~/.cosmosvnet."""
    config_dir = tmp_path / ".cosmosvnet"
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_DIR", config_dir)
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_FILE", config_dir / "config.toml")
    return config_dir / "config.toml"
