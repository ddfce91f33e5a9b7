"""Configuration management module.

Settings for a sample run (regions, name prefixes, address ranges, staleness
bounds, optional steps) live in a TOML file. Defaults reproduce the classic
sample: a 192.168.0.0/16 network with two /24 subnets and a Table API account
with BoundedStaleness(100000, 300), replicating writes to eastus. An empty
write_replication_region keeps the account in a single region.

Security:
- Config file permissions: 0600 (owner read/write only)
- No credentials in the config file; those come from the environment
"""

import ipaddress
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for Python versions that ship tomllib
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

try:
    import tomlkit
except ImportError as e:
    raise ImportError("tomlkit library not available. Install with: pip install tomlkit") from e

from cosmosvnet.models import ConsistencyPolicy, SubnetSpec

logger = logging.getLogger(__name__)

# Cosmos DB limits for BoundedStaleness
MIN_STALENESS_PREFIX = 1
MAX_STALENESS_PREFIX = 2147483647
MIN_INTERVAL_SECONDS = 5
MAX_INTERVAL_SECONDS = 86400


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


def _normalize_region(name: str) -> str:
    """'West US' and 'westus' name the same region."""
    return name.replace(" ", "").lower()


def _default_subnets() -> list[dict[str, str]]:
    return [
        {"name": "subnet1", "address_prefix": "192.168.1.0/24"},
        {"name": "subnet2", "address_prefix": "192.168.2.0/24"},
    ]


@dataclass
class SampleConfig:
    """Settings for one sample run."""

    region: str = "eastus"
    database_region: str = "westus"
    write_replication_region: str = "eastus"
    resource_group_prefix: str = "CosmosDBTemplateRG"
    network_prefix: str = "vnet"
    database_prefix: str = "cosmosdb"
    address_space: str = "192.168.0.0/16"
    subnets: list[dict[str, str]] = field(default_factory=_default_subnets)
    max_staleness_prefix: int = 100000
    max_interval_in_seconds: int = 300
    enable_table_api: bool = True
    delete_database: bool = True
    clear_rules_before_delete: bool = False
    delete_network: bool = False
    subscription_id: str | None = None

    @property
    def subnet_specs(self) -> tuple[SubnetSpec, ...]:
        """Subnets as specs, each allowing the Cosmos DB service endpoint."""
        return tuple(
            SubnetSpec(name=s["name"], address_prefix=s["address_prefix"]) for s in self.subnets
        )

    @property
    def consistency(self) -> ConsistencyPolicy:
        return ConsistencyPolicy.bounded_staleness(
            self.max_staleness_prefix, self.max_interval_in_seconds
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # TOML has no null
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SampleConfig":
        """Create from dictionary, ignoring unknown keys.

        Raises:
            ConfigError: If a value has the wrong type
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        values = {k: v for k, v in data.items() if k in known}

        try:
            if "subnets" in values:
                values["subnets"] = [dict(s) for s in values["subnets"]]
            return cls(**values)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def with_overrides(self, **overrides: Any) -> "SampleConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> "SampleConfig":
        """Validate settings, returning self for chaining.

        Raises:
            ConfigError: If any setting is invalid
        """
        for name in (
            "region",
            "database_region",
            "resource_group_prefix",
            "network_prefix",
            "database_prefix",
        ):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{name} must be a non-empty string")

        if len(self.subnets) != 2:
            raise ConfigError(f"Exactly two subnets are required, got {len(self.subnets)}")

        try:
            space = ipaddress.ip_network(self.address_space)
        except ValueError as e:
            raise ConfigError(f"Invalid address_space '{self.address_space}': {e}") from e

        seen: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = []
        names: set[str] = set()
        for subnet in self.subnets:
            name = subnet.get("name", "")
            prefix = subnet.get("address_prefix", "")
            if not name:
                raise ConfigError("Every subnet needs a name")
            if name in names:
                raise ConfigError(f"Duplicate subnet name: {name}")
            names.add(name)
            try:
                network = ipaddress.ip_network(prefix)
            except ValueError as e:
                raise ConfigError(f"Invalid address_prefix for {name}: {e}") from e
            if network.version != space.version or not network.subnet_of(space):  # type: ignore[arg-type]
                raise ConfigError(f"Subnet {name} ({prefix}) is outside {self.address_space}")
            for other in seen:
                if network.overlaps(other):
                    raise ConfigError(f"Subnet {name} ({prefix}) overlaps {other}")
            seen.append(network)

        for name in ("max_staleness_prefix", "max_interval_in_seconds"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")

        if not MIN_STALENESS_PREFIX <= self.max_staleness_prefix <= MAX_STALENESS_PREFIX:
            raise ConfigError(
                f"max_staleness_prefix must be between {MIN_STALENESS_PREFIX} "
                f"and {MAX_STALENESS_PREFIX}, got {self.max_staleness_prefix}"
            )
        if not MIN_INTERVAL_SECONDS <= self.max_interval_in_seconds <= MAX_INTERVAL_SECONDS:
            raise ConfigError(
                f"max_interval_in_seconds must be between {MIN_INTERVAL_SECONDS} "
                f"and {MAX_INTERVAL_SECONDS}, got {self.max_interval_in_seconds}"
            )

        if not isinstance(self.write_replication_region, str):
            raise ConfigError("write_replication_region must be a string")
        if _normalize_region(self.write_replication_region) == _normalize_region(
            self.database_region
        ):
            raise ConfigError(
                f"write_replication_region must differ from database_region "
                f"({self.database_region})"
            )

        # Subnets referenced by virtual network rules cannot be deleted
        if self.delete_network and not self.clear_rules_before_delete:
            raise ConfigError("delete_network requires clear_rules_before_delete")

        return self


class ConfigManager:
    """Manage the cosmosvnet configuration file.

    Configuration is stored at ~/.cosmosvnet/config.toml with secure permissions.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".cosmosvnet"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Raises:
            ConfigError: If a custom path is given and does not exist
        """
        if custom_path:
            path = Path(custom_path).expanduser().resolve()
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            return path

        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> SampleConfig:
        """Load configuration from file, falling back to defaults.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            Validated SampleConfig

        Raises:
            ConfigError: If loading or validation fails
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return SampleConfig().validate()

        try:
            mode = config_path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                )
                os.chmod(config_path, 0o600)

            with open(config_path, "rb") as f:
                data = tomli.load(f)  # type: ignore[attr-defined]
        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

        logger.debug(f"Loaded config from: {config_path}")
        return SampleConfig.from_dict(data).validate()

    @classmethod
    def save_config(
        cls, config: SampleConfig, custom_path: str | None = None, overwrite: bool = False
    ) -> Path:
        """Save configuration to file.

        Args:
            config: Configuration to save
            custom_path: Custom config file path (optional)
            overwrite: Replace an existing file

        Returns:
            Path the configuration was written to

        Raises:
            ConfigError: If the file exists and overwrite is False, or saving fails
        """
        config_path = (
            Path(custom_path).expanduser().resolve() if custom_path else cls.DEFAULT_CONFIG_FILE
        )
        if config_path.exists() and not overwrite:
            raise ConfigError(f"Config file already exists: {config_path}")

        temp_path = config_path.with_suffix(".tmp")
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            doc = tomlkit.document()
            doc.add(tomlkit.comment("cosmosvnet sample configuration"))
            for key, value in config.to_dict().items():
                if key == "subnets":
                    continue
                doc[key] = value

            subnets = tomlkit.aot()
            for subnet in config.subnets:
                table = tomlkit.table()
                table.update(subnet)
                subnets.append(table)
            doc["subnets"] = subnets

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e


__all__ = ["ConfigError", "ConfigManager", "SampleConfig"]
