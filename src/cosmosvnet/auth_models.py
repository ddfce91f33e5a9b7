"""Authentication data models for cosmosvnet.

This module defines the authentication-related data structures:
- AuthMethod enum
- ServicePrincipalConfig (tenant, client and subscription identifiers)
- AuthConfig (method plus method-specific configuration)

Security features:
- Frozen dataclasses for immutability
- UUID validation in __post_init__
- Client secret is never stored, it is read from the environment on use
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any
from uuid import UUID

# Environment variable names, first match wins
CLIENT_ID_VARS = ("CLIENT_ID", "AZURE_CLIENT_ID")
CLIENT_SECRET_VARS = ("CLIENT_SECRET", "AZURE_CLIENT_SECRET")  # noqa: S105 - names, not secrets
TENANT_ID_VARS = ("TENANT_ID", "AZURE_TENANT_ID")
SUBSCRIPTION_ID_VARS = ("SUBSCRIPTION_ID", "AZURE_SUBSCRIPTION_ID")


def validate_uuid(value: str, field_name: str) -> None:
    """Validate UUID format. Raises ValueError if invalid.

    Args:
        value: The string to validate as UUID
        field_name: Name of the field for error messages

    Raises:
        ValueError: If value is not a valid UUID format
    """
    if not value:
        raise ValueError(f"{field_name} must be valid UUID format, got empty string")

    try:
        UUID(value)
    except (ValueError, AttributeError) as e:
        raise ValueError(f"{field_name} must be valid UUID format, got: {value}") from e


def read_env(names: tuple[str, ...], environ: Mapping[str, str] | None = None) -> str | None:
    """Return the first non-empty environment value among names."""
    env = os.environ if environ is None else environ
    for name in names:
        value = env.get(name, "").strip()
        if value:
            return value
    return None


class AuthMethod(StrEnum):
    """Authentication method enumeration.

    - SERVICE_PRINCIPAL_SECRET: Service principal with client secret (default)
    - AZURE_CLI: Delegate to an existing ``az login`` session
    """

    SERVICE_PRINCIPAL_SECRET = "sp_secret"  # noqa: S105 - Enum value, not a password
    AZURE_CLI = "azure_cli"


@dataclass(frozen=True)
class ServicePrincipalConfig:
    """Service principal authentication configuration.

    Security:
    - No client_secret storage - must come from environment
    - tenant_id and client_id validated as UUIDs
    - Frozen to prevent mutation
    """

    tenant_id: str
    client_id: str

    def __post_init__(self):
        """Validate UUIDs for tenant_id and client_id."""
        validate_uuid(self.tenant_id, "tenant_id")
        validate_uuid(self.client_id, "client_id")

    @classmethod
    def from_environment(
        cls, environ: Mapping[str, str] | None = None
    ) -> "ServicePrincipalConfig":
        """Build configuration from CLIENT_ID and TENANT_ID variables.

        Raises:
            ValueError: If a variable is missing or not a UUID
        """
        tenant_id = read_env(TENANT_ID_VARS, environ)
        client_id = read_env(CLIENT_ID_VARS, environ)
        if not tenant_id:
            raise ValueError("TENANT_ID environment variable is not set")
        if not client_id:
            raise ValueError("CLIENT_ID environment variable is not set")
        return cls(tenant_id=tenant_id, client_id=client_id)

    def to_dict_masked(self) -> dict[str, Any]:
        """Convert to dictionary with identifiers partially masked."""
        return {
            "tenant_id": f"{self.tenant_id[:8]}-****",
            "client_id": f"{self.client_id[:8]}-****",
        }


@dataclass(frozen=True)
class AuthConfig:
    """Complete authentication configuration.

    Combines authentication method with method-specific configuration and the
    subscription the sample runs against.
    """

    method: AuthMethod
    service_principal: ServicePrincipalConfig | None = None
    subscription_id: str | None = None

    def __post_init__(self):
        """Validate configuration consistency."""
        if self.method == AuthMethod.SERVICE_PRINCIPAL_SECRET and not self.service_principal:
            raise ValueError(f"{self.method.value} requires service_principal configuration")

        if self.method == AuthMethod.AZURE_CLI and self.service_principal:
            raise ValueError("AZURE_CLI method should not have service_principal configuration")

        if self.subscription_id is not None:
            validate_uuid(self.subscription_id, "subscription_id")

    @classmethod
    def from_environment(
        cls,
        method: AuthMethod = AuthMethod.SERVICE_PRINCIPAL_SECRET,
        subscription_id: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "AuthConfig":
        """Build an AuthConfig from environment variables.

        Args:
            method: Authentication method to use
            subscription_id: Explicit subscription, overrides SUBSCRIPTION_ID
            environ: Environment mapping (defaults to os.environ)

        Raises:
            ValueError: If required variables are missing or malformed
        """
        subscription = subscription_id or read_env(SUBSCRIPTION_ID_VARS, environ)
        if method == AuthMethod.SERVICE_PRINCIPAL_SECRET:
            if not subscription:
                raise ValueError("SUBSCRIPTION_ID environment variable is not set")
            return cls(
                method=method,
                service_principal=ServicePrincipalConfig.from_environment(environ),
                subscription_id=subscription,
            )
        return cls(method=method, subscription_id=subscription)
