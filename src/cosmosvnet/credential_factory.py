"""Credential factory for Azure authentication.

This module creates Azure Identity SDK credential objects from an AuthConfig.

Supported credential types:
- ClientSecretCredential: Service principal with client secret (default)
- AzureCliCredential: Delegate to Azure CLI

Security:
- No token storage - delegates to Azure Identity SDK
- Client secrets from environment variables only
- Log sanitization for all error messages
"""

from collections.abc import Mapping
from typing import Any

from azure.identity import AzureCliCredential, ClientSecretCredential

from cosmosvnet.auth_models import (
    CLIENT_SECRET_VARS,
    AuthConfig,
    AuthMethod,
    ServicePrincipalConfig,
    read_env,
)
from cosmosvnet.log_sanitizer import LogSanitizer


class CredentialFactoryError(Exception):
    """Raised when credential creation fails."""

    pass


class CredentialFactory:
    """Factory for creating Azure Identity credentials.

    Philosophy:
    - Delegate to Azure SDK, don't reinvent
    - Fail fast: missing secrets are reported before any resource is touched
    """

    @staticmethod
    def create_credential(
        auth_config: AuthConfig, environ: Mapping[str, str] | None = None
    ) -> Any:
        """Create Azure Identity credential from configuration.

        Args:
            auth_config: Authentication configuration
            environ: Environment mapping to read the client secret from

        Returns:
            Azure Identity credential object (TokenCredential)

        Raises:
            CredentialFactoryError: If credential creation fails
        """
        try:
            if auth_config.method == AuthMethod.AZURE_CLI:
                return CredentialFactory._create_cli_credential()

            if auth_config.method == AuthMethod.SERVICE_PRINCIPAL_SECRET:
                if not auth_config.service_principal:
                    raise CredentialFactoryError(
                        "SERVICE_PRINCIPAL_SECRET requires service_principal configuration"
                    )
                return CredentialFactory._create_sp_secret_credential(
                    auth_config.service_principal, environ
                )

            raise CredentialFactoryError(
                f"Unsupported authentication method: {auth_config.method}"
            )

        except CredentialFactoryError:
            raise
        except Exception as e:
            safe_error = LogSanitizer.create_safe_error_message(e, "Credential creation failed")
            raise CredentialFactoryError(safe_error) from e

    @staticmethod
    def _create_cli_credential() -> AzureCliCredential:
        """Create Azure CLI credential.

        Raises:
            CredentialFactoryError: If Azure CLI credential cannot be created
        """
        try:
            return AzureCliCredential()
        except Exception as e:
            safe_error = LogSanitizer.sanitize_exception(e)
            raise CredentialFactoryError(
                f"Failed to create Azure CLI credential. "
                f"Is Azure CLI installed and authenticated? Error: {safe_error}"
            ) from e

    @staticmethod
    def _create_sp_secret_credential(
        config: ServicePrincipalConfig, environ: Mapping[str, str] | None = None
    ) -> ClientSecretCredential:
        """Create service principal credential with client secret.

        The client secret MUST come from the CLIENT_SECRET (or
        AZURE_CLIENT_SECRET) environment variable.

        Raises:
            CredentialFactoryError: If client secret not found in environment
        """
        client_secret = read_env(CLIENT_SECRET_VARS, environ)

        if not client_secret:
            raise CredentialFactoryError(
                "Client secret not found in environment. "
                "Set CLIENT_SECRET or AZURE_CLIENT_SECRET environment variable."
            )

        try:
            return ClientSecretCredential(
                tenant_id=config.tenant_id,
                client_id=config.client_id,
                client_secret=client_secret,
            )
        except Exception as e:
            safe_error = LogSanitizer.redact_values(
                LogSanitizer.sanitize_exception(e), [client_secret]
            )
            raise CredentialFactoryError(
                f"Failed to create service principal credential: {safe_error}"
            ) from e


__all__ = ["CredentialFactory", "CredentialFactoryError"]
