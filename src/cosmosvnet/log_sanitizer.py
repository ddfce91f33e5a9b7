"""Log sanitization for error messages and tracebacks.

Azure SDK exceptions can echo request details back to the caller. Before any
such text reaches the console it is passed through LogSanitizer, which redacts:
- Client secrets (assignments and the live value from the environment)
- Bearer tokens and access tokens
- Cosmos DB account keys and connection strings

Identifiers (subscription, tenant, client) can optionally be masked to their
first 8 characters for output that leaves the machine.
"""

import os
import re
from re import Pattern

from cosmosvnet.auth_models import CLIENT_SECRET_VARS


class LogSanitizer:
    """Sanitize sensitive data from logs and error messages.

    All methods are classmethods and can be called without instantiation.
    """

    REDACTED = "[REDACTED]"
    MASKED = "****"

    # Order matters: more specific patterns first
    SECRET_PATTERNS: dict[str, Pattern] = {
        "client_secret": re.compile(
            r'(client[_-]?secret["\']?\s*[:=]\s*["\']?)([^\s"\'&,;\)]+)', re.IGNORECASE
        ),
        "authorization_bearer": re.compile(r"(Authorization:\s*Bearer\s+)([^\s]+)", re.IGNORECASE),
        "access_token": re.compile(
            r'(access[_-]?token["\']?\s*[:=]\s*["\']?)([^\s"\'&,;\)]+)', re.IGNORECASE
        ),
        "account_key": re.compile(r"(AccountKey=)([^;\s]+)", re.IGNORECASE),
        "master_key": re.compile(
            r'((?:primary|secondary)(?:ReadOnly)?MasterKey["\']?\s*[:=]\s*["\']?)([^\s"\',;\)]+)',
            re.IGNORECASE,
        ),
    }

    UUID_PATTERN: Pattern = re.compile(
        r"\b([0-9a-f]{8})-([0-9a-f]{4})-([0-9a-f]{4})-([0-9a-f]{4})-([0-9a-f]{12})\b",
        re.IGNORECASE,
    )

    @classmethod
    def sanitize(cls, message: str) -> str:
        """Redact every known secret pattern in message.

        Examples:
            >>> LogSanitizer.sanitize("client_secret=abc123")
            'client_secret=[REDACTED]'
            >>> LogSanitizer.sanitize("AccountEndpoint=https://x/;AccountKey=abc==;")
            'AccountEndpoint=https://x/;AccountKey=[REDACTED];'
        """
        if not isinstance(message, str):
            message = str(message)

        result = message
        for pattern in cls.SECRET_PATTERNS.values():
            result = pattern.sub(r"\1" + cls.REDACTED, result)

        return cls.redact_values(result, cls._live_secrets())

    @classmethod
    def redact_values(cls, message: str, values: list[str]) -> str:
        """Replace literal secret values wherever they appear."""
        for value in values:
            if value and len(value) >= 4:
                message = message.replace(value, cls.REDACTED)
        return message

    @classmethod
    def mask_identifiers(cls, message: str) -> str:
        """Partially mask UUIDs, keeping the first 8 characters.

        Examples:
            >>> LogSanitizer.mask_identifiers("sub 12345678-1234-1234-1234-123456789abc")
            'sub 12345678-****-****-****-************'
        """
        return cls.UUID_PATTERN.sub(lambda m: f"{m.group(1)}-****-****-****-************", message)

    @classmethod
    def sanitize_exception(cls, exc: BaseException) -> str:
        """Sanitize exception message."""
        return cls.sanitize(str(exc))

    @classmethod
    def create_safe_error_message(cls, error: BaseException, context: str = "") -> str:
        """Create error message with secrets sanitized.

        Examples:
            >>> err = ValueError("Auth failed with client_secret=abc123")
            >>> LogSanitizer.create_safe_error_message(err, "Authentication")
            'Authentication: Auth failed with client_secret=[REDACTED]'
        """
        sanitized_msg = cls.sanitize_exception(error)
        if context:
            return f"{context}: {sanitized_msg}"
        return sanitized_msg

    @staticmethod
    def _live_secrets() -> list[str]:
        return [os.environ[name] for name in CLIENT_SECRET_VARS if os.environ.get(name)]


__all__ = ["LogSanitizer"]
