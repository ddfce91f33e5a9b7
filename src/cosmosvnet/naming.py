"""Random resource name generation."""

import re
import uuid

# Cosmos DB account names: 3-44 chars, lowercase letters, digits and hyphens
COSMOS_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{1,42}[a-z0-9]$")


def generate_random_name(prefix: str, max_length: int = 24, suffix_length: int = 8) -> str:
    """Generate a unique resource name from a prefix.

    Args:
        prefix: Name prefix (e.g. "CosmosDBTemplateRG")
        max_length: Maximum total length of the name
        suffix_length: Number of random hex characters appended

    Returns:
        str: Prefix truncated to fit, followed by a random suffix

    Examples:
        >>> generate_random_name("vnet")  # doctest: +SKIP
        'vnet3f9a1c2e'
    """
    if suffix_length >= max_length:
        raise ValueError("suffix_length must be smaller than max_length")

    suffix = uuid.uuid4().hex[:suffix_length]
    return f"{prefix[: max_length - suffix_length]}{suffix}"


def generate_database_name(prefix: str) -> str:
    """Generate a Cosmos DB account name (lowercase, hyphens only)."""
    cleaned = re.sub(r"[^a-z0-9-]", "", prefix.lower()).strip("-") or "cosmosdb"
    name = generate_random_name(cleaned, max_length=44)
    if not COSMOS_NAME_PATTERN.match(name):
        raise ValueError(f"Invalid Cosmos DB account name generated: {name}")
    return name
