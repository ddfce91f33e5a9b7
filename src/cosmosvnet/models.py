"""Resource descriptors for the virtual network rule sample.

Descriptors are thin, immutable views of Azure objects owned by the
provider. Nothing here talks to Azure; resource_client builds these from SDK
results and the orchestrator only passes identifiers between them.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

COSMOS_DB_SERVICE_ENDPOINT = "Microsoft.AzureCosmosDB"
BOUNDED_STALENESS = "BoundedStaleness"


@dataclass(frozen=True)
class SubscriptionInfo:
    """Subscription the run is scoped to."""

    subscription_id: str
    display_name: str | None = None
    state: str | None = None


@dataclass(frozen=True)
class ResourceScope:
    """A resource group: the unit of cleanup for a run."""

    id: str
    name: str
    location: str


@dataclass(frozen=True)
class SubnetSpec:
    """Desired subnet: name, prefix and the services allowed to reach it."""

    name: str
    address_prefix: str
    service_endpoints: tuple[str, ...] = (COSMOS_DB_SERVICE_ENDPOINT,)


@dataclass(frozen=True)
class NetworkSpec:
    """Desired virtual network."""

    name: str
    location: str
    address_space: str
    subnets: tuple[SubnetSpec, ...]


@dataclass(frozen=True)
class SubnetDescriptor:
    """A created subnet."""

    name: str
    id: str
    address_prefix: str
    service_endpoints: tuple[str, ...] = ()

    @property
    def trusts_cosmos_db(self) -> bool:
        return COSMOS_DB_SERVICE_ENDPOINT in self.service_endpoints


@dataclass(frozen=True)
class NetworkDescriptor:
    """A created virtual network and its subnets, in creation order."""

    name: str
    id: str
    location: str
    address_space: tuple[str, ...]
    subnets: tuple[SubnetDescriptor, ...]

    def subnet(self, name: str) -> SubnetDescriptor:
        """Look up a subnet by name.

        Raises:
            KeyError: If the network has no subnet with that name
        """
        for subnet in self.subnets:
            if subnet.name == name:
                return subnet
        raise KeyError(f"Subnet '{name}' not found in virtual network '{self.name}'")


@dataclass(frozen=True)
class ConsistencyPolicy:
    """Cosmos DB default consistency policy.

    Staleness bounds only apply to BoundedStaleness.
    """

    level: str = BOUNDED_STALENESS
    max_staleness_prefix: int | None = None
    max_interval_in_seconds: int | None = None

    @classmethod
    def bounded_staleness(
        cls, max_staleness_prefix: int, max_interval_in_seconds: int
    ) -> "ConsistencyPolicy":
        return cls(
            level=BOUNDED_STALENESS,
            max_staleness_prefix=max_staleness_prefix,
            max_interval_in_seconds=max_interval_in_seconds,
        )


@dataclass(frozen=True)
class TrustRule:
    """A virtual network rule: a subnet permitted to reach the account."""

    subnet_id: str
    ignore_missing_service_endpoint: bool = False

    @property
    def key(self) -> str:
        # ARM resource ids compare case-insensitively
        return self.subnet_id.lower()

    def matches(self, subnet_id: str) -> bool:
        return self.key == subnet_id.lower()


@dataclass(frozen=True)
class DatabaseSpec:
    """Desired Cosmos DB account."""

    name: str
    location: str
    consistency: ConsistencyPolicy
    enable_table_api: bool = True
    write_replication_region: str | None = None


@dataclass(frozen=True)
class DatabaseDescriptor:
    """A created Cosmos DB account as last read from Azure."""

    name: str
    id: str
    location: str
    resource_group: str
    consistency: ConsistencyPolicy
    trust_rules: tuple[TrustRule, ...] = field(default_factory=tuple)
    kind: str | None = None
    document_endpoint: str | None = None


def rule_keys(rules: Iterable[TrustRule]) -> set[str]:
    """Membership view of a rule list, ignoring order and id casing."""
    return {rule.key for rule in rules}


def rules_for_subnets(subnets: Iterable[SubnetDescriptor]) -> list[TrustRule]:
    """Build one trust rule per subnet."""
    return [TrustRule(subnet_id=subnet.id) for subnet in subnets]


def merge_trust_rules(current: Iterable[TrustRule], new: TrustRule) -> list[TrustRule]:
    """Return the full rule list that keeps current rules and adds new.

    Updates replace the whole list on the account, so the previously
    trusted subnets must be carried over.
    """
    merged = list(current)
    if new.key not in rule_keys(merged):
        merged.append(new)
    return merged
