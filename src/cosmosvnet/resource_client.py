"""Azure resource management client for the virtual network rule sample.

CloudResourceClient is the seam the orchestrator depends on. AzureResourceClient
implements it with the Azure management SDKs:
- azure-mgmt-resource: subscriptions and resource groups
- azure-mgmt-network: virtual networks and subnets
- azure-mgmt-cosmosdb: database accounts and their virtual network rules

Every create/update/delete is a long-running operation. The client waits on
each poller with .result() so callers only ever see terminal states.

Azure SDK exceptions are translated into ResourceClientError subclasses with
sanitized messages; the original exception stays chained as __cause__.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
)
from azure.core.exceptions import (
    ResourceNotFoundError as AzureResourceNotFoundError,
)
from azure.mgmt.cosmosdb import CosmosDBManagementClient
from azure.mgmt.cosmosdb.models import (
    Capability,
    DatabaseAccountCreateUpdateParameters,
    DatabaseAccountUpdateParameters,
    Location,
    VirtualNetworkRule,
)
from azure.mgmt.cosmosdb.models import ConsistencyPolicy as CosmosConsistencyPolicy
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.resource import ResourceManagementClient, SubscriptionClient

from cosmosvnet.log_sanitizer import LogSanitizer
from cosmosvnet.models import (
    ConsistencyPolicy,
    DatabaseDescriptor,
    DatabaseSpec,
    NetworkDescriptor,
    NetworkSpec,
    ResourceScope,
    SubnetDescriptor,
    SubscriptionInfo,
    TrustRule,
)

logger = logging.getLogger(__name__)

TABLE_API_CAPABILITY = "EnableTable"
DATABASE_KIND = "GlobalDocumentDB"


class ResourceClientError(Exception):
    """Raised when an Azure management call fails."""

    pass


class AuthenticationError(ResourceClientError):
    """Credentials are missing, invalid or rejected by Azure."""

    pass


class ResourceNotFoundError(ResourceClientError):
    """The requested Azure resource does not exist."""

    pass


@contextmanager
def translate_azure_errors(operation: str) -> Iterator[None]:
    """Map Azure SDK exceptions raised inside the block to ResourceClientError."""
    try:
        yield
    except ClientAuthenticationError as e:
        raise AuthenticationError(LogSanitizer.create_safe_error_message(e, operation)) from e
    except AzureResourceNotFoundError as e:
        raise ResourceNotFoundError(LogSanitizer.create_safe_error_message(e, operation)) from e
    except AzureError as e:
        raise ResourceClientError(LogSanitizer.create_safe_error_message(e, operation)) from e


class CloudResourceClient(ABC):
    """Operations the orchestrator needs from the cloud provider.

    Every method blocks until the remote operation reaches a terminal state.
    """

    @abstractmethod
    def resolve_subscription(self) -> SubscriptionInfo:
        """Resolve the subscription all resources are created in."""

    @abstractmethod
    def create_resource_group(self, name: str, location: str) -> ResourceScope:
        """Create (or update) a resource group."""

    @abstractmethod
    def delete_resource_group(self, scope: ResourceScope) -> None:
        """Delete a resource group and everything inside it."""

    @abstractmethod
    def create_virtual_network(self, scope: ResourceScope, spec: NetworkSpec) -> NetworkDescriptor:
        """Create a virtual network with the requested subnets."""

    @abstractmethod
    def delete_virtual_network(self, scope: ResourceScope, network: NetworkDescriptor) -> None:
        """Delete a virtual network."""

    @abstractmethod
    def create_database_account(
        self, scope: ResourceScope, spec: DatabaseSpec, trust_rules: Sequence[TrustRule]
    ) -> DatabaseDescriptor:
        """Create a Cosmos DB account restricted to the given trust rules."""

    @abstractmethod
    def list_trust_rules(self, database: DatabaseDescriptor) -> list[TrustRule]:
        """Read the current virtual network rules of an account."""

    @abstractmethod
    def replace_trust_rules(
        self, database: DatabaseDescriptor, trust_rules: Sequence[TrustRule]
    ) -> DatabaseDescriptor:
        """Replace the whole virtual network rule list of an account."""

    @abstractmethod
    def delete_database_account(self, database: DatabaseDescriptor) -> None:
        """Delete a Cosmos DB account."""


class AzureResourceClient(CloudResourceClient):
    """CloudResourceClient backed by the Azure management SDKs.

    SDK clients may be injected for testing; otherwise they are created on
    first use, once the subscription is known.
    """

    def __init__(
        self,
        credential: Any,
        subscription_id: str | None = None,
        *,
        subscription_client: Any = None,
        resource_client: Any = None,
        network_client: Any = None,
        cosmos_client: Any = None,
    ):
        self.credential = credential
        self.subscription_id = subscription_id
        self._subscription_client = subscription_client
        self._resource_client = resource_client
        self._network_client = network_client
        self._cosmos_client = cosmos_client

    # ------------------------------------------------------------------
    # SDK clients
    # ------------------------------------------------------------------

    def _require_subscription(self) -> str:
        if not self.subscription_id:
            raise ResourceClientError(
                "Subscription not resolved. Call resolve_subscription() first."
            )
        return self.subscription_id

    @property
    def subscriptions(self) -> Any:
        if self._subscription_client is None:
            self._subscription_client = SubscriptionClient(self.credential)
        return self._subscription_client

    @property
    def resources(self) -> Any:
        if self._resource_client is None:
            self._resource_client = ResourceManagementClient(
                self.credential, self._require_subscription()
            )
        return self._resource_client

    @property
    def network(self) -> Any:
        if self._network_client is None:
            self._network_client = NetworkManagementClient(
                self.credential, self._require_subscription()
            )
        return self._network_client

    @property
    def cosmos(self) -> Any:
        if self._cosmos_client is None:
            self._cosmos_client = CosmosDBManagementClient(
                self.credential, self._require_subscription()
            )
        return self._cosmos_client

    # ------------------------------------------------------------------
    # Subscription and resource groups
    # ------------------------------------------------------------------

    def resolve_subscription(self) -> SubscriptionInfo:
        """Resolve the configured subscription, or the first one visible.

        Raises:
            AuthenticationError: If Azure rejects the credentials
            ResourceClientError: If no subscription is available
        """
        with translate_azure_errors("Resolving subscription"):
            if self.subscription_id:
                subscription = self.subscriptions.subscriptions.get(self.subscription_id)
            else:
                subscription = next(iter(self.subscriptions.subscriptions.list()), None)
                if subscription is None:
                    raise ResourceClientError("No subscriptions available for these credentials")

        info = SubscriptionInfo(
            subscription_id=subscription.subscription_id,
            display_name=subscription.display_name,
            state=_enum_value(getattr(subscription, "state", None)),
        )
        self.subscription_id = info.subscription_id
        return info

    def create_resource_group(self, name: str, location: str) -> ResourceScope:
        with translate_azure_errors(f"Creating resource group {name}"):
            group = self.resources.resource_groups.create_or_update(name, {"location": location})
        return ResourceScope(id=group.id, name=group.name, location=group.location)

    def delete_resource_group(self, scope: ResourceScope) -> None:
        with translate_azure_errors(f"Deleting resource group {scope.name}"):
            self.resources.resource_groups.begin_delete(scope.name).result()

    # ------------------------------------------------------------------
    # Virtual networks
    # ------------------------------------------------------------------

    def create_virtual_network(self, scope: ResourceScope, spec: NetworkSpec) -> NetworkDescriptor:
        """Create a virtual network; each subnet gets its service endpoints."""
        parameters = {
            "location": spec.location,
            "address_space": {"address_prefixes": [spec.address_space]},
            "subnets": [
                {
                    "name": subnet.name,
                    "address_prefix": subnet.address_prefix,
                    "service_endpoints": [
                        {"service": service} for service in subnet.service_endpoints
                    ],
                }
                for subnet in spec.subnets
            ],
        }
        with translate_azure_errors(f"Creating virtual network {spec.name}"):
            vnet = self.network.virtual_networks.begin_create_or_update(
                scope.name, spec.name, parameters
            ).result()
        return _to_network_descriptor(vnet)

    def delete_virtual_network(self, scope: ResourceScope, network: NetworkDescriptor) -> None:
        with translate_azure_errors(f"Deleting virtual network {network.name}"):
            self.network.virtual_networks.begin_delete(scope.name, network.name).result()

    # ------------------------------------------------------------------
    # Cosmos DB accounts
    # ------------------------------------------------------------------

    def create_database_account(
        self, scope: ResourceScope, spec: DatabaseSpec, trust_rules: Sequence[TrustRule]
    ) -> DatabaseDescriptor:
        """Create a Cosmos DB account with virtual network filtering enabled."""
        parameters = DatabaseAccountCreateUpdateParameters(
            location=spec.location,
            kind=DATABASE_KIND,
            locations=_to_locations(spec),
            consistency_policy=CosmosConsistencyPolicy(
                default_consistency_level=spec.consistency.level,
                max_staleness_prefix=spec.consistency.max_staleness_prefix,
                max_interval_in_seconds=spec.consistency.max_interval_in_seconds,
            ),
            capabilities=[Capability(name=TABLE_API_CAPABILITY)] if spec.enable_table_api else None,
            enable_multiple_write_locations=bool(spec.write_replication_region),
            is_virtual_network_filter_enabled=True,
            virtual_network_rules=_to_sdk_rules(trust_rules),
        )
        with translate_azure_errors(f"Creating Cosmos DB account {spec.name}"):
            account = self.cosmos.database_accounts.begin_create_or_update(
                scope.name, spec.name, parameters
            ).result()
        return _to_database_descriptor(account, scope.name)

    def list_trust_rules(self, database: DatabaseDescriptor) -> list[TrustRule]:
        with translate_azure_errors(f"Reading Cosmos DB account {database.name}"):
            account = self.cosmos.database_accounts.get(database.resource_group, database.name)
        return _to_trust_rules(account.virtual_network_rules)

    def replace_trust_rules(
        self, database: DatabaseDescriptor, trust_rules: Sequence[TrustRule]
    ) -> DatabaseDescriptor:
        """Replace the rule list; an empty list also disables the filter."""
        parameters = DatabaseAccountUpdateParameters(
            is_virtual_network_filter_enabled=bool(trust_rules),
            virtual_network_rules=_to_sdk_rules(trust_rules),
        )
        with translate_azure_errors(f"Updating Cosmos DB account {database.name}"):
            account = self.cosmos.database_accounts.begin_update(
                database.resource_group, database.name, parameters
            ).result()
        return _to_database_descriptor(account, database.resource_group)

    def delete_database_account(self, database: DatabaseDescriptor) -> None:
        with translate_azure_errors(f"Deleting Cosmos DB account {database.name}"):
            self.cosmos.database_accounts.begin_delete(
                database.resource_group, database.name
            ).result()


# ----------------------------------------------------------------------
# SDK model conversion
# ----------------------------------------------------------------------


def _enum_value(value: Any) -> Any:
    """SDK enums are str-based; return the plain value."""
    return getattr(value, "value", value)


def _to_locations(spec: DatabaseSpec) -> list[Location]:
    """Primary region first; the replication region, if any, also takes writes."""
    locations = [Location(location_name=spec.location, failover_priority=0)]
    if spec.write_replication_region:
        locations.append(
            Location(location_name=spec.write_replication_region, failover_priority=1)
        )
    return locations


def _to_sdk_rules(trust_rules: Sequence[TrustRule]) -> list[VirtualNetworkRule]:
    return [
        VirtualNetworkRule(
            id=rule.subnet_id,
            ignore_missing_v_net_service_endpoint=rule.ignore_missing_service_endpoint,
        )
        for rule in trust_rules
    ]


def _to_trust_rules(sdk_rules: Sequence[Any] | None) -> list[TrustRule]:
    return [
        TrustRule(
            subnet_id=rule.id,
            ignore_missing_service_endpoint=bool(rule.ignore_missing_v_net_service_endpoint),
        )
        for rule in sdk_rules or []
    ]


def _to_network_descriptor(vnet: Any) -> NetworkDescriptor:
    subnets = tuple(
        SubnetDescriptor(
            name=subnet.name,
            id=subnet.id,
            address_prefix=subnet.address_prefix,
            service_endpoints=tuple(ep.service for ep in subnet.service_endpoints or []),
        )
        for subnet in vnet.subnets or []
    )
    address_space = vnet.address_space.address_prefixes if vnet.address_space else []
    return NetworkDescriptor(
        name=vnet.name,
        id=vnet.id,
        location=vnet.location,
        address_space=tuple(address_space or []),
        subnets=subnets,
    )


def _to_database_descriptor(account: Any, resource_group: str) -> DatabaseDescriptor:
    policy = account.consistency_policy
    consistency = ConsistencyPolicy(
        level=_enum_value(policy.default_consistency_level) if policy else "Session",
        max_staleness_prefix=policy.max_staleness_prefix if policy else None,
        max_interval_in_seconds=policy.max_interval_in_seconds if policy else None,
    )
    return DatabaseDescriptor(
        name=account.name,
        id=account.id,
        location=account.location,
        resource_group=resource_group,
        consistency=consistency,
        trust_rules=tuple(_to_trust_rules(account.virtual_network_rules)),
        kind=_enum_value(getattr(account, "kind", None)),
        document_endpoint=getattr(account, "document_endpoint", None),
    )


__all__ = [
    "AuthenticationError",
    "AzureResourceClient",
    "CloudResourceClient",
    "ResourceClientError",
    "ResourceNotFoundError",
    "translate_azure_errors",
]
