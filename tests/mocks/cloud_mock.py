"""
In-memory cloud resource client for testing.

FakeResourceClient implements CloudResourceClient with dictionaries instead of
Azure calls. It records every call in order so tests can assert on the exact
sequence of creations and deletions, and it can be told to fail any method.
"""

from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from cosmosvnet.models import (
    DatabaseDescriptor,
    DatabaseSpec,
    NetworkDescriptor,
    NetworkSpec,
    ResourceScope,
    SubnetDescriptor,
    SubscriptionInfo,
    TrustRule,
)
from cosmosvnet.resource_client import CloudResourceClient, ResourceNotFoundError

SUBSCRIPTION_ID = "12345678-1234-1234-1234-123456789abc"


class FakeResourceClient(CloudResourceClient):
    """Record calls and keep created resources in memory."""

    def __init__(self, failures: dict[str, BaseException] | None = None):
        self.failures = dict(failures or {})
        self.calls: list[tuple[str, Any]] = []
        self.resource_groups: dict[str, ResourceScope] = {}
        self.networks: dict[str, NetworkDescriptor] = {}
        self.databases: dict[str, DatabaseDescriptor] = {}
        self.database_specs: dict[str, DatabaseSpec] = {}
        # Names to use instead of the generated ones, for readable assertions
        self.name_overrides: dict[str, str] = {}

    def _record(self, method: str, target: Any) -> None:
        self.calls.append((method, target))
        if method in self.failures:
            raise self.failures[method]

    def calls_to(self, method: str) -> list[Any]:
        return [target for name, target in self.calls if name == method]

    @property
    def deletions(self) -> list[tuple[str, Any]]:
        return [(name, target) for name, target in self.calls if name.startswith("delete_")]

    def resolve_subscription(self) -> SubscriptionInfo:
        self._record("resolve_subscription", SUBSCRIPTION_ID)
        return SubscriptionInfo(subscription_id=SUBSCRIPTION_ID, display_name="Test Subscription")

    def create_resource_group(self, name: str, location: str) -> ResourceScope:
        name = self.name_overrides.get("resource_group", name)
        self._record("create_resource_group", name)
        scope = ResourceScope(
            id=f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{name}",
            name=name,
            location=location,
        )
        self.resource_groups[name] = scope
        return scope

    def delete_resource_group(self, scope: ResourceScope) -> None:
        self._record("delete_resource_group", scope.id)
        self.resource_groups.pop(scope.name, None)
        self.networks.clear()
        self.databases.clear()

    def create_virtual_network(self, scope: ResourceScope, spec: NetworkSpec) -> NetworkDescriptor:
        name = self.name_overrides.get("network", spec.name)
        self._record("create_virtual_network", name)
        vnet_id = f"{scope.id}/providers/Microsoft.Network/virtualNetworks/{name}"
        network = NetworkDescriptor(
            name=name,
            id=vnet_id,
            location=spec.location,
            address_space=(spec.address_space,),
            subnets=tuple(
                SubnetDescriptor(
                    name=subnet.name,
                    id=f"{vnet_id}/subnets/{subnet.name}",
                    address_prefix=subnet.address_prefix,
                    service_endpoints=subnet.service_endpoints,
                )
                for subnet in spec.subnets
            ),
        )
        self.networks[name] = network
        return network

    def delete_virtual_network(self, scope: ResourceScope, network: NetworkDescriptor) -> None:
        self._record("delete_virtual_network", network.name)
        self.networks.pop(network.name, None)

    def create_database_account(
        self, scope: ResourceScope, spec: DatabaseSpec, trust_rules: Sequence[TrustRule]
    ) -> DatabaseDescriptor:
        name = self.name_overrides.get("database", spec.name)
        self._record("create_database_account", name)
        self.database_specs[name] = spec
        database = DatabaseDescriptor(
            name=name,
            id=f"{scope.id}/providers/Microsoft.DocumentDB/databaseAccounts/{name}",
            location=spec.location,
            resource_group=scope.name,
            consistency=spec.consistency,
            trust_rules=tuple(trust_rules),
            kind="GlobalDocumentDB",
        )
        self.databases[name] = database
        return database

    def list_trust_rules(self, database: DatabaseDescriptor) -> list[TrustRule]:
        self._record("list_trust_rules", database.name)
        stored = self.databases.get(database.name)
        if stored is None:
            raise ResourceNotFoundError(f"Cosmos DB account {database.name} not found")
        return list(stored.trust_rules)

    def replace_trust_rules(
        self, database: DatabaseDescriptor, trust_rules: Sequence[TrustRule]
    ) -> DatabaseDescriptor:
        self._record("replace_trust_rules", [rule.subnet_id for rule in trust_rules])
        updated = replace(self.databases[database.name], trust_rules=tuple(trust_rules))
        self.databases[database.name] = updated
        return updated

    def delete_database_account(self, database: DatabaseDescriptor) -> None:
        self._record("delete_database_account", database.name)
        self.databases.pop(database.name, None)
