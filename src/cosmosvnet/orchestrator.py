"""Provisioning orchestrator for the Cosmos DB virtual network rule sample.

Runs the sample as a strictly sequential workflow:

1. Resolve the subscription
2. Create a resource group (the cleanup scope)
3. Create a virtual network with two subnets trusting Cosmos DB
4. Create a Cosmos DB account whose virtual network rules trust subnet1
5. List the rules (expect subnet1)
6. Add subnet2 by rewriting the full rule list
7. List the rules again (expect subnet1 and subnet2)
8. Optionally clear all rules and delete the virtual network
9. Delete the Cosmos DB account

The resource group is acquired through a context manager whose exit always
deletes it when it was created, whatever happened in between. A failure in any
step stops the run; there are no retries.

Public API:
    VNetRuleOrchestrator: Runs the workflow
    cleanup_scope: Delete a resource group if one was created
    RunReport: What a run created, observed and cleaned up
    ProvisioningError: A step failed
    TrustRuleMismatchError: Rules read back differ from what was written
"""

import logging
import signal
import threading
import traceback
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum

from cosmosvnet.config_manager import SampleConfig
from cosmosvnet.display import ResourceDisplay
from cosmosvnet.log_sanitizer import LogSanitizer
from cosmosvnet.models import (
    DatabaseDescriptor,
    DatabaseSpec,
    NetworkDescriptor,
    NetworkSpec,
    ResourceScope,
    SubnetDescriptor,
    SubscriptionInfo,
    TrustRule,
    merge_trust_rules,
    rule_keys,
    rules_for_subnets,
)
from cosmosvnet.naming import generate_database_name, generate_random_name
from cosmosvnet.resource_client import CloudResourceClient

logger = logging.getLogger(__name__)


class Step(StrEnum):
    """Workflow steps, in execution order."""

    RESOLVE_SUBSCRIPTION = "resolve_subscription"
    CREATE_SCOPE = "create_resource_group"
    CREATE_NETWORK = "create_virtual_network"
    CREATE_DATABASE = "create_database_account"
    LIST_RULES = "list_trust_rules"
    ADD_RULE = "add_trust_rule"
    LIST_RULES_AFTER_UPDATE = "list_trust_rules_after_update"
    CLEAR_RULES = "clear_trust_rules"
    DELETE_NETWORK = "delete_virtual_network"
    DELETE_DATABASE = "delete_database_account"


class CleanupOutcome(StrEnum):
    """Result of the resource group teardown."""

    DELETED = "deleted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class RunReport:
    """What a run created, observed and cleaned up."""

    subscription: SubscriptionInfo | None = None
    scope: ResourceScope | None = None
    network: NetworkDescriptor | None = None
    database: DatabaseDescriptor | None = None
    rules_after_create: list[TrustRule] = field(default_factory=list)
    rules_after_update: list[TrustRule] = field(default_factory=list)
    rules_after_clear: list[TrustRule] | None = None
    completed_steps: list[Step] = field(default_factory=list)
    failed_step: Step | None = None
    cleanup: CleanupOutcome | None = None

    @property
    def succeeded(self) -> bool:
        return self.failed_step is None and self.cleanup in (
            CleanupOutcome.DELETED,
            CleanupOutcome.SKIPPED,
        )


class OrchestratorError(Exception):
    """Base exception for orchestrator operations."""

    pass


class ProvisioningError(OrchestratorError):
    """A workflow step failed; the run was aborted."""

    def __init__(self, step: Step, message: str, report: RunReport | None = None):
        super().__init__(f"{step.value} failed: {message}")
        self.step = step
        self.report = report


class TrustRuleMismatchError(ProvisioningError):
    """Virtual network rules read back differ from the expected subnets."""

    pass


@contextmanager
def defer_interrupts() -> Iterator[list[int]]:
    """Hold off SIGINT for the duration of the block.

    Only the main thread can install signal handlers; elsewhere the block runs
    unprotected. Yields the list of signals received while deferred.
    """
    received: list[int] = []
    if threading.current_thread() is not threading.main_thread():
        yield received
        return

    def _record(signum, frame):
        received.append(signum)
        logger.warning("Interrupt received during cleanup, waiting for cleanup to finish...")

    previous = signal.signal(signal.SIGINT, _record)
    try:
        yield received
    finally:
        signal.signal(signal.SIGINT, previous)


def cleanup_scope(client: CloudResourceClient, scope: ResourceScope | None) -> CleanupOutcome:
    """Delete the resource group if one was created.

    Never raises: a failed deletion is logged with its traceback so that the
    error which aborted the run (if any) is the one that propagates.

    Args:
        client: Resource client used for the run
        scope: Resource group created by the run, or None if none was created

    Returns:
        CleanupOutcome: DELETED, SKIPPED (nothing created) or FAILED
    """
    if scope is None:
        logger.info("Did not create any resources in Azure. No clean up is necessary")
        return CleanupOutcome.SKIPPED

    try:
        logger.info(f"Deleting resource group: {scope.id}")
        client.delete_resource_group(scope)
        logger.info(f"Deleted resource group: {scope.id}")
        return CleanupOutcome.DELETED
    except Exception as e:
        logger.error(
            LogSanitizer.create_safe_error_message(
                e, f"Failed to delete resource group {scope.name}"
            )
        )
        logger.error(LogSanitizer.sanitize(traceback.format_exc()))
        return CleanupOutcome.FAILED


class VNetRuleOrchestrator:
    """Run the virtual network rule workflow against a CloudResourceClient.

    Example:
        >>> client = AzureResourceClient(credential, subscription_id)
        >>> report = VNetRuleOrchestrator(client, SampleConfig()).run()
        >>> report.cleanup
        <CleanupOutcome.DELETED: 'deleted'>
    """

    def __init__(
        self,
        client: CloudResourceClient,
        config: SampleConfig | None = None,
        display: ResourceDisplay | None = None,
    ):
        self.client = client
        self.config = config or SampleConfig()
        self.display = display

    def run(self) -> RunReport:
        """Run every step, then tear down the resource group.

        Returns:
            RunReport for a successful run

        Raises:
            ProvisioningError: If any step fails. Cleanup has already been
                attempted and the partial report is attached as .report.
            KeyboardInterrupt: If interrupted, once cleanup has finished
        """
        report = RunReport()

        with self.provisioned_scope(report) as scope:
            self._provision(scope, report)

        logger.info("Sample completed successfully")
        return report

    @contextmanager
    def provisioned_scope(self, report: RunReport) -> Iterator[ResourceScope]:
        """Resolve the subscription, create the resource group and guarantee
        its deletion on exit.

        The scope is captured as soon as creation returns, so any later failure
        (or KeyboardInterrupt) still leads to its deletion. A failure before
        that point leaves nothing to clean up.
        """
        scope: ResourceScope | None = None
        interrupted = False
        try:
            with self._step(Step.RESOLVE_SUBSCRIPTION, report):
                report.subscription = self.client.resolve_subscription()
            logger.info(f"Using subscription: {report.subscription.subscription_id}")

            name = generate_random_name(self.config.resource_group_prefix, max_length=90)
            logger.info("Creating a resource group..")
            with self._step(Step.CREATE_SCOPE, report):
                scope = self.client.create_resource_group(name, self.config.region)
            report.scope = scope
            logger.info(f"Created a resource group with name: {scope.name}")
            yield scope
        finally:
            with defer_interrupts() as received:
                report.cleanup = cleanup_scope(self.client, scope)
            interrupted = bool(received)
        # Reached only when no step error is propagating
        if interrupted:
            logger.warning("Cleanup finished, honouring interrupt")
            raise KeyboardInterrupt

    def add_trust_rule(self, database: DatabaseDescriptor, rule: TrustRule) -> DatabaseDescriptor:
        """Trust one more subnet on the account.

        The update replaces the whole rule list, so the current rules are read
        first and written back together with the new one. Concurrent writers
        can still lose updates between the read and the write.
        """
        current = self.client.list_trust_rules(database)
        desired = merge_trust_rules(current, rule)
        logger.debug(f"Replacing {len(current)} rule(s) with {len(desired)} rule(s)")
        return self.client.replace_trust_rules(database, desired)

    def clear_trust_rules(self, database: DatabaseDescriptor) -> DatabaseDescriptor:
        """Remove every virtual network rule from the account."""
        return self.client.replace_trust_rules(database, [])

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def _provision(self, scope: ResourceScope, report: RunReport) -> None:
        config = self.config

        network_spec = NetworkSpec(
            name=generate_random_name(config.network_prefix, max_length=64),
            location=config.region,
            address_space=config.address_space,
            subnets=config.subnet_specs,
        )
        logger.info("Creating a virtual network with two subnets...")
        with self._step(Step.CREATE_NETWORK, report):
            network = self.client.create_virtual_network(scope, network_spec)
            first, second = (network.subnet(spec.name) for spec in config.subnet_specs)
        report.network = network
        logger.info(f"Created a virtual network: {network.name}")
        if self.display:
            self.display.show_network(network)

        database_spec = DatabaseSpec(
            name=generate_database_name(config.database_prefix),
            location=config.database_region,
            consistency=config.consistency,
            enable_table_api=config.enable_table_api,
            write_replication_region=config.write_replication_region or None,
        )
        logger.info("Creating a CosmosDB...")
        with self._step(Step.CREATE_DATABASE, report):
            database = self.client.create_database_account(
                scope, database_spec, rules_for_subnets([first])
            )
        report.database = database
        logger.info(f"Created CosmosDB: {database.name}")
        if self.display:
            self.display.show_database(database)

        with self._step(Step.LIST_RULES, report):
            report.rules_after_create = self._read_rules(Step.LIST_RULES, database, [first])

        logger.info(f"Adding virtual network rule for {second.name}...")
        with self._step(Step.ADD_RULE, report):
            database = self.add_trust_rule(database, TrustRule(subnet_id=second.id))
        report.database = database

        logger.info("Listing all virtual network rules in CosmosDB account.")
        with self._step(Step.LIST_RULES_AFTER_UPDATE, report):
            report.rules_after_update = self._read_rules(
                Step.LIST_RULES_AFTER_UPDATE, database, [first, second]
            )

        if config.clear_rules_before_delete:
            logger.info("Removing all virtual network rules...")
            with self._step(Step.CLEAR_RULES, report):
                database = self.clear_trust_rules(database)
                report.rules_after_clear = self._read_rules(Step.CLEAR_RULES, database, [])
            report.database = database

        if config.delete_network:
            logger.info(f"Deleting virtual network: {network.name}")
            with self._step(Step.DELETE_NETWORK, report):
                self.client.delete_virtual_network(scope, network)

        if config.delete_database:
            logger.info("Deleting the CosmosDB")
            with self._step(Step.DELETE_DATABASE, report):
                self.client.delete_database_account(database)
            logger.info(f"Deleted the CosmosDB: {database.name}")

    def _read_rules(
        self, step: Step, database: DatabaseDescriptor, expected: Sequence[SubnetDescriptor]
    ) -> list[TrustRule]:
        rules = self.client.list_trust_rules(database)

        logger.info("CosmosDB Virtual Network Rules:")
        for rule in rules:
            logger.info(f"\t{rule.subnet_id}")
        if self.display:
            self.display.show_trust_rules(rules)

        expected_keys = rule_keys(rules_for_subnets(expected))
        if len(rules) != len(expected) or rule_keys(rules) != expected_keys:
            names = ", ".join(subnet.name for subnet in expected) or "none"
            raise TrustRuleMismatchError(
                step, f"expected rules for [{names}], found {len(rules)} rule(s)"
            )
        return rules

    @contextmanager
    def _step(self, step: Step, report: RunReport) -> Iterator[None]:
        """Record the outcome of one step, wrapping failures in ProvisioningError."""
        logger.debug(f"Starting step: {step.value}")
        try:
            yield
        except ProvisioningError as e:
            report.failed_step = step
            e.report = report
            raise
        except Exception as e:
            report.failed_step = step
            raise ProvisioningError(step, LogSanitizer.sanitize_exception(e), report) from e
        except BaseException:
            report.failed_step = step
            raise
        report.completed_steps.append(step)


__all__ = [
    "CleanupOutcome",
    "OrchestratorError",
    "ProvisioningError",
    "RunReport",
    "Step",
    "TrustRuleMismatchError",
    "VNetRuleOrchestrator",
    "cleanup_scope",
    "defer_interrupts",
]
