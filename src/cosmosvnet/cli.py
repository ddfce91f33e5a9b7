"""Command-line interface for cosmosvnet.

Commands:
    cosmosvnet run           Run the virtual network rule sample
    cosmosvnet config init   Write a default configuration file
    cosmosvnet config show   Show the effective configuration

Credentials come from CLIENT_ID, CLIENT_SECRET, TENANT_ID and
SUBSCRIPTION_ID (AZURE_* names are accepted too).
"""

import logging
import sys
import traceback

import click
from rich.console import Console
from rich.table import Table

from cosmosvnet import __version__
from cosmosvnet.auth_models import AuthConfig, AuthMethod
from cosmosvnet.config_manager import ConfigError, ConfigManager, SampleConfig
from cosmosvnet.credential_factory import CredentialFactory, CredentialFactoryError
from cosmosvnet.display import ResourceDisplay
from cosmosvnet.log_sanitizer import LogSanitizer
from cosmosvnet.orchestrator import CleanupOutcome, ProvisioningError, VNetRuleOrchestrator
from cosmosvnet.resource_client import AzureResourceClient

logger = logging.getLogger(__name__)


def _log_failure(error: BaseException) -> None:
    """Log the error message and its sanitized stack trace."""
    logger.error(LogSanitizer.sanitize_exception(error))
    logger.error(LogSanitizer.sanitize(traceback.format_exc()))


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="cosmosvnet")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Cosmos DB virtual network rule sample.

    \b
    Provisions a resource group, a virtual network with two subnets and a
    Cosmos DB account restricted to those subnets, then tears it all down.

    \b
    Examples:
        cosmosvnet run
        cosmosvnet run --clear-rules --delete-network
        cosmosvnet config init
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")
    if not verbose:
        # Azure SDK HTTP logging is noisy at INFO
        logging.getLogger("azure").setLevel(logging.WARNING)


@main.command()
@click.option("--config", "config_path", help="Config file path", type=click.Path())
@click.option("--region", help="Region for the resource group and virtual network", type=str)
@click.option("--database-region", help="Region for the Cosmos DB account", type=str)
@click.option(
    "--write-region",
    help="Second write region for the Cosmos DB account ('' for none)",
    type=str,
)
@click.option("--subscription-id", help="Subscription to use (overrides SUBSCRIPTION_ID)", type=str)
@click.option(
    "--auth",
    "auth_method",
    type=click.Choice([m.value for m in AuthMethod]),
    default=AuthMethod.SERVICE_PRINCIPAL_SECRET.value,
    show_default=True,
    help="Authentication method",
)
@click.option("--staleness-prefix", type=int, help="BoundedStaleness max staleness prefix")
@click.option("--staleness-interval", type=int, help="BoundedStaleness max interval (seconds)")
@click.option("--keep-database", is_flag=True, help="Skip explicit Cosmos DB deletion")
@click.option("--clear-rules", is_flag=True, help="Remove all rules before deleting")
@click.option("--delete-network", is_flag=True, help="Delete the virtual network (needs --clear-rules)")
def run(
    config_path: str | None,
    region: str | None,
    database_region: str | None,
    write_region: str | None,
    subscription_id: str | None,
    auth_method: str,
    staleness_prefix: int | None,
    staleness_interval: int | None,
    keep_database: bool,
    clear_rules: bool,
    delete_network: bool,
) -> None:
    """Run the virtual network rule sample.

    \b
    Steps:
        1. Create a resource group
        2. Create a virtual network with two subnets
        3. Create a Cosmos DB account trusting subnet1
        4. List rules, add subnet2, list rules again
        5. Delete the Cosmos DB account
        6. Delete the resource group (always attempted)
    """
    try:
        config = (
            ConfigManager.load_config(config_path)
            .with_overrides(
                region=region,
                database_region=database_region,
                write_replication_region=write_region,
                max_staleness_prefix=staleness_prefix,
                max_interval_in_seconds=staleness_interval,
                delete_database=False if keep_database else None,
                clear_rules_before_delete=True if clear_rules else None,
                delete_network=True if delete_network else None,
            )
            .validate()
        )
        auth_config = AuthConfig.from_environment(
            AuthMethod(auth_method), subscription_id or config.subscription_id
        )
        credential = CredentialFactory.create_credential(auth_config)
    except (ConfigError, CredentialFactoryError, ValueError) as e:
        logger.error(f"Error: {LogSanitizer.sanitize_exception(e)}")
        sys.exit(1)

    display = ResourceDisplay()
    client = AzureResourceClient(credential, auth_config.subscription_id)

    try:
        report = VNetRuleOrchestrator(client, config, display).run()
    except ProvisioningError as e:
        _log_failure(e)
        if e.report is not None:
            display.show_summary(e.report)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        sys.exit(1)

    display.show_summary(report)
    if report.cleanup == CleanupOutcome.FAILED:
        logger.error("Resource group cleanup failed, delete it manually to stop charges")
        sys.exit(1)


@main.group(name="config")
def config_group() -> None:
    """Manage the cosmosvnet configuration file."""


@config_group.command(name="init")
@click.option("--path", "config_path", help="Where to write the file", type=click.Path())
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def config_init(config_path: str | None, force: bool) -> None:
    """Write the default configuration file."""
    try:
        path = ConfigManager.save_config(SampleConfig(), config_path, overwrite=force)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Wrote configuration to {path}")


@config_group.command(name="show")
@click.option("--config", "config_path", help="Config file path", type=click.Path())
def config_show(config_path: str | None) -> None:
    """Show the effective configuration."""
    try:
        config = ConfigManager.load_config(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    table = Table(title="cosmosvnet configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in config.to_dict().items():
        if key == "subnets":
            value = ", ".join(f"{s['name']}={s['address_prefix']}" for s in value)
        table.add_row(key, str(value))
    Console().print(table)


if __name__ == "__main__":
    main()
