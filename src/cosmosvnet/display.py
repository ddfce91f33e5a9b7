"""Rich output for created resources and run results."""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from cosmosvnet.models import DatabaseDescriptor, NetworkDescriptor, TrustRule

if TYPE_CHECKING:
    from cosmosvnet.orchestrator import RunReport


class ResourceDisplay:
    """Print networks, database accounts and trust rules as Rich tables."""

    def __init__(self, console: Console | None = None):
        """Initialize display formatter.

        Args:
            console: Optional Rich console (creates new one if None)
        """
        self.console = console or Console()

    def show_network(self, network: NetworkDescriptor) -> None:
        table = Table(title=f"Virtual network: {network.name}", show_header=True)
        table.add_column("Subnet", style="cyan")
        table.add_column("Address prefix")
        table.add_column("Service endpoints", style="green")
        for subnet in network.subnets:
            table.add_row(
                subnet.name, subnet.address_prefix, ", ".join(subnet.service_endpoints) or "-"
            )

        self.console.print(f"[bold]Id:[/bold] {network.id}")
        self.console.print(f"[bold]Region:[/bold] {network.location}")
        self.console.print(f"[bold]Address space:[/bold] {', '.join(network.address_space)}")
        self.console.print(table)

    def show_database(self, database: DatabaseDescriptor) -> None:
        consistency = database.consistency
        lines = [
            f"[bold]Id:[/bold] {database.id}",
            f"[bold]Region:[/bold] {database.location}",
            f"[bold]Kind:[/bold] {database.kind or '-'}",
            f"[bold]Consistency:[/bold] {consistency.level}",
        ]
        if consistency.max_staleness_prefix is not None:
            lines.append(
                f"[bold]Staleness bounds:[/bold] {consistency.max_staleness_prefix} operations, "
                f"{consistency.max_interval_in_seconds}s"
            )
        if database.document_endpoint:
            lines.append(f"[bold]Endpoint:[/bold] {database.document_endpoint}")
        lines.append(f"[bold]Virtual network rules:[/bold] {len(database.trust_rules)}")

        self.console.print(Panel("\n".join(lines), title=f"Cosmos DB: {database.name}"))

    def show_trust_rules(self, rules: Sequence[TrustRule], title: str = "Virtual network rules") -> None:
        if not rules:
            self.console.print(f"[yellow]{title}: none[/yellow]")
            return

        table = Table(title=title, show_header=True)
        table.add_column("#", justify="right")
        table.add_column("Subnet id", style="cyan")
        for index, rule in enumerate(rules, start=1):
            table.add_row(str(index), rule.subnet_id)
        self.console.print(table)

    def show_summary(self, report: "RunReport") -> None:
        table = Table(title="Run summary", show_header=True)
        table.add_column("Step")
        table.add_column("Status")
        for step in report.completed_steps:
            table.add_row(step.value, "[green]done[/green]")
        if report.failed_step is not None:
            table.add_row(report.failed_step.value, "[red]failed[/red]")

        cleanup_style = {"deleted": "green", "skipped": "yellow", "failed": "red"}
        outcome = report.cleanup.value if report.cleanup else "not run"
        style = cleanup_style.get(outcome, "white")
        table.add_row("cleanup", f"[{style}]{outcome}[/{style}]")
        self.console.print(table)
