"""Deletion plan and result formatting and display."""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.deletion_operation import DeletionOperation, OperationStatus
from ..models.deletion_plan import DeletionPlan


class DeletionReporter:
    """Format and display deletion plans and operation results."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize deletion reporter.

        Args:
            console: Rich console instance (creates new one if not provided)
        """
        self.console = console or Console()

    def display_plan(self, operation: DeletionOperation, plan: Optional[DeletionPlan]) -> None:
        """Display the batches a run would execute.

        Args:
            operation: Dry-run operation from DefaultVpcCleaner.preview()
            plan: Plan computed for the operation (None if there is no default VPC)
        """
        if plan is None:
            self.console.print(f"[green]✓ No default VPC in {operation.region} - nothing to delete[/green]")
            return

        self.console.print()
        self.console.print(
            Panel(
                f"[bold]Default VPC Deletion Plan[/bold]\n"
                f"Region: {operation.region}\n"
                f"VPC: {plan.target.vpc_id}"
                + (f" ({plan.target.cidr_block})" if plan.target.cidr_block else ""),
                style="cyan",
            )
        )

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Step", justify="right", width=5)
        table.add_column("Kind", style="cyan")
        table.add_column("Resources")

        for batch in plan:
            ids = ", ".join(batch.resource_ids) if not batch.is_empty else "[dim]none[/dim]"
            table.add_row(str(batch.index + 1), batch.kind.label, ids)
        table.add_row(str(len(plan.batches) + 1), "vpc", plan.target.vpc_id)

        self.console.print(table)

        if plan.skipped:
            self.console.print()
            self.console.print("[dim]Left for EC2 to remove with the VPC:[/dim]")
            for child in plan.skipped:
                self.console.print(f"  [dim]• {child.kind.label} {child.resource_id}: {child.skip_reason}[/dim]")

    def display_result(self, operation: DeletionOperation) -> None:
        """Display the outcome of an executed operation."""
        if operation.status == OperationStatus.NOTHING_TO_DO:
            self.console.print(f"[green]✓ No default VPC in {operation.region} - nothing to do[/green]")
            return

        summary = Table(title="Summary", show_header=True, header_style="bold magenta")
        summary.add_column("Outcome", style="cyan", width=16)
        summary.add_column("Count", justify="right", style="yellow", width=8)
        summary.add_row("Deleted", f"[green]{operation.deleted_count}[/green]")
        summary.add_row("Already absent", str(operation.already_absent_count))
        summary.add_row("Failed", f"[red]{operation.failed_count}[/red]" if operation.failed_count else "0")
        summary.add_row("Skipped", str(operation.skipped_count))
        self.console.print(summary)

        if operation.failed_records:
            self.display_failures(operation)

        if operation.succeeded:
            self.console.print(f"[green]✓ Deleted default VPC {operation.vpc_id} in {operation.region}[/green]")
        else:
            self.console.print(
                f"[red]✗ Default VPC {operation.vpc_id} in {operation.region} was not deleted "
                f"({operation.status.value}). Re-run the command to retry.[/red]"
            )

    def display_failures(self, operation: DeletionOperation) -> None:
        """Display every failed resource with its last error."""
        table = Table(title="Failed Resources", show_header=True, header_style="bold red")
        table.add_column("Type", style="cyan")
        table.add_column("Resource")
        table.add_column("Attempts", justify="right")
        table.add_column("Error")

        for record in operation.failed_records:
            table.add_row(
                record.resource_type,
                record.resource_id,
                str(record.attempts),
                f"[red]{record.error_code}[/red]: {record.error_message}",
            )

        self.console.print(table)
