"""Main CLI entry point using Typer."""

import logging
import sys
from typing import Optional

import typer
from rich.console import Console

from ..aws.client import create_boto_client
from ..deletion.audit import AuditStorage
from ..deletion.cleaner import DefaultVpcCleaner
from ..deletion.reporter import DeletionReporter
from ..exceptions import DefaultVpcDeletionError
from ..utils.logging import setup_logging
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="defaultvpc",
    help="Delete a region's default VPC and everything that depends on it",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None


@app.callback()
def main(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to config file (default: ~/.defaultvpc/config.yaml or $DEFAULTVPC_CONFIG)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Delete a region's default VPC and everything that depends on it."""
    global config

    # Disable colors if requested
    if no_color:
        console.no_color = True

    # Load configuration
    try:
        config = Config.load(config_path)
    except DefaultVpcDeletionError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(code=2)

    # Override with CLI options
    if profile:
        config.aws_profile = profile

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"aws-default-vpc-deletion version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


def _get_config() -> Config:
    return config if config is not None else Config()


@app.command()
def plan(
    region: str = typer.Option(..., "--region", "-r", help="AWS region whose default VPC to inspect"),
):
    """Show what a delete run would remove, without changing anything."""
    cfg = _get_config()

    try:
        client = create_boto_client(service_name="ec2", region_name=region, profile_name=cfg.aws_profile)
        cleaner = DefaultVpcCleaner(
            client,
            region,
            retry_policy=cfg.retry_policy(),
            max_workers=cfg.max_workers,
            continue_on_failure=cfg.continue_on_failure,
            aws_profile=cfg.aws_profile,
        )
        operation = cleaner.preview()
        DeletionReporter(console=console).display_plan(operation, cleaner.last_plan)

    except DefaultVpcDeletionError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        logger.error(f"Planning failed in {region}: {e}")
        raise typer.Exit(code=2)


@app.command()
def delete(
    region: str = typer.Option(..., "--region", "-r", help="AWS region whose default VPC to delete"),
    confirm: bool = typer.Option(False, "--confirm", help="Confirm deletion (required)"),
    max_attempts: Optional[int] = typer.Option(None, "--max-attempts", help="Attempts per API call"),
    max_workers: Optional[int] = typer.Option(None, "--max-workers", help="Concurrent deletes per batch"),
    fail_fast: bool = typer.Option(
        False, "--fail-fast", help="Stop after the first batch with a failure instead of finishing the others"
    ),
    audit_dir: Optional[str] = typer.Option(None, "--audit-dir", help="Write a YAML audit log to this directory"),
):
    """Delete the default VPC of a region and all of its dependents.

    Safe to re-run: anything already gone is counted as deleted.
    """
    if not confirm:
        console.print("[red]✗ Deletion requires --confirm flag[/red]")
        console.print(f"[yellow]Run 'defaultvpc plan --region {region}' to see what would be deleted[/yellow]")
        raise typer.Exit(code=1)

    cfg = _get_config()

    try:
        if max_attempts is not None:
            cfg.max_attempts = max_attempts
        if max_workers is not None:
            cfg.max_workers = max_workers
        if fail_fast:
            cfg.continue_on_failure = False
        if audit_dir:
            cfg.audit_dir = audit_dir
        cfg.validate()

        client = create_boto_client(service_name="ec2", region_name=region, profile_name=cfg.aws_profile)
        cleaner = DefaultVpcCleaner(
            client,
            region,
            retry_policy=cfg.retry_policy(),
            max_workers=cfg.max_workers,
            continue_on_failure=cfg.continue_on_failure,
            audit_storage=AuditStorage(cfg.audit_dir) if cfg.audit_dir else None,
            aws_profile=cfg.aws_profile,
        )
        operation = cleaner.execute(confirmed=True)

    except DefaultVpcDeletionError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        logger.error(f"Deletion failed in {region}: {e}")
        raise typer.Exit(code=2)

    DeletionReporter(console=console).display_result(operation)

    if not operation.succeeded:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
