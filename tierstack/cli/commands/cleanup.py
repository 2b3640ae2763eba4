"""``tierstack cleanup``: staged, re-runnable teardown."""

from typing import Annotated

import typer

from tierstack.cli.deployment.tier_deployer import (
    CleanupOrchestrator,
    CleanupSelection,
    PendingDestroy,
)
from tierstack.cli.shared.console import console, with_error_handling

from .shared import ConfigOption, VerboseOption, prepare


def _ask_destroy_token(pending: PendingDestroy) -> str:
    return console.prompt_token(
        "Destroy infrastructure",
        pending.expected_token,
        details=(
            "This will run [bold]terraform destroy[/bold] in "
            f"{pending.terraform_dir}\nand delete the AKS cluster and all Azure resources."
        ),
    )


@with_error_handling
def cleanup_command(
    reset_demo: Annotated[
        bool,
        typer.Option(
            "--reset-demo",
            help="Redeploy the vulnerable demo app after cleaning up",
        ),
    ] = False,
    full: Annotated[
        bool,
        typer.Option(
            "--full",
            help="Also uninstall every tier (Tier 4 down to Tier 1)",
        ),
    ] = False,
    destroy: Annotated[
        bool,
        typer.Option(
            "--destroy",
            help="Also destroy the Terraform infrastructure (asks for confirmation)",
        ),
    ] = False,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Remove demo workloads, policies and RBAC leftovers.

    Safe to run repeatedly. Flags add stages and can be combined.

    Examples:
        tierstack cleanup
        tierstack cleanup --reset-demo
        tierstack cleanup --full
        tierstack cleanup --full --destroy
    """
    ctx = prepare(config, verbose)
    ctx.console.print_header("Cleanup")

    selection = CleanupSelection(full=full, destroy=destroy, reset_demo=reset_demo)
    report = CleanupOrchestrator(ctx.tier_context()).run(
        selection, confirm=_ask_destroy_token
    )
    if report.exit_code:
        raise typer.Exit(report.exit_code)
    ctx.console.ok("Cleanup complete")
