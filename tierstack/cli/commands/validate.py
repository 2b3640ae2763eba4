"""``tierstack quick-validate``: read-only health report."""

import typer

from tierstack.cli.deployment.tier_deployer import QuickValidator
from tierstack.cli.shared.console import with_error_handling

from .shared import ConfigOption, VerboseOption, prepare


@with_error_handling
def validate_command(
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Check every tier, the demo workloads and admission control.

    Makes no changes to the cluster; the privileged pod probe uses a
    server-side dry run. Exits non-zero when any required tool is unhealthy.

    Examples:
        tierstack quick-validate
    """
    ctx = prepare(config, verbose)
    ctx.console.print_header("Quick Validation")
    report = QuickValidator(ctx.tier_context()).run()
    if report.exit_code:
        raise typer.Exit(report.exit_code)
