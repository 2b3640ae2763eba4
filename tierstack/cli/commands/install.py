"""``tierstack install``: install tiers in dependency order."""

from typing import Annotated

import typer

from tierstack.cli.deployment.tier_deployer import TierDeployer
from tierstack.cli.deployment.tiers import parse_tier_selector
from tierstack.cli.shared.console import with_error_handling

from .shared import ConfigOption, VerboseOption, prepare


def _check_tier(value: str) -> str:
    try:
        parse_tier_selector(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    return value


@with_error_handling
def install_command(
    tier: Annotated[
        str,
        typer.Option(
            "--tier",
            "-t",
            help="Tiers to install: 'all' or a comma-separated list such as 2,3",
            callback=_check_tier,
        ),
    ] = "all",
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Install the tool catalog tier by tier.

    Tiers run in ascending order; tools inside a tier install concurrently
    where they don't depend on each other. A failed tool never stops the
    run; the exit code is non-zero if any tool failed.

    Examples:
        tierstack install
        tierstack install --tier=1
        tierstack install --tier=2,3
    """
    ctx = prepare(config, verbose)
    tiers = parse_tier_selector(tier)

    ctx.console.print_header(f"Installing tiers: {', '.join(map(str, tiers))}")
    report = TierDeployer(ctx.tier_context()).install(tiers)
    if report.exit_code:
        raise typer.Exit(report.exit_code)
