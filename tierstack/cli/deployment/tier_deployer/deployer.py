"""Tier install orchestration.

This module provides the TierDeployer class which drives the ``install``
command. It gates on prerequisites, then installs the selected tiers in
ascending order:

1. Print the tier header
2. Run the tier's install (intra-tier tools run concurrently)
3. Render the tier summary immediately

Tier N+1 starts only after tier N's install has returned, so every tool of
tier N has a terminal outcome first. Failures are collected, never raised;
the folded InstallReport alone decides the exit code.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger
from rich.panel import Panel

from ..tiers import InstallOutcome, Tier, TierContext, TierReport, build_tiers
from ..tiers.tier4_aks_managed import AKSManagedTier
from .prerequisites import PrerequisiteChecker

if TYPE_CHECKING:
    from tierstack.cli.shared.console import CLIConsole

TierFactory = Callable[[TierContext, list[int]], list[Tier]]

TROUBLESHOOTING_DOC = "docs/TROUBLESHOOTING.md"


@dataclass
class InstallReport:
    """Every tier report of one install run."""

    tiers: list[TierReport] = field(default_factory=list)

    @property
    def failures(self) -> list[InstallOutcome]:
        return [outcome for report in self.tiers for outcome in report.failures]

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1


class TierDeployer:
    """Installs selected tiers in dependency order.

    Attributes:
        context: Shared tier collaborators
        checker: Pre-flight gate
    """

    def __init__(
        self,
        context: TierContext,
        checker: PrerequisiteChecker | None = None,
        tier_factory: TierFactory = build_tiers,
    ) -> None:
        self.context = context
        self.console: CLIConsole = context.console
        self.checker = checker or PrerequisiteChecker(
            context.commands, context.settings.cluster.request_timeout
        )
        self._tier_factory = tier_factory

    def install(self, tiers: list[int]) -> InstallReport:
        """Install the given tiers and print the final summary.

        Args:
            tiers: Tier numbers, already validated

        Returns:
            InstallReport with every tier's outcomes

        Raises:
            DeploymentError: If prerequisites are not met (before any tier runs)
        """
        constants = self.context.constants
        binaries = constants.INSTALL_BINARIES
        if AKSManagedTier.number in tiers:
            binaries = binaries + constants.AKS_BINARIES
        self.checker.ensure(binaries)

        report = InstallReport()
        for tier in self._tier_factory(self.context, sorted(tiers)):
            self.console.print_header(tier.label)
            logger.debug(f"Starting {tier.label}")
            tier_report = tier.install()
            self.console.print(tier.summary(tier_report))
            report.tiers.append(tier_report)

        self.display_result(report)
        return report

    def display_result(self, report: InstallReport) -> None:
        if report.succeeded:
            self.console.print(
                Panel(
                    "[bold green]All tools installed successfully[/bold green]\n\n"
                    "Next steps:\n"
                    "  Validate install:       [cyan]tierstack quick-validate[/cyan]\n"
                    "  Deploy demo workloads:  [cyan]kubectl apply -f demo-workloads/vulnerable-app/[/cyan]\n"
                    "  Reset demo state:       [cyan]tierstack cleanup --reset-demo[/cyan]",
                    border_style="green",
                )
            )
            return

        failed = "\n".join(
            f"  • {o.tool} [dim]({o.namespace})[/dim]: {o.detail}" for o in report.failures
        )
        self.console.print(
            Panel(
                f"[bold red]INSTALLATION INCOMPLETE[/bold red]\n\nFailed:\n{failed}\n\n"
                + remediation_hints(report.failures),
                border_style="red",
            )
        )


def remediation_hints(failures: list[InstallOutcome]) -> str:
    """Troubleshooting commands for the namespaces that had failures."""
    namespaces = list(dict.fromkeys(o.namespace for o in failures if o.namespace)) or [
        "<namespace>"
    ]
    lines = ["Troubleshooting:"]
    for ns in namespaces:
        lines.append(f"  Check pods:    [cyan]kubectl get pods -n {ns}[/cyan]")
        lines.append(f"  Check logs:    [cyan]kubectl logs -n {ns} <pod-name>[/cyan]")
        lines.append(
            f"  Check events:  [cyan]kubectl get events -n {ns} --sort-by=.lastTimestamp[/cyan]"
        )
    lines.append(f"  See:           {TROUBLESHOOTING_DOC}")
    return "\n".join(lines)
