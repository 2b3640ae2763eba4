"""Read-only cluster validation for ``quick-validate``.

Walks every tier's health checks, the demo workload namespaces, and one
admission-control probe: a server-side dry-run create of a privileged pod,
which the policy engine should reject. Nothing is written to the cluster.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.panel import Panel

from ..tiers import FindingStatus, Tier, TierContext, ValidationFinding, build_tiers
from .prerequisites import PrerequisiteChecker

if TYPE_CHECKING:
    from tierstack.cli.shared.console import CLIConsole

_ICONS = {
    FindingStatus.OK: "[green]✓[/green]",
    FindingStatus.WARN: "[yellow]⚠[/yellow]",
    FindingStatus.FAIL: "[red]✗[/red]",
}


@dataclass
class ValidationSection:
    title: str
    findings: list[ValidationFinding] = field(default_factory=list)


@dataclass
class ValidationReport:
    """All findings of one validation run, grouped by section."""

    sections: list[ValidationSection] = field(default_factory=list)

    @property
    def findings(self) -> list[ValidationFinding]:
        return [f for section in self.sections for f in section.findings]

    @property
    def issues(self) -> int:
        return sum(1 for f in self.findings if f.is_issue)

    @property
    def exit_code(self) -> int:
        return 1 if self.issues else 0


class QuickValidator:
    """Validates installed tools without mutating the cluster."""

    def __init__(
        self,
        context: TierContext,
        checker: PrerequisiteChecker | None = None,
        tier_factory: Callable[[TierContext], list[Tier]] = build_tiers,
    ) -> None:
        self.context = context
        self.commands = context.commands
        self.console: CLIConsole = context.console
        self.settings = context.settings
        self.checker = checker or PrerequisiteChecker(
            context.commands, context.settings.cluster.request_timeout
        )
        self._tier_factory = tier_factory

    def run(self) -> ValidationReport:
        """Run every check and print the results.

        Raises:
            DeploymentError: If kubectl is missing or the cluster is unreachable
        """
        prereqs = self.checker.ensure(self.context.constants.VALIDATE_BINARIES)
        self.console.ok(f"Connected to cluster: {prereqs.context or 'unknown context'}")

        report = ValidationReport()
        for tier in self._tier_factory(self.context):
            self._add(report, ValidationSection(tier.label, tier.validate()))
        self._add(report, ValidationSection("Demo Workloads", self.check_demo_namespaces()))
        self._add(report, ValidationSection("Admission Control", [self.probe_admission()]))

        self.display_summary(report)
        return report

    def _add(self, report: ValidationReport, section: ValidationSection) -> None:
        report.sections.append(section)
        self.console.print_subheader(section.title)
        for finding in section.findings:
            detail = f": {finding.detail}" if finding.detail else ""
            self.console.print(f"  {_ICONS[finding.status]} {finding.component}{detail}")

    # =========================================================================
    # Checks
    # =========================================================================

    def check_demo_namespaces(self) -> list[ValidationFinding]:
        kubectl = self.commands.kubectl
        findings = []
        for namespace in self.settings.demo.namespaces:
            if kubectl.namespace_exists(namespace):
                pods = len(kubectl.get_pods(namespace))
                findings.append(
                    ValidationFinding(namespace, FindingStatus.OK, f"deployed ({pods} pods)")
                )
            else:
                findings.append(ValidationFinding(namespace, FindingStatus.WARN, "not deployed"))
        return findings

    def probe_admission(self) -> ValidationFinding:
        """Dry-run a privileged pod and classify the policy engine's answer."""
        probe = self.settings.probe
        component = "Privileged pod probe"

        engine = self.commands.kubectl.count_pods(probe.policy_namespace)
        if not engine.running:
            return ValidationFinding(
                component, FindingStatus.WARN, "Kyverno not running; probe skipped"
            )

        result = self.commands.kubectl.dry_run_privileged_pod(probe.pod_name, probe.image)
        response = result.output.lower()
        if any(marker in response for marker in probe.blocked_markers):
            return ValidationFinding(component, FindingStatus.OK, "blocked by policy")
        return ValidationFinding(
            component,
            FindingStatus.WARN,
            "not blocked (policies may not be applied yet)",
        )

    # =========================================================================
    # Summary
    # =========================================================================

    def display_summary(self, report: ValidationReport) -> None:
        if report.issues:
            self.console.print(
                Panel(
                    f"[bold yellow]{report.issues} issue(s) found.[/bold yellow] "
                    "Address them before running demos.",
                    border_style="yellow",
                )
            )
            return

        self.console.print(
            Panel(
                "[bold green]All checks passed[/bold green]\n\n"
                "Suggested next steps:\n"
                "  1. Watch Falco logs:     [cyan]kubectl logs -n falco -l app.kubernetes.io/name=falco -f[/cyan]\n"
                "  2. Run compliance scan:  [cyan]kubescape scan framework cis-v1.12.0[/cyan]\n"
                "  3. Reset demo state:     [cyan]tierstack cleanup --reset-demo[/cyan]",
                border_style="green",
            )
        )
