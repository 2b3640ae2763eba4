"""Staged cleanup for the ``cleanup`` command.

Stages, in order:

1. Demo workloads: manifests and namespaces (always)
2. Kyverno policies kustomization (always)
3. Leftover cluster-scoped RBAC objects (always)
4. ``--full``: every tier's cleanup, Tier 4 down to Tier 1
5. ``--destroy``: ``terraform destroy`` behind a typed confirmation
6. ``--reset-demo``: redeploy the vulnerable demo app and wait for it

Every deletion treats "not found" as success, so any stage can be re-run
against a partially cleaned or never-installed cluster.

Destroy is split in two calls. ``request_destroy()`` only returns a
PendingDestroy; ``confirm_destroy(pending, token)`` runs Terraform when the
token matches and otherwise returns an aborted outcome. No flag can supply
the token.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger
from rich.table import Table

from ..tiers import Tier, TierContext, build_tiers
from ..tiers.base import last_line
from .prerequisites import PrerequisiteChecker

if TYPE_CHECKING:
    from tierstack.cli.shared.console import CLIConsole


@dataclass(frozen=True)
class CleanupSelection:
    """Which optional stages to run."""

    full: bool = False
    destroy: bool = False
    reset_demo: bool = False


class StepStatus(Enum):
    DONE = "done"
    SKIPPED = "skipped"
    WARNING = "warning"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass(frozen=True)
class CleanupStep:
    name: str
    status: StepStatus
    detail: str = ""


@dataclass(frozen=True)
class PendingDestroy:
    """A destroy request awaiting its confirmation token."""

    terraform_dir: Path
    expected_token: str


class DestroyStatus(Enum):
    DESTROYED = "destroyed"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass(frozen=True)
class DestroyOutcome:
    status: DestroyStatus
    detail: str = ""

    @property
    def executed(self) -> bool:
        """Whether terraform destroy was actually run."""
        return self.status is not DestroyStatus.ABORTED


@dataclass
class CleanupReport:
    """Result of every stage of one cleanup run."""

    steps: list[CleanupStep] = field(default_factory=list)
    destroy: DestroyOutcome | None = None

    def step(self, name: str) -> CleanupStep | None:
        return next((s for s in self.steps if s.name == name), None)

    @property
    def exit_code(self) -> int:
        if self.destroy is not None and self.destroy.status is DestroyStatus.FAILED:
            return 1
        return 0


_STEP_STYLE = {
    StepStatus.DONE: "[green]done[/green]",
    StepStatus.SKIPPED: "[dim]skipped[/dim]",
    StepStatus.WARNING: "[yellow]warning[/yellow]",
    StepStatus.ABORTED: "[yellow]aborted[/yellow]",
    StepStatus.FAILED: "[red]failed[/red]",
}

DEMO_STEP = "Demo workloads"
POLICY_STEP = "Kyverno policies"
RBAC_STEP = "RBAC resources"
TIERS_STEP = "Tier releases"
DESTROY_STEP = "Infrastructure"
RESET_STEP = "Demo reset"


class CleanupOrchestrator:
    """Runs the cleanup stages selected by a CleanupSelection.

    Attributes:
        context: Shared tier collaborators
        checker: Pre-flight gate
    """

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
        self.paths = context.paths
        self.constants = context.constants
        self.checker = checker or PrerequisiteChecker(
            context.commands, context.settings.cluster.request_timeout
        )
        self._tier_factory = tier_factory

    def run(
        self,
        selection: CleanupSelection,
        confirm: Callable[[PendingDestroy], str] | None = None,
    ) -> CleanupReport:
        """Run the selected stages.

        Args:
            selection: Optional stages to include
            confirm: Asked for the destroy token; without it destroy aborts

        Returns:
            CleanupReport with one step per stage

        Raises:
            DeploymentError: If required binaries are missing
        """
        binaries = self.constants.CLEANUP_BINARIES
        if selection.destroy:
            binaries = binaries + self.constants.DESTROY_BINARIES
        # Cluster stages degrade to warnings, so a gone cluster still reaches destroy
        self.checker.ensure(binaries, require_cluster=False)

        report = CleanupReport()
        report.steps.append(self.remove_demo_workloads())
        report.steps.append(self.remove_policies())
        report.steps.append(self.remove_rbac())

        if selection.full:
            report.steps.append(self.uninstall_tiers())
        else:
            self.console.info("Skipping tool removal (use --full to remove)")
            report.steps.append(
                CleanupStep(TIERS_STEP, StepStatus.SKIPPED, "use --full to remove")
            )

        if selection.destroy:
            pending = self.request_destroy()
            token = confirm(pending) if confirm is not None else ""
            report.destroy = self.confirm_destroy(pending, token)
            report.steps.append(_destroy_step(report.destroy))

        if selection.reset_demo:
            report.steps.append(self.reset_demo())

        self.display_summary(report)
        return report

    # =========================================================================
    # Default Stages
    # =========================================================================

    def remove_demo_workloads(self) -> CleanupStep:
        self.console.info("Removing demo workloads...")
        kubectl = self.commands.kubectl
        problems: list[str] = []

        for name in self.settings.demo.namespaces:
            result = kubectl.delete_manifest(self.paths.demo_workload(name))
            if not result.success:
                problems.append(f"{name} manifests: {last_line(result.stderr)}")
        for name in self.settings.demo.namespaces:
            result = kubectl.delete_namespace(
                name, timeout=self.constants.NAMESPACE_DELETE_TIMEOUT
            )
            if not result.success:
                problems.append(f"namespace {name}: {last_line(result.stderr)}")

        return self._finish(DEMO_STEP, problems, "Demo workloads removed")

    def remove_policies(self) -> CleanupStep:
        self.console.info("Removing Kyverno policies...")
        result = self.commands.kubectl.delete_manifest(self.paths.policies, kustomize=True)
        problems = [] if result.success else [last_line(result.stderr)]
        return self._finish(POLICY_STEP, problems, "Kyverno policies removed")

    def remove_rbac(self) -> CleanupStep:
        self.console.info("Removing RBAC resources...")
        problems: list[str] = []
        for obj in self.settings.demo.rbac:
            result = self.commands.kubectl.delete_if_exists(obj.kind, obj.name)
            if not result.success:
                problems.append(f"{obj.kind}/{obj.name}: {last_line(result.stderr)}")
        return self._finish(RBAC_STEP, problems, "RBAC resources removed")

    def _finish(self, name: str, problems: list[str], done_message: str) -> CleanupStep:
        if problems:
            for problem in problems:
                self.console.warn(problem)
            return CleanupStep(name, StepStatus.WARNING, "; ".join(problems))
        self.console.ok(done_message)
        return CleanupStep(name, StepStatus.DONE)

    # =========================================================================
    # --full
    # =========================================================================

    def uninstall_tiers(self) -> CleanupStep:
        """Run every tier's cleanup, highest tier first."""
        tiers = sorted(self._tier_factory(self.context), key=lambda t: t.number, reverse=True)
        for tier in tiers:
            logger.debug(f"Cleaning up {tier.label}")
            tier.cleanup()
        removed = ", ".join(str(t.number) for t in tiers)
        return CleanupStep(TIERS_STEP, StepStatus.DONE, f"tiers {removed}")

    # =========================================================================
    # --destroy
    # =========================================================================

    def request_destroy(self) -> PendingDestroy:
        """First half of the destroy handshake; changes nothing."""
        return PendingDestroy(
            terraform_dir=self.paths.terraform,
            expected_token=self.constants.DESTROY_CONFIRMATION_TOKEN,
        )

    def confirm_destroy(self, pending: PendingDestroy, token: str) -> DestroyOutcome:
        """Second half: destroy only when ``token`` matches exactly."""
        if not isinstance(pending, PendingDestroy):
            raise TypeError("confirm_destroy requires the PendingDestroy from request_destroy()")

        if token != pending.expected_token:
            self.console.info("Aborted infrastructure destruction.")
            return DestroyOutcome(DestroyStatus.ABORTED, "confirmation did not match")

        if not pending.terraform_dir.is_dir():
            self.console.error(f"Terraform directory not found: {pending.terraform_dir}")
            return DestroyOutcome(
                DestroyStatus.FAILED, f"{pending.terraform_dir} not found"
            )

        self.console.warn("Destroying infrastructure...")
        result = self.commands.terraform.destroy(pending.terraform_dir, auto_approve=True)
        if not result.success:
            self.console.error("terraform destroy failed")
            return DestroyOutcome(
                DestroyStatus.FAILED,
                last_line(result.stderr) or f"terraform exited with {result.returncode}",
            )
        self.console.ok("Infrastructure destroyed")
        return DestroyOutcome(DestroyStatus.DESTROYED)

    # =========================================================================
    # --reset-demo
    # =========================================================================

    def reset_demo(self) -> CleanupStep:
        """Redeploy the demo workload and wait for it to become available."""
        demo = self.settings.demo
        kubectl = self.commands.kubectl
        workload_dir = self.paths.demo_workload(demo.reset_workload)

        self.console.info(f"Deploying {demo.reset_workload}...")
        if not workload_dir.is_dir():
            self.console.warn(f"Demo manifests not found: {workload_dir}")
            return CleanupStep(RESET_STEP, StepStatus.WARNING, f"{workload_dir} not found")

        namespace_manifest = workload_dir / "namespace.yaml"
        if namespace_manifest.is_file():
            kubectl.apply_manifest(namespace_manifest)
        result = kubectl.apply_manifest(workload_dir)
        if not result.success:
            self.console.warn(f"Could not apply {workload_dir}: {last_line(result.stderr)}")

        self.console.info(f"Waiting for {demo.reset_workload} (up to {demo.reset_timeout})...")
        ready = kubectl.wait_for_condition(
            f"deployment/{demo.reset_workload}",
            demo.reset_namespace,
            condition="available",
            timeout=demo.reset_timeout,
        )
        if not ready.success:
            self.console.warn(f"{demo.reset_workload} not ready within {demo.reset_timeout}")
            return CleanupStep(
                RESET_STEP, StepStatus.WARNING, f"not ready within {demo.reset_timeout}"
            )

        self.console.ok("Demo reset complete: vulnerable app running, no policies active")
        return CleanupStep(RESET_STEP, StepStatus.DONE, f"{demo.reset_workload} ready")

    # =========================================================================
    # Summary
    # =========================================================================

    def display_summary(self, report: CleanupReport) -> None:
        table = Table(title="Cleanup", title_justify="left")
        table.add_column("Step", style="bold")
        table.add_column("Status")
        table.add_column("Detail")
        for step in report.steps:
            table.add_row(step.name, _STEP_STYLE[step.status], step.detail)
        self.console.print(table)


def _destroy_step(outcome: DestroyOutcome) -> CleanupStep:
    status = {
        DestroyStatus.DESTROYED: StepStatus.DONE,
        DestroyStatus.ABORTED: StepStatus.ABORTED,
        DestroyStatus.FAILED: StepStatus.FAILED,
    }[outcome.status]
    return CleanupStep(DESTROY_STEP, status, outcome.detail)
