"""Tier data model and the shared install/validate/cleanup behavior.

A tier is a fixed catalog of Helm-deployed tools. Subclasses declare their
repositories and tool descriptors and override the hooks for anything that
is not a plain chart install (dashboards, manifests, CRD cleanup).

Every operation reports through returned values. A failing tool becomes a
``failed`` InstallOutcome or a ``fail`` ValidationFinding; nothing raises
out of a tier.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

from loguru import logger
from rich.table import Table

from tierstack.infra.k8s.controller import PodInfo

if TYPE_CHECKING:
    from pathlib import Path

    from tierstack.cli.shared.console import CLIConsole
    from tierstack.config.settings import OrchestratorSettings
    from tierstack.infra.constants import DeploymentConstants, DeploymentPaths

    from ..shell_commands import ShellCommands
    from .scheduler import TierScheduler


# =============================================================================
# Data Model
# =============================================================================


@dataclass(frozen=True)
class HelmRepo:
    """A chart repository a tier registers before installing."""

    name: str
    url: str


@dataclass(frozen=True)
class ToolDescriptor:
    """Static definition of one deployable tool.

    Attributes:
        name: Display name (e.g., "Falco Talon")
        release: Helm release name
        namespace: Target namespace, created if absent
        chart: Chart reference in repo/chart form
        values_file: Values document relative to the tools directory
        tier: Owning tier number
        timeout: Helm --timeout for the install
        label_selector: Selects the tool's pods; defaults to the release's
            ``app.kubernetes.io/instance`` label
        depends_on: Name of the tool in the same tier that must install first
        required: Whether an unhealthy tool is a validation failure
        set_values: Extra ``--set`` overrides as (key, value) pairs
        verify_pods: Whether the chart runs pods at all (CRD-only charts don't)
    """

    name: str
    release: str
    namespace: str
    chart: str
    values_file: str | None = None
    tier: int = 1
    timeout: str = "5m"
    label_selector: str | None = None
    depends_on: str | None = None
    required: bool = True
    set_values: tuple[tuple[str, str], ...] = ()
    verify_pods: bool = True

    @property
    def selector(self) -> str:
        return self.label_selector or f"app.kubernetes.io/instance={self.release}"


class InstallStatus(Enum):
    """Terminal (or pending) state of one tool's install attempt."""

    PENDING = "pending"
    INSTALLED = "installed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class InstallOutcome:
    """Result of installing one tool in one run."""

    tool: str
    status: InstallStatus
    detail: str = ""
    attempts: int = 1
    namespace: str = ""

    @property
    def failed(self) -> bool:
        return self.status is InstallStatus.FAILED


@dataclass
class TierReport:
    """All install outcomes of one tier."""

    tier: int
    name: str
    outcomes: list[InstallOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[InstallOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def installed(self) -> list[InstallOutcome]:
        return [o for o in self.outcomes if o.status is InstallStatus.INSTALLED]

    @property
    def succeeded(self) -> bool:
        return not self.failures


class FindingStatus(Enum):
    """Severity of a validation finding. Only FAIL counts as an issue."""

    OK = "ok"
    WARN = "warn"
    FAIL = "fail"


@dataclass(frozen=True)
class ValidationFinding:
    """One read-only health check result."""

    component: str
    status: FindingStatus
    detail: str = ""

    @property
    def is_issue(self) -> bool:
        return self.status is FindingStatus.FAIL


@dataclass
class TierContext:
    """Collaborators shared by every tier."""

    commands: ShellCommands
    console: CLIConsole
    settings: OrchestratorSettings
    paths: DeploymentPaths
    constants: DeploymentConstants
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic


_STATUS_STYLE = {
    InstallStatus.INSTALLED: "[green]installed[/green]",
    InstallStatus.FAILED: "[red]failed[/red]",
    InstallStatus.SKIPPED: "[yellow]skipped[/yellow]",
    InstallStatus.PENDING: "[dim]pending[/dim]",
}


# =============================================================================
# Tier Base
# =============================================================================


class Tier:
    """Base class for a dependency tier.

    Subclasses set ``number``, ``title``, ``repos`` and ``tools`` and may
    override the ``post_install``, ``pre_cleanup``, ``post_cleanup`` and
    ``extra_findings`` hooks.
    """

    number: ClassVar[int]
    title: ClassVar[str]
    repos: ClassVar[tuple[HelmRepo, ...]] = ()
    tools: ClassVar[tuple[ToolDescriptor, ...]] = ()

    def __init__(self, context: TierContext) -> None:
        self.context = context
        self.commands = context.commands
        self.console = context.console
        self.settings = context.settings
        self.paths = context.paths
        self.constants = context.constants
        self._progress_lock = threading.Lock()
        self._started: list[str] = []

    @property
    def label(self) -> str:
        return f"Tier {self.number}: {self.title}"

    # =========================================================================
    # Install
    # =========================================================================

    def install(self) -> TierReport:
        """Install every tool and return their outcomes.

        Returns only after each tool has reached a terminal outcome.
        """
        self._started.clear()
        self.setup_repos()
        outcomes = self.scheduler().run(self.tools, self.install_tool)
        self.post_install(outcomes)
        return TierReport(tier=self.number, name=self.title, outcomes=outcomes)

    def scheduler(self) -> TierScheduler:
        from .scheduler import TierScheduler

        install = self.settings.install
        return TierScheduler(
            max_workers=install.max_workers,
            retries=install.retries,
            backoff_seconds=install.retry_backoff_seconds,
            sleep=self.context.sleep,
        )

    def setup_repos(self) -> None:
        """Register and refresh chart repositories. Failures are warnings."""
        if not self.repos:
            return
        for repo in self.repos:
            result = self.commands.helm.repo_add(repo.name, repo.url)
            if not result.success:
                self.console.warn(f"Could not add Helm repo {repo.name}: {result.stderr.strip()}")
        result = self.commands.helm.repo_update()
        if not result.success:
            self.console.warn("helm repo update failed; using cached chart index")
        else:
            self.console.ok(f"Tier {self.number} Helm repos configured")

    def value_files(self, tool: ToolDescriptor) -> list[Path]:
        if tool.values_file is None:
            return []
        path = self.paths.values_file(tool.values_file)
        if not path.is_file():
            logger.debug(f"No values document for {tool.name} at {path}")
            return []
        return [path]

    def install_tool(self, tool: ToolDescriptor) -> InstallOutcome:
        """Install one chart and wait for its pods."""
        self.console.info(f"{self.progress(tool)} Installing {tool.name}...")
        result = self.commands.helm.upgrade_install(
            tool.release,
            tool.chart,
            tool.namespace,
            value_files=self.value_files(tool),
            set_values=dict(tool.set_values),
            timeout=tool.timeout,
        )
        if not result.success:
            detail = last_line(result.stderr) or f"helm exited with {result.returncode}"
            self.console.error(f"{tool.name}: {detail}")
            return InstallOutcome(
                tool.name, InstallStatus.FAILED, detail, namespace=tool.namespace
            )

        if not tool.verify_pods:
            self.console.ok(f"{tool.name} installed")
            return InstallOutcome(
                tool.name, InstallStatus.INSTALLED, "release deployed", namespace=tool.namespace
            )
        return self.verify_install(tool)

    def progress(self, tool: ToolDescriptor) -> str:
        """Step counter such as "[2/4] (50%)"; a retried tool keeps its step."""
        with self._progress_lock:
            if tool.name not in self._started:
                self._started.append(tool.name)
            step = self._started.index(tool.name) + 1
        total = max(len(self.tools), step)
        return f"[{step}/{total}] ({step * 100 // total}%)"

    def verify_install(self, tool: ToolDescriptor) -> InstallOutcome:
        """Poll the tool's pods until all are ready, one crashes, or time runs out."""
        install = self.settings.install
        deadline = self.context.clock() + install.verify_timeout_seconds

        while True:
            pods = self.commands.kubectl.get_pods(tool.namespace, tool.selector)
            crashed = [p for p in pods if p.is_crashed]
            if crashed:
                self._report_crashed(tool, crashed)
                detail = ", ".join(f"{p.name} {p.status}" for p in crashed)
                return InstallOutcome(
                    tool.name, InstallStatus.FAILED, detail, namespace=tool.namespace
                )

            ready = sum(1 for p in pods if p.is_settled)
            if pods and ready == len(pods):
                self.console.ok(f"{tool.name} installed ({ready}/{len(pods)} pods ready)")
                return InstallOutcome(
                    tool.name,
                    InstallStatus.INSTALLED,
                    f"{ready}/{len(pods)} pods ready",
                    namespace=tool.namespace,
                )

            if self.context.clock() >= deadline:
                detail = (
                    f"{ready}/{len(pods)} pods ready after "
                    f"{install.verify_timeout_seconds:g}s"
                )
                self.console.error(f"{tool.name}: {detail}")
                return InstallOutcome(
                    tool.name, InstallStatus.FAILED, detail, namespace=tool.namespace
                )
            self.context.sleep(install.verify_poll_seconds)

    def _report_crashed(self, tool: ToolDescriptor, pods: Sequence[PodInfo]) -> None:
        self.console.error(f"{tool.name} has pods in error state")
        for pod in pods:
            logs = self.commands.kubectl.get_pod_logs(
                pod.name, tool.namespace, tail=self.constants.LOG_TAIL_LINES
            )
            self.console.print(f"  [red]Pod: {pod.name} ({pod.status})[/red]")
            for line in logs.splitlines():
                self.console.print(f"    [dim]{line}[/dim]")

    def post_install(self, outcomes: list[InstallOutcome]) -> None:
        """Tier-specific steps after every tool has an outcome."""

    # =========================================================================
    # Validate
    # =========================================================================

    def validate(self) -> list[ValidationFinding]:
        """Read-only health check of every tool in the tier."""
        findings = [self.check_tool(tool) for tool in self.tools]
        findings.extend(self.extra_findings())
        return findings

    def check_tool(self, tool: ToolDescriptor) -> ValidationFinding:
        unhealthy = FindingStatus.FAIL if tool.required else FindingStatus.WARN

        if not tool.verify_pods:
            if self.commands.helm.release_exists(tool.release, tool.namespace):
                return ValidationFinding(tool.name, FindingStatus.OK, "release deployed")
            return ValidationFinding(tool.name, unhealthy, "not deployed")

        counts = self.commands.kubectl.count_pods(tool.namespace, tool.selector)
        if counts.total == 0:
            return ValidationFinding(tool.name, unhealthy, "not running")
        if counts.not_ready == 0:
            return ValidationFinding(
                tool.name, FindingStatus.OK, f"{counts.ready}/{counts.total} pods ready"
            )
        return ValidationFinding(
            tool.name, unhealthy, f"{counts.ready}/{counts.total} pods ready"
        )

    def extra_findings(self) -> list[ValidationFinding]:
        """Tier-specific checks beyond per-tool pod health."""
        return []

    # =========================================================================
    # Cleanup
    # =========================================================================

    def cleanup(self) -> None:
        """Uninstall releases in reverse order and delete their namespaces.

        Safe to run against a partially cleaned or never-installed cluster.
        """
        self.console.info(f"Removing {self.label}...")
        self.pre_cleanup()

        for tool in reversed(self.tools):
            result = self.commands.helm.uninstall(
                tool.release, tool.namespace, timeout=self.constants.HELM_TIMEOUT
            )
            if not result.success:
                self.console.warn(f"Could not uninstall {tool.release}: {last_line(result.stderr)}")

        for namespace in self.namespaces_for_cleanup():
            result = self.commands.kubectl.delete_namespace(
                namespace, timeout=self.constants.NAMESPACE_DELETE_TIMEOUT
            )
            if not result.success:
                self.console.warn(f"Could not delete namespace {namespace}: {last_line(result.stderr)}")

        self.post_cleanup()
        self.console.ok(f"{self.label} removed")

    def namespaces_for_cleanup(self) -> list[str]:
        """Tool namespaces in reverse declared order, without duplicates."""
        return list(dict.fromkeys(tool.namespace for tool in reversed(self.tools)))

    def pre_cleanup(self) -> None:
        """Tier-specific steps before releases are uninstalled."""

    def post_cleanup(self) -> None:
        """Tier-specific steps after namespaces are deleted."""

    # =========================================================================
    # Summary
    # =========================================================================

    def summary(self, report: TierReport) -> Table:
        """Render a tier report as a table."""
        table = Table(title=self.label, title_justify="left", show_lines=False)
        table.add_column("Tool", style="bold")
        table.add_column("Namespace", style="dim")
        table.add_column("Status")
        table.add_column("Detail")
        for outcome in report.outcomes:
            table.add_row(
                outcome.tool,
                outcome.namespace,
                _STATUS_STYLE[outcome.status],
                outcome.detail,
            )
        return table


def last_line(text: str) -> str:
    """Last non-blank line of command output, usually the error message."""
    lines = [line.strip() for line in text.strip().splitlines() if line.strip()]
    return lines[-1] if lines else ""
