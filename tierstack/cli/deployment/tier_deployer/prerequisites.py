"""Pre-flight gate: required binaries on PATH and a reachable cluster."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from .errors import DeploymentError

if TYPE_CHECKING:
    from ..shell_commands import ShellCommands


@dataclass
class PrerequisiteReport:
    """What the pre-flight check found."""

    missing_binaries: list[str] = field(default_factory=list)
    cluster_checked: bool = False
    cluster_reachable: bool = False
    context: str = ""

    @property
    def ok(self) -> bool:
        if self.missing_binaries:
            return False
        return not self.cluster_checked or self.cluster_reachable

    def problems(self) -> list[str]:
        lines = [f"'{binary}' not found on PATH" for binary in self.missing_binaries]
        if self.cluster_checked and not self.cluster_reachable:
            where = f" (context: {self.context})" if self.context else ""
            lines.append(f"Kubernetes cluster is not reachable{where}")
        return lines


class PrerequisiteChecker:
    """Checks executables and cluster connectivity before any tier runs.

    This is a hard gate and is never retried. Binaries are checked first; the
    cluster probe is skipped when kubectl itself is missing.
    """

    def __init__(self, commands: ShellCommands, request_timeout: str = "10s") -> None:
        self.commands = commands
        self.request_timeout = request_timeout

    def check(
        self,
        required_binaries: Sequence[str],
        *,
        require_cluster: bool = True,
    ) -> PrerequisiteReport:
        needed = list(dict.fromkeys(required_binaries))
        if require_cluster and "kubectl" not in needed:
            needed.append("kubectl")

        report = PrerequisiteReport(
            missing_binaries=[b for b in needed if self.commands.which(b) is None]
        )
        if not require_cluster or "kubectl" in report.missing_binaries:
            return report

        report.cluster_checked = True
        report.context = self.commands.kubectl.get_current_context()
        report.cluster_reachable = self.commands.kubectl.cluster_reachable(
            request_timeout=self.request_timeout
        )
        logger.debug(
            f"Prerequisites: missing={report.missing_binaries} "
            f"context={report.context!r} reachable={report.cluster_reachable}"
        )
        return report

    def ensure(
        self,
        required_binaries: Sequence[str],
        *,
        require_cluster: bool = True,
    ) -> PrerequisiteReport:
        """Run check() and raise if anything is missing.

        Raises:
            DeploymentError: Listing every missing binary and an unreachable
                cluster
        """
        report = self.check(required_binaries, require_cluster=require_cluster)
        if not report.ok:
            raise DeploymentError(
                "Prerequisites not met",
                details="\n".join(report.problems())
                + "\n\nInstall the missing tools and check `kubectl cluster-info`.",
            )
        return report
