"""Helm command abstractions.

This module provides commands for Helm repository and release management,
including installation, upgrades, uninstallation, and status queries.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from tierstack.infra.constants import DEFAULT_CONSTANTS, DeploymentConstants
from tierstack.infra.k8s.utils import PROCESS_TIMEOUT_GRACE, duration_seconds

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


def _release_not_found(result: CommandResult) -> bool:
    return "not found" in result.stderr.lower()


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Repository management (add, update)
    - Release management (install/upgrade, upgrade, uninstall)
    - Status queries (release existence)
    """

    def __init__(
        self,
        runner: CommandRunner,
        constants: DeploymentConstants = DEFAULT_CONSTANTS,
    ) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
            constants: Source of the process timeout for repository and
                      status calls
        """
        self._runner = runner
        self._query_timeout = constants.HELM_QUERY_TIMEOUT_SECONDS

    # =========================================================================
    # Repositories
    # =========================================================================

    def repo_add(self, name: str, url: str) -> CommandResult:
        """Add a chart repository; an already-registered repo is success."""
        result = self._runner.run(
            ["helm", "repo", "add", name, url], timeout=self._query_timeout
        )
        if not result.success and "already exists" in result.stderr:
            return CommandResult(success=True, stdout=result.stdout, stderr=result.stderr)
        return result

    def repo_update(self) -> CommandResult:
        """Refresh the local chart index of every repository."""
        return self._runner.run(["helm", "repo", "update"], timeout=self._query_timeout)

    # =========================================================================
    # Release Management
    # =========================================================================

    def upgrade_install(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        value_files: list[Path] | None = None,
        set_values: Mapping[str, str] | None = None,
        timeout: str = "5m",
        wait: bool = True,
        create_namespace: bool = True,
    ) -> CommandResult:
        """Deploy or upgrade a Helm release.

        Uses `helm upgrade --install` to idempotently deploy a chart.
        If the release doesn't exist, it will be installed. If it exists,
        it will be upgraded.

        Args:
            release_name: Name for the Helm release (e.g., "falco")
            chart: Chart reference in repo/chart form (e.g., "falcosecurity/falco")
            namespace: Kubernetes namespace for deployment
            value_files: Optional list of values.yaml files
            set_values: Optional --set overrides
            timeout: Maximum time to wait for deployment
            wait: Whether to wait for resources to be ready
            create_namespace: Whether to create namespace if it doesn't exist

        Returns:
            CommandResult with deployment status

        Example:
            >>> helm.upgrade_install(
            ...     "kyverno",
            ...     "kyverno/kyverno",
            ...     "kyverno",
            ...     value_files=[Path("./tools/kyverno/values.yaml")],
            ... )
        """
        cmd = [
            "helm",
            "upgrade",
            "--install",
            release_name,
            chart,
            "--namespace",
            namespace,
        ]

        if create_namespace:
            cmd.append("--create-namespace")
        if wait:
            cmd.append("--wait")
        cmd.extend(["--timeout", timeout])

        for vf in value_files or []:
            cmd.extend(["-f", str(vf)])
        for key, value in (set_values or {}).items():
            cmd.extend(["--set", f"{key}={value}"])

        return self._runner.run(
            cmd, timeout=duration_seconds(timeout) + PROCESS_TIMEOUT_GRACE
        )

    def upgrade(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        value_files: list[Path] | None = None,
        set_values: Mapping[str, str] | None = None,
        timeout: str = "3m",
    ) -> CommandResult:
        """Upgrade an existing release in place (never installs)."""
        cmd = ["helm", "upgrade", release_name, chart, "-n", namespace]
        for vf in value_files or []:
            cmd.extend(["-f", str(vf)])
        for key, value in (set_values or {}).items():
            cmd.extend(["--set", f"{key}={value}"])
        cmd.extend(["--wait", "--timeout", timeout])
        return self._runner.run(
            cmd, timeout=duration_seconds(timeout) + PROCESS_TIMEOUT_GRACE
        )

    def uninstall(
        self,
        release_name: str,
        namespace: str,
        *,
        wait: bool = True,
        timeout: str = "5m",
    ) -> CommandResult:
        """Uninstall a Helm release.

        A release that does not exist is reported as success so cleanup can
        run any number of times.

        Args:
            release_name: Name of the release to uninstall
            namespace: Kubernetes namespace
            wait: Whether to wait for resources to be deleted
            timeout: Maximum time to wait for deletion

        Returns:
            CommandResult with uninstall status
        """
        cmd = ["helm", "uninstall", release_name, "-n", namespace]
        if wait:
            cmd.extend(["--wait", "--timeout", timeout])
        result = self._runner.run(
            cmd, timeout=duration_seconds(timeout) + PROCESS_TIMEOUT_GRACE
        )
        if not result.success and _release_not_found(result):
            return CommandResult(success=True, stdout=result.stdout, stderr=result.stderr)
        return result

    # =========================================================================
    # Status Queries
    # =========================================================================

    def release_exists(self, release_name: str, namespace: str) -> bool:
        """Check whether a release is installed (`helm status` succeeds)."""
        result = self._runner.run(
            ["helm", "status", release_name, "-n", namespace], timeout=self._query_timeout
        )
        return result.success
