"""Shell command abstractions for tiered Helm deployment operations.

This package provides a clean, well-documented interface for the external
CLIs the orchestrator drives. It is organized into specialized modules for
each tool:

- helm: Helm repository and release management
- kubectl: Kubernetes resource queries and deletion
- terraform: Infrastructure outputs and teardown
- az: Managed cluster (AKS) operations

Design Principles:
- Single Responsibility: Each module focuses on one tool
- Consistent Return Types: Functions return typed results, never raise on
  a failed command
- Separation of Concerns: Commands are decoupled from workflow logic

Usage:
    from tierstack.cli.deployment.shell_commands import ShellCommands

    commands = ShellCommands(project_root=Path("."))
    if commands.helm.release_exists("falco", "falco"):
        print("Falco already installed")
"""

from pathlib import Path

from tierstack.infra.constants import DEFAULT_CONSTANTS, DeploymentConstants
from tierstack.infra.k8s import KubectlController
from tierstack.infra.k8s.controller import KubernetesController

from .az import AzCommands
from .helm import HelmCommands
from .kubectl import KubectlCommands
from .runner import CommandRunner
from .terraform import TerraformCommands
from .types import AKSCluster, CommandResult, PodCounts, PodInfo


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        helm: Helm-related commands
        kubectl: Kubernetes kubectl commands
        terraform: Terraform commands
        az: Azure CLI commands

    Example:
        >>> commands = ShellCommands(Path("."))
        >>> if commands.kubectl.cluster_reachable():
        ...     commands.helm.upgrade_install("kyverno", "kyverno/kyverno", "kyverno")
    """

    def __init__(
        self,
        project_root: Path,
        controller: KubernetesController | None = None,
        constants: DeploymentConstants = DEFAULT_CONSTANTS,
    ) -> None:
        """Initialize the shell commands executor.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
            controller: Optional Kubernetes controller override
            constants: Source of the per-tool process timeouts
        """
        self._runner = CommandRunner(Path(project_root))

        # Initialize specialized command modules
        self.helm = HelmCommands(self._runner, constants)
        self.kubectl = KubectlCommands(
            controller or KubectlController(timeout=constants.KUBECTL_TIMEOUT_SECONDS)
        )
        self.terraform = TerraformCommands(self._runner, constants)
        self.az = AzCommands(self._runner, constants)

    def which(self, binary: str) -> str | None:
        """Resolve an executable on PATH. See CommandRunner.which."""
        return self._runner.which(binary)


__all__ = [
    "ShellCommands",
    "CommandResult",
    "PodInfo",
    "PodCounts",
    "AKSCluster",
    # Specialized command classes for direct usage
    "HelmCommands",
    "KubectlCommands",
    "TerraformCommands",
    "AzCommands",
    "CommandRunner",
]
