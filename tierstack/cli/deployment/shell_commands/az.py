"""Azure CLI command abstractions for managed cluster operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tierstack.infra.constants import DEFAULT_CONSTANTS, DeploymentConstants

from .types import AKSCluster, CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class AzCommands:
    """Azure CLI shell commands.

    Provides operations for:
    - Resolving the managed cluster behind a kubeconfig context
    - Enabling node autoprovisioning (Karpenter)
    """

    def __init__(
        self,
        runner: CommandRunner,
        constants: DeploymentConstants = DEFAULT_CONSTANTS,
    ) -> None:
        """Initialize az commands.

        Args:
            runner: Command runner for executing shell commands
            constants: Source of the query and update process timeouts
        """
        self._runner = runner
        self._query_timeout = constants.AZ_QUERY_TIMEOUT_SECONDS
        self._update_timeout = constants.AZ_UPDATE_TIMEOUT_SECONDS

    def _query(self, query: str) -> str:
        result = self._runner.run(
            ["az", "aks", "list", "--query", query, "-o", "tsv"],
            timeout=self._query_timeout,
        )
        return result.stdout.strip() if result.success else ""

    def find_aks_cluster(self, context: str) -> AKSCluster | None:
        """Find the cluster matching a kubeconfig context name.

        Falls back to the first cluster visible to the signed-in account when
        no cluster carries the context's name.

        Args:
            context: Current kubeconfig context

        Returns:
            AKSCluster, or None if the name or resource group can't be resolved
        """
        name = self._query(f"[?name=='{context}'] | [0].name")
        resource_group = self._query(f"[?name=='{context}'] | [0].resourceGroup")
        if not name:
            name = self._query("[?fqdn!=null] | [0].name")
            resource_group = self._query("[?fqdn!=null] | [0].resourceGroup")
        if not name or not resource_group:
            return None
        return AKSCluster(name=name, resource_group=resource_group)

    def enable_node_autoprovisioning(self, cluster: AKSCluster) -> CommandResult:
        """Switch the cluster to Karpenter-managed node provisioning."""
        return self._runner.run(
            [
                "az",
                "aks",
                "update",
                "--resource-group",
                cluster.resource_group,
                "--name",
                cluster.name,
                "--node-provisioning-mode",
                "Auto",
                "--only-show-errors",
            ],
            timeout=self._update_timeout,
        )
