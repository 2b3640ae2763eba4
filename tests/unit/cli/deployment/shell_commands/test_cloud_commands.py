"""Tests for Terraform and Azure CLI commands."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from tierstack.cli.deployment.shell_commands.az import AzCommands
from tierstack.cli.deployment.shell_commands.terraform import TerraformCommands
from tierstack.cli.deployment.shell_commands.types import AKSCluster, CommandResult
from tierstack.infra.constants import DeploymentConstants


@pytest.fixture
def mock_runner() -> MagicMock:
    runner = MagicMock()
    runner.run.return_value = CommandResult(success=True)
    return runner


class TestTerraformCommands:
    """Tests for reading outputs and destroying infrastructure."""

    def test_output_raw_returns_value(self, mock_runner: MagicMock, tmp_path: Path) -> None:
        """Output is read from the Terraform root module directory."""
        mock_runner.run.return_value = CommandResult(
            success=True, stdout="https://kv-prod.vault.azure.net/\n"
        )

        value = TerraformCommands(mock_runner).output_raw("key_vault_uri", tmp_path)

        assert value == "https://kv-prod.vault.azure.net/"
        assert mock_runner.run.call_args[0][0] == [
            "terraform", "output", "-raw", "key_vault_uri"
        ]
        assert mock_runner.run.call_args.kwargs["cwd"] == tmp_path

    def test_output_raw_missing_output_is_none(
        self, mock_runner: MagicMock, tmp_path: Path
    ) -> None:
        mock_runner.run.return_value = CommandResult(
            success=False, stderr="Output not found", returncode=1
        )

        assert TerraformCommands(mock_runner).output_raw("key_vault_uri", tmp_path) is None

    def test_destroy_streams_output(self, mock_runner: MagicMock, tmp_path: Path) -> None:
        """Destroy output goes straight to the terminal."""
        TerraformCommands(mock_runner).destroy(tmp_path)

        assert mock_runner.run.call_args[0][0] == ["terraform", "destroy", "-auto-approve"]
        assert mock_runner.run.call_args.kwargs["capture_output"] is False

    def test_calls_are_bounded_by_timeouts(self, mock_runner: MagicMock, tmp_path: Path) -> None:
        """Both output reads and destroy carry a process timeout."""
        constants = DeploymentConstants(
            TERRAFORM_OUTPUT_TIMEOUT_SECONDS=7, TERRAFORM_DESTROY_TIMEOUT_SECONDS=70
        )
        terraform = TerraformCommands(mock_runner, constants)

        terraform.output_raw("key_vault_uri", tmp_path)
        assert mock_runner.run.call_args.kwargs["timeout"] == 7

        terraform.destroy(tmp_path)
        assert mock_runner.run.call_args.kwargs["timeout"] == 70

    def test_timed_out_output_is_none(self, mock_runner: MagicMock, tmp_path: Path) -> None:
        mock_runner.run.return_value = CommandResult(
            success=False, stderr="terraform timed out after 120s", returncode=124
        )

        assert TerraformCommands(mock_runner).output_raw("key_vault_uri", tmp_path) is None


class TestAzCommands:
    """Tests for resolving the managed cluster and enabling autoprovisioning."""

    def test_find_cluster_by_context_name(self, mock_runner: MagicMock) -> None:
        """A cluster named like the kubeconfig context wins."""
        mock_runner.run.side_effect = [
            CommandResult(success=True, stdout="aks-demo\n"),
            CommandResult(success=True, stdout="rg-demo\n"),
        ]

        cluster = AzCommands(mock_runner).find_aks_cluster("aks-demo")

        assert cluster == AKSCluster(name="aks-demo", resource_group="rg-demo")
        assert mock_runner.run.call_count == 2

    def test_find_cluster_falls_back_to_first_cluster(self, mock_runner: MagicMock) -> None:
        """Without a name match the first visible cluster is used."""
        mock_runner.run.side_effect = [
            CommandResult(success=True, stdout=""),
            CommandResult(success=True, stdout=""),
            CommandResult(success=True, stdout="aks-other\n"),
            CommandResult(success=True, stdout="rg-other\n"),
        ]

        cluster = AzCommands(mock_runner).find_aks_cluster("kind-local")

        assert cluster == AKSCluster(name="aks-other", resource_group="rg-other")

    def test_find_cluster_none_when_az_fails(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(
            success=False, stderr="Please run 'az login'", returncode=1
        )

        assert AzCommands(mock_runner).find_aks_cluster("aks-demo") is None

    def test_enable_node_autoprovisioning(self, mock_runner: MagicMock) -> None:
        AzCommands(mock_runner).enable_node_autoprovisioning(
            AKSCluster(name="aks-demo", resource_group="rg-demo")
        )

        cmd = mock_runner.run.call_args[0][0]
        assert cmd[:3] == ["az", "aks", "update"]
        assert cmd[cmd.index("--resource-group") + 1] == "rg-demo"
        assert cmd[cmd.index("--name") + 1] == "aks-demo"
        assert cmd[cmd.index("--node-provisioning-mode") + 1] == "Auto"

    def test_calls_are_bounded_by_timeouts(self, mock_runner: MagicMock) -> None:
        """Queries and the cluster update each carry their own process timeout."""
        constants = DeploymentConstants(AZ_QUERY_TIMEOUT_SECONDS=5, AZ_UPDATE_TIMEOUT_SECONDS=50)
        az = AzCommands(mock_runner, constants)
        mock_runner.run.return_value = CommandResult(success=True, stdout="aks-demo\n")

        az.find_aks_cluster("aks-demo")
        assert all(c.kwargs["timeout"] == 5 for c in mock_runner.run.call_args_list)

        az.enable_node_autoprovisioning(AKSCluster(name="aks-demo", resource_group="rg-demo"))
        assert mock_runner.run.call_args.kwargs["timeout"] == 50

    def test_timed_out_query_resolves_nothing(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(
            success=False, stderr="az timed out after 120s", returncode=124
        )

        assert AzCommands(mock_runner).find_aks_cluster("aks-demo") is None
