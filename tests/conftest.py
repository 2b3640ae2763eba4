"""Shared fixtures: a fully mocked ShellCommands and a TierContext around it."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from tierstack.cli.deployment.shell_commands.types import CommandResult, PodCounts
from tierstack.cli.deployment.tiers import TierContext
from tierstack.config.settings import OrchestratorSettings
from tierstack.infra.constants import DeploymentConstants, DeploymentPaths

OK = CommandResult(success=True)


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("TIERSTACK_PROJECT_ROOT", "AKS_CLUSTER_NAME", "AKS_RESOURCE_GROUP"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def commands() -> MagicMock:
    """ShellCommands double where every mutation succeeds and the cluster is empty."""
    commands = MagicMock()
    commands.which.side_effect = lambda binary: f"/usr/local/bin/{binary}"

    helm = commands.helm
    helm.repo_add.return_value = OK
    helm.repo_update.return_value = OK
    helm.upgrade_install.return_value = OK
    helm.upgrade.return_value = OK
    helm.uninstall.return_value = OK
    helm.release_exists.return_value = False

    kubectl = commands.kubectl
    kubectl.cluster_reachable.return_value = True
    kubectl.get_current_context.return_value = "test-context"
    kubectl.count_nodes.return_value = 0
    kubectl.namespace_exists.return_value = False
    kubectl.get_pods.return_value = []
    kubectl.count_pods.return_value = PodCounts()
    kubectl.get_pod_logs.return_value = ""
    kubectl.crd_exists.return_value = False
    kubectl.list_resource_names.return_value = []
    kubectl.get_jsonpath.return_value = None
    kubectl.apply_manifest.return_value = OK
    kubectl.delete_if_exists.return_value = OK
    kubectl.delete_manifest.return_value = OK
    kubectl.delete_all.return_value = OK
    kubectl.delete_by_label.return_value = OK
    kubectl.delete_namespace.return_value = OK
    kubectl.wait_for_condition.return_value = OK
    kubectl.dry_run_privileged_pod.return_value = OK

    commands.terraform.output_raw.return_value = None
    commands.terraform.destroy.return_value = OK
    commands.az.find_aks_cluster.return_value = None
    commands.az.enable_node_autoprovisioning.return_value = OK
    return commands


@pytest.fixture
def settings(tmp_path: Path) -> OrchestratorSettings:
    """Default settings with every path anchored in a temporary project root."""
    defaults = OrchestratorSettings()
    return defaults.model_copy(update={"paths": defaults.paths.resolve(tmp_path)})


@pytest.fixture
def tier_context(
    commands: MagicMock, settings: OrchestratorSettings, clock: FakeClock
) -> TierContext:
    return TierContext(
        commands=commands,
        console=MagicMock(),
        settings=settings,
        paths=DeploymentPaths(settings.paths),
        constants=DeploymentConstants(),
        sleep=clock.sleep,
        clock=clock,
    )
