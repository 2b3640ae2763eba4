"""Tests for Tier 2 wiring: dashboards, ServiceMonitors and the secret store."""

from pathlib import Path
from unittest.mock import MagicMock, call

import pytest

from tierstack.cli.deployment.shell_commands.types import PodCounts
from tierstack.cli.deployment.tiers import (
    FindingStatus,
    InstallOutcome,
    InstallStatus,
    ObservabilityTier,
    TierContext,
)
from tierstack.cli.deployment.tiers.tier2_observability import (
    ARGOCD,
    EXTERNAL_SECRETS,
    PROMETHEUS_STACK,
    SERVICE_MONITOR_VALUES,
)

STORE_MANIFEST = """\
apiVersion: external-secrets.io/v1beta1
kind: ClusterSecretStore
metadata:
  name: azure-keyvault
spec:
  provider:
    azurekv:
      vaultUrl: "https://kv-regulated-demo.vault.azure.net"
"""


def _outcomes(*failed: str) -> list[InstallOutcome]:
    return [
        InstallOutcome(
            tool.name,
            InstallStatus.FAILED if tool.name in failed else InstallStatus.INSTALLED,
        )
        for tool in (PROMETHEUS_STACK, ARGOCD, EXTERNAL_SECRETS)
    ]


@pytest.fixture
def tier(tier_context: TierContext) -> ObservabilityTier:
    return ObservabilityTier(tier_context)


@pytest.fixture
def dashboards(tmp_path: Path) -> list[Path]:
    directory = tmp_path / "tools" / "grafana" / "dashboards"
    directory.mkdir(parents=True)
    for name in ("kyverno.yaml", "falco.yaml", "README.md"):
        (directory / name).write_text("kind: ConfigMap\n")
    return [directory / "falco.yaml", directory / "kyverno.yaml"]


@pytest.fixture
def store_manifest(tmp_path: Path) -> Path:
    path = tmp_path / "tools" / "external-secrets" / "manifests" / "cluster-secret-store.yaml"
    path.parent.mkdir(parents=True)
    path.write_text(STORE_MANIFEST)
    return path


class TestPostInstall:
    """Tests for dashboards, ServiceMonitors and the secret store."""

    def test_dashboards_applied_in_name_order(
        self, tier: ObservabilityTier, commands: MagicMock, dashboards: list[Path]
    ) -> None:
        assert tier.apply_grafana_dashboards() == 2
        assert commands.kubectl.apply_manifest.call_args_list == [call(p) for p in dashboards]

    def test_missing_dashboard_directory(self, tier: ObservabilityTier, commands: MagicMock) -> None:
        assert tier.apply_grafana_dashboards() == 0
        commands.kubectl.apply_manifest.assert_not_called()

    def test_service_monitors_enabled_for_installed_tier1_releases(
        self, tier: ObservabilityTier, commands: MagicMock
    ) -> None:
        """Only Tier 1 releases that exist are upgraded with ServiceMonitors."""
        commands.helm.release_exists.side_effect = lambda release, ns: release == "falco"

        tier.post_install(_outcomes("ArgoCD", "External Secrets"))

        commands.helm.upgrade.assert_called_once()
        args, kwargs = commands.helm.upgrade.call_args
        assert args == ("falco", "falcosecurity/falco", "falco")
        assert kwargs["set_values"] == SERVICE_MONITOR_VALUES
        assert kwargs["timeout"] == "3m"

    def test_failed_prometheus_skips_wiring(
        self, tier: ObservabilityTier, commands: MagicMock, dashboards: list[Path]
    ) -> None:
        commands.helm.release_exists.return_value = True

        tier.post_install(_outcomes("Prometheus Stack", "External Secrets"))

        commands.kubectl.apply_manifest.assert_not_called()
        commands.helm.upgrade.assert_not_called()

    def test_secret_store_uses_terraform_key_vault(
        self,
        tier: ObservabilityTier,
        commands: MagicMock,
        store_manifest: Path,
        tmp_path: Path,
    ) -> None:
        """The Key Vault URI comes from terraform output when state exists."""
        state = tmp_path / "infrastructure" / "terraform" / "terraform.tfstate"
        state.parent.mkdir(parents=True)
        state.write_text("{}")
        commands.terraform.output_raw.return_value = "https://kv-prod.vault.azure.net/"

        tier.apply_cluster_secret_store()

        content = commands.kubectl.apply_manifest.call_args.kwargs["content"]
        assert 'vaultUrl: "https://kv-prod.vault.azure.net"' in content
        assert "kv-regulated-demo" not in content
        commands.terraform.output_raw.assert_called_once_with("key_vault_uri", state.parent)

    def test_secret_store_default_without_terraform_state(
        self, tier: ObservabilityTier, commands: MagicMock, store_manifest: Path
    ) -> None:
        tier.post_install(_outcomes("Prometheus Stack"))

        commands.kubectl.apply_manifest.assert_called_once_with(store_manifest)
        commands.terraform.output_raw.assert_not_called()

    def test_secret_store_without_manifest(
        self, tier: ObservabilityTier, commands: MagicMock
    ) -> None:
        tier.apply_cluster_secret_store()

        commands.kubectl.apply_manifest.assert_not_called()


class TestExtraFindings:
    """Tests for observability findings beyond release health."""

    def test_healthy(self, tier: ObservabilityTier, commands: MagicMock) -> None:
        commands.kubectl.count_pods.return_value = PodCounts(total=1, ready=1, running=1)
        commands.kubectl.list_resource_names.return_value = ["falco", "kyverno", "trivy"]
        commands.kubectl.get_jsonpath.return_value = "True"

        findings = {f.component: f for f in tier.extra_findings()}

        assert findings["Grafana"].status is FindingStatus.OK
        assert findings["ServiceMonitors"].detail == "3 registered"
        assert findings["ClusterSecretStore"].status is FindingStatus.OK
        commands.kubectl.list_resource_names.assert_called_once_with(
            "servicemonitors", all_namespaces=True
        )

    def test_secret_store_not_ready(self, tier: ObservabilityTier, commands: MagicMock) -> None:
        commands.kubectl.get_jsonpath.return_value = "False"

        findings = {f.component: f for f in tier.extra_findings()}

        assert findings["ClusterSecretStore"].status is FindingStatus.WARN
        assert findings["ClusterSecretStore"].detail == "status=False"

    def test_nothing_installed_only_warns(self, tier: ObservabilityTier) -> None:
        findings = tier.validate()

        assert not any(f.is_issue for f in findings)
        store = next(f for f in findings if f.component == "ClusterSecretStore")
        assert store.detail == "not found"


class TestCleanup:
    """Tests for removing observability objects and CRDs."""

    def test_removes_wiring_and_left_over_crds(
        self, tier: ObservabilityTier, commands: MagicMock
    ) -> None:
        commands.helm.release_exists.side_effect = lambda release, ns: release == "kyverno"

        tier.cleanup()

        kubectl = commands.kubectl
        kubectl.delete_by_label.assert_called_once_with(
            "configmap", "monitoring", "grafana_dashboard=1"
        )
        deleted = [c.args for c in kubectl.delete_if_exists.call_args_list]
        assert deleted[0] == ("clustersecretstore", "azure-keyvault")
        assert [d[1] for d in deleted[1:]] == list(tier.constants.PROMETHEUS_OPERATOR_CRDS)

        args, kwargs = commands.helm.upgrade.call_args
        assert args[0] == "kyverno"
        assert kwargs["set_values"] is None

    def test_cleanup_on_empty_cluster(self, tier: ObservabilityTier, commands: MagicMock) -> None:
        """Cleanup against a never-installed cluster succeeds quietly."""
        tier.cleanup()

        commands.helm.upgrade.assert_not_called()
        tier.console.warn.assert_not_called()
