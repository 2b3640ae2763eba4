"""Deployment constants and configuration.

This module centralizes all magic strings, paths, and configuration values
used throughout the install, validate and cleanup workflows.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tierstack.config.settings import PathSettings


@dataclass(frozen=True)
class DeploymentConstants:
    """Constants for tiered Helm deployment.

    All attributes are class-level and immutable.
    """

    # Executables
    INSTALL_BINARIES: tuple[str, ...] = ("helm", "kubectl")
    AKS_BINARIES: tuple[str, ...] = ("az",)
    VALIDATE_BINARIES: tuple[str, ...] = ("kubectl",)
    CLEANUP_BINARIES: tuple[str, ...] = ("helm", "kubectl")
    DESTROY_BINARIES: tuple[str, ...] = ("terraform",)

    # Timeouts
    HELM_TIMEOUT: str = "5m"
    HELM_UPGRADE_TIMEOUT: str = "3m"
    NAMESPACE_DELETE_TIMEOUT: str = "120s"
    LOG_TAIL_LINES: int = 5

    # Process timeouts (seconds) for calls that carry no --timeout of their own
    KUBECTL_TIMEOUT_SECONDS: int = 60
    HELM_QUERY_TIMEOUT_SECONDS: int = 120
    AZ_QUERY_TIMEOUT_SECONDS: int = 120
    AZ_UPDATE_TIMEOUT_SECONDS: int = 1800
    TERRAFORM_OUTPUT_TIMEOUT_SECONDS: int = 120
    TERRAFORM_DESTROY_TIMEOUT_SECONDS: int = 3600

    # Literal token that authorizes infrastructure destruction
    DESTROY_CONFIRMATION_TOKEN: str = "destroy"

    # Tier 2 cluster objects
    CLUSTER_SECRET_STORE_NAME: str = "azure-keyvault"
    DEFAULT_KEY_VAULT_URL: str = "https://kv-regulated-demo.vault.azure.net"
    GRAFANA_DASHBOARD_LABEL: str = "grafana_dashboard=1"
    PROMETHEUS_OPERATOR_CRDS: tuple[str, ...] = (
        "alertmanagerconfigs.monitoring.coreos.com",
        "alertmanagers.monitoring.coreos.com",
        "podmonitors.monitoring.coreos.com",
        "probes.monitoring.coreos.com",
        "prometheusagents.monitoring.coreos.com",
        "prometheuses.monitoring.coreos.com",
        "prometheusrules.monitoring.coreos.com",
        "scrapeconfigs.monitoring.coreos.com",
        "servicemonitors.monitoring.coreos.com",
        "thanosrulers.monitoring.coreos.com",
    )

    # Tier 4 (Karpenter node autoprovisioning)
    KARPENTER_CRD: str = "nodepools.karpenter.sh"
    KARPENTER_NAMESPACE: str = "kube-system"
    KARPENTER_LABEL: str = "app.kubernetes.io/name=karpenter"


class DeploymentPaths:
    """Path resolver for the static inputs of the orchestrator.

    Built from already-resolved PathSettings so every path here is absolute.
    """

    def __init__(self, settings: PathSettings) -> None:
        """Initialize deployment paths.

        Args:
            settings: Path settings resolved against the project root
        """
        self.tools = settings.tools_dir
        self.demo_workloads = settings.demo_workloads_dir
        self.policies = settings.policies_dir
        self.terraform = settings.terraform_dir

    def values_file(self, relative: str | Path) -> Path:
        """Get path to a Helm values document below the tools directory."""
        return self.tools / relative

    def demo_workload(self, name: str) -> Path:
        """Get path to a demo workload manifest directory."""
        return self.demo_workloads / name

    @property
    def grafana_dashboards(self) -> Path:
        return self.tools / "grafana" / "dashboards"

    @property
    def cluster_secret_store_manifest(self) -> Path:
        return self.tools / "external-secrets" / "manifests" / "cluster-secret-store.yaml"

    @property
    def karpenter_manifests(self) -> Path:
        return self.tools / "karpenter" / "manifests"

    @property
    def terraform_state(self) -> Path:
        return self.terraform / "terraform.tfstate"


DEFAULT_CONSTANTS = DeploymentConstants()
