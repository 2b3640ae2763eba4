"""Tier 2: Observability & Delivery.

kube-prometheus-stack, ArgoCD and External Secrets install independently.
Once they have outcomes the tier wires itself into Tier 1:

- Grafana dashboard ConfigMaps are applied from the tools directory
- Tier 1 releases that ship ServiceMonitors disabled are upgraded with
  ``serviceMonitor.enabled=true``
- The ClusterSecretStore is applied, pointed at the Key Vault Terraform
  provisioned when its state is available

None of these extra steps fail the tier; problems are printed as warnings.
"""

from __future__ import annotations

from loguru import logger

from .base import (
    FindingStatus,
    HelmRepo,
    InstallOutcome,
    Tier,
    ToolDescriptor,
    ValidationFinding,
)
from .tier1_security import FALCO, KYVERNO, TRIVY

PROMETHEUS_STACK = ToolDescriptor(
    name="Prometheus Stack",
    release="kube-prometheus-stack",
    namespace="monitoring",
    chart="prometheus-community/kube-prometheus-stack",
    values_file="prometheus/values.yaml",
    tier=2,
    timeout="8m",
    required=False,
)
ARGOCD = ToolDescriptor(
    name="ArgoCD",
    release="argocd",
    namespace="argocd",
    chart="argo/argo-cd",
    values_file="argocd/values.yaml",
    tier=2,
    required=False,
)
EXTERNAL_SECRETS = ToolDescriptor(
    name="External Secrets",
    release="external-secrets",
    namespace="external-secrets",
    chart="external-secrets/external-secrets",
    values_file="external-secrets/values.yaml",
    tier=2,
    required=False,
)

# Tier 1 releases whose values ship with serviceMonitor.enabled=false
SERVICE_MONITOR_TOOLS = (FALCO, KYVERNO, TRIVY)
SERVICE_MONITOR_VALUES = {"serviceMonitor.enabled": "true"}

GRAFANA_SELECTOR = "app.kubernetes.io/name=grafana"


class ObservabilityTier(Tier):
    """Metrics, GitOps delivery and secret sync."""

    number = 2
    title = "Observability & Delivery"
    repos = (
        HelmRepo("prometheus-community", "https://prometheus-community.github.io/helm-charts"),
        HelmRepo("argo", "https://argoproj.github.io/argo-helm"),
        HelmRepo("external-secrets", "https://charts.external-secrets.io"),
    )
    tools = (PROMETHEUS_STACK, ARGOCD, EXTERNAL_SECRETS)

    # =========================================================================
    # Install
    # =========================================================================

    def post_install(self, outcomes: list[InstallOutcome]) -> None:
        installed = {o.tool for o in outcomes if not o.failed}

        if PROMETHEUS_STACK.name in installed:
            self.apply_grafana_dashboards()
            self.enable_service_monitors()
        if ARGOCD.name in installed:
            self.console.info("ArgoCD access:")
            self.console.info(
                "  Admin password: kubectl -n argocd get secret argocd-initial-admin-secret "
                "-o jsonpath='{.data.password}' | base64 -d"
            )
            self.console.info("  Port-forward UI: kubectl port-forward svc/argocd-server -n argocd 8080:443")
        if EXTERNAL_SECRETS.name in installed:
            self.apply_cluster_secret_store()

    def apply_grafana_dashboards(self) -> int:
        """Apply every dashboard ConfigMap; returns how many applied."""
        dashboards = self.paths.grafana_dashboards
        if not dashboards.is_dir():
            self.console.warn(f"No dashboard directory found at {dashboards}")
            return 0

        applied = 0
        for manifest in sorted(dashboards.glob("*.yaml")):
            result = self.commands.kubectl.apply_manifest(manifest)
            if result.success:
                applied += 1
            else:
                self.console.warn(f"Could not apply dashboard {manifest.name}")
        self.console.ok(f"Applied {applied} Grafana dashboard(s)")
        return applied

    def enable_service_monitors(self) -> None:
        """Turn on ServiceMonitors for installed Tier 1 releases."""
        self._upgrade_service_monitor_tools(enable=True)

    def apply_cluster_secret_store(self) -> None:
        manifest = self.paths.cluster_secret_store_manifest
        if not manifest.is_file():
            logger.debug(f"No ClusterSecretStore manifest at {manifest}")
            return

        vault_uri = self._key_vault_uri()
        if vault_uri:
            self.console.info(f"Using Key Vault URI from Terraform: {vault_uri}")
            content = manifest.read_text().replace(
                self.constants.DEFAULT_KEY_VAULT_URL, vault_uri.rstrip("/")
            )
            result = self.commands.kubectl.apply_manifest(content=content)
        else:
            self.console.info("Applying ClusterSecretStore with the default Key Vault URL")
            result = self.commands.kubectl.apply_manifest(manifest)

        if result.success:
            self.console.ok("ClusterSecretStore applied")
        else:
            self.console.warn("Could not apply ClusterSecretStore")

    def _key_vault_uri(self) -> str | None:
        if not self.paths.terraform_state.is_file():
            return None
        return self.commands.terraform.output_raw("key_vault_uri", self.paths.terraform)

    def _upgrade_service_monitor_tools(self, *, enable: bool) -> None:
        helm = self.commands.helm
        for tool in SERVICE_MONITOR_TOOLS:
            if not helm.release_exists(tool.release, tool.namespace):
                continue
            result = helm.upgrade(
                tool.release,
                tool.chart,
                tool.namespace,
                value_files=self.value_files(tool),
                set_values=SERVICE_MONITOR_VALUES if enable else None,
                timeout=self.constants.HELM_UPGRADE_TIMEOUT,
            )
            action = "enable" if enable else "revert"
            if result.success:
                self.console.ok(f"{tool.name} ServiceMonitor {action}d")
            else:
                self.console.warn(f"Could not {action} {tool.name} ServiceMonitor")

    # =========================================================================
    # Validate
    # =========================================================================

    def extra_findings(self) -> list[ValidationFinding]:
        kubectl = self.commands.kubectl
        findings: list[ValidationFinding] = []

        grafana = kubectl.count_pods(PROMETHEUS_STACK.namespace, GRAFANA_SELECTOR)
        if grafana.running:
            findings.append(ValidationFinding("Grafana", FindingStatus.OK, "running"))
        else:
            findings.append(ValidationFinding("Grafana", FindingStatus.WARN, "not running"))

        monitors = kubectl.list_resource_names("servicemonitors", all_namespaces=True)
        findings.append(
            ValidationFinding(
                "ServiceMonitors", FindingStatus.OK, f"{len(monitors)} registered"
            )
        )

        store_status = kubectl.get_jsonpath(
            "clustersecretstore",
            self.constants.CLUSTER_SECRET_STORE_NAME,
            "{.status.conditions[0].status}",
        )
        if store_status == "True":
            findings.append(ValidationFinding("ClusterSecretStore", FindingStatus.OK, "Ready"))
        elif store_status:
            findings.append(
                ValidationFinding(
                    "ClusterSecretStore", FindingStatus.WARN, f"status={store_status}"
                )
            )
        else:
            findings.append(
                ValidationFinding("ClusterSecretStore", FindingStatus.WARN, "not found")
            )
        return findings

    # =========================================================================
    # Cleanup
    # =========================================================================

    def pre_cleanup(self) -> None:
        kubectl = self.commands.kubectl
        kubectl.delete_if_exists(
            "clustersecretstore", self.constants.CLUSTER_SECRET_STORE_NAME
        )
        kubectl.delete_by_label(
            "configmap",
            PROMETHEUS_STACK.namespace,
            self.constants.GRAFANA_DASHBOARD_LABEL,
        )

    def post_cleanup(self) -> None:
        # The chart leaves its CRDs behind on uninstall
        for crd in self.constants.PROMETHEUS_OPERATOR_CRDS:
            result = self.commands.kubectl.delete_if_exists("crd", crd)
            if not result.success:
                self.console.warn(f"Could not delete CRD {crd}")
        self._upgrade_service_monitor_tools(enable=False)
