"""Tier 4: AKS-Managed services.

Karpenter on AKS is not a Helm chart: AKS deploys the controller into
kube-system once Node Autoprovisioning (NAP) is switched on with
``az aks update --node-provisioning-mode Auto``. This tier enables NAP,
waits for the Karpenter CRDs to register, and then applies the NodePool
and AKSNodeClass manifests from the tools directory.
"""

from __future__ import annotations

import os

from loguru import logger

from ..shell_commands import AKSCluster
from .base import (
    FindingStatus,
    InstallOutcome,
    InstallStatus,
    Tier,
    TierReport,
    ValidationFinding,
    last_line,
)

NAP_OUTCOME = "Karpenter NAP"
NODEPOOLS_OUTCOME = "Karpenter NodePools"


class AKSManagedTier(Tier):
    """Karpenter Node Autoprovisioning."""

    number = 4
    title = "AKS-Managed"

    # =========================================================================
    # Install
    # =========================================================================

    def install(self) -> TierReport:
        outcomes = [self.enable_node_autoprovisioning(), self.apply_node_pools()]
        return TierReport(tier=self.number, name=self.title, outcomes=outcomes)

    def karpenter_available(self) -> bool:
        return self.commands.kubectl.crd_exists(self.constants.KARPENTER_CRD)

    def resolve_cluster(self) -> AKSCluster | None:
        """Work out which AKS cluster to update.

        Configured (or AKS_CLUSTER_NAME / AKS_RESOURCE_GROUP) values win;
        whatever is missing is looked up with ``az aks list`` using the
        current kubeconfig context.
        """
        cluster = self.settings.cluster
        name = cluster.name or os.environ.get("AKS_CLUSTER_NAME") or None
        resource_group = (
            cluster.resource_group or os.environ.get("AKS_RESOURCE_GROUP") or None
        )
        if name and resource_group:
            return AKSCluster(name=name, resource_group=resource_group)

        context = self.commands.kubectl.get_current_context()
        if not name and not context:
            self.console.warn("No active kubeconfig context; cannot determine cluster name")
            return None

        found = self.commands.az.find_aks_cluster(name or context)
        if found is None:
            return None
        return AKSCluster(
            name=name or found.name,
            resource_group=resource_group or found.resource_group,
        )

    def enable_node_autoprovisioning(self) -> InstallOutcome:
        namespace = self.constants.KARPENTER_NAMESPACE
        self.console.info("Enabling Karpenter Node Autoprovisioning...")

        if self.karpenter_available():
            self.console.ok("Karpenter already enabled")
            return InstallOutcome(
                NAP_OUTCOME, InstallStatus.INSTALLED, "already enabled", namespace=namespace
            )

        target = self.resolve_cluster()
        if target is None:
            self.console.warn(
                "Could not determine cluster name or resource group. Set AKS_CLUSTER_NAME "
                "and AKS_RESOURCE_GROUP, or enable manually: "
                "az aks update -g <rg> -n <cluster> --node-provisioning-mode Auto"
            )
            return InstallOutcome(
                NAP_OUTCOME,
                InstallStatus.FAILED,
                "cluster name or resource group unknown",
                namespace=namespace,
            )

        self.console.info(
            f"Enabling Karpenter on '{target.name}' in '{target.resource_group}' "
            "(this may take several minutes)..."
        )
        result = self.commands.az.enable_node_autoprovisioning(target)
        if not result.success:
            self.console.warn(
                "Failed to enable Karpenter. Enable it manually: "
                f"az aks update -g {target.resource_group} -n {target.name} "
                "--node-provisioning-mode Auto"
            )
            detail = last_line(result.stderr) or f"az exited with {result.returncode}"
            return InstallOutcome(NAP_OUTCOME, InstallStatus.FAILED, detail, namespace=namespace)

        return self._wait_for_crds()

    def _wait_for_crds(self) -> InstallOutcome:
        cluster = self.settings.cluster
        namespace = self.constants.KARPENTER_NAMESPACE
        self.console.info("Waiting for Karpenter CRDs to appear...")

        for attempt in range(1, cluster.karpenter_crd_retries + 1):
            if self.karpenter_available():
                self.console.ok("Karpenter CRDs registered")
                return InstallOutcome(
                    NAP_OUTCOME, InstallStatus.INSTALLED, "enabled", namespace=namespace
                )
            logger.debug(f"Karpenter CRD not registered yet (attempt {attempt})")
            self.context.sleep(cluster.karpenter_crd_poll_seconds)

        self.console.warn("Karpenter CRDs not available yet; re-run with --tier=4 later")
        return InstallOutcome(
            NAP_OUTCOME,
            InstallStatus.FAILED,
            f"CRDs not registered after {cluster.karpenter_crd_retries} checks",
            namespace=namespace,
        )

    def apply_node_pools(self) -> InstallOutcome:
        namespace = self.constants.KARPENTER_NAMESPACE
        self.console.info("Applying Karpenter NodePool manifests...")

        if not self.karpenter_available():
            self.console.warn("Karpenter CRDs not found; skipping NodePools")
            return InstallOutcome(
                NODEPOOLS_OUTCOME, InstallStatus.SKIPPED, "Karpenter CRDs not found",
                namespace=namespace,
            )

        manifests_dir = self.paths.karpenter_manifests
        manifests = sorted(manifests_dir.glob("*.yaml")) if manifests_dir.is_dir() else []
        if not manifests:
            self.console.warn(f"No Karpenter manifests found in {manifests_dir}")
            return InstallOutcome(
                NODEPOOLS_OUTCOME, InstallStatus.SKIPPED, "no manifests", namespace=namespace
            )

        applied = 0
        for manifest in manifests:
            if self.commands.kubectl.apply_manifest(manifest).success:
                applied += 1
            else:
                self.console.warn(f"Could not apply {manifest.name}")

        kubectl = self.commands.kubectl
        node_pools = len(kubectl.list_resource_names("nodepools"))
        node_classes = len(kubectl.list_resource_names("aksnodeclasses"))
        detail = (
            f"applied {applied}/{len(manifests)} manifest(s); "
            f"NodePools: {node_pools}, AKSNodeClasses: {node_classes}"
        )
        self.console.ok(detail)
        return InstallOutcome(
            NODEPOOLS_OUTCOME, InstallStatus.INSTALLED, detail, namespace=namespace
        )

    # =========================================================================
    # Validate
    # =========================================================================

    def validate(self) -> list[ValidationFinding]:
        if not self.karpenter_available():
            return [
                ValidationFinding(
                    "Karpenter",
                    FindingStatus.WARN,
                    "not enabled (run install --tier=4 to enable)",
                )
            ]

        kubectl = self.commands.kubectl
        findings: list[ValidationFinding] = []

        controller = kubectl.count_pods(
            self.constants.KARPENTER_NAMESPACE, self.constants.KARPENTER_LABEL
        )
        if controller.running:
            findings.append(
                ValidationFinding(
                    "Karpenter controller",
                    FindingStatus.OK,
                    f"{controller.running} pod(s) running",
                )
            )
        else:
            findings.append(
                ValidationFinding(
                    "Karpenter controller",
                    FindingStatus.WARN,
                    f"not found in {self.constants.KARPENTER_NAMESPACE}",
                )
            )

        for kind, label in (("nodepools", "NodePools"), ("aksnodeclasses", "AKSNodeClasses")):
            names = kubectl.list_resource_names(kind)
            if names:
                findings.append(
                    ValidationFinding(
                        label,
                        FindingStatus.OK,
                        f"{len(names)} configured ({', '.join(names)})",
                    )
                )
            else:
                findings.append(ValidationFinding(label, FindingStatus.WARN, "none applied"))
        return findings

    # =========================================================================
    # Cleanup
    # =========================================================================

    def cleanup(self) -> None:
        self.console.info(f"Removing {self.label}...")
        if not self.karpenter_available():
            self.console.info("Karpenter not enabled; nothing to clean up")
            return

        kubectl = self.commands.kubectl
        for kind in ("nodepools", "aksnodeclasses"):
            result = kubectl.delete_all(kind)
            if not result.success:
                self.console.warn(f"Could not delete {kind}")
        self.console.ok("Karpenter NodePools and AKSNodeClasses removed")
        self.console.info(
            "The Karpenter controller stays (managed by AKS). To disable it: "
            "az aks update -g <rg> -n <cluster> --node-provisioning-mode Manual"
        )
