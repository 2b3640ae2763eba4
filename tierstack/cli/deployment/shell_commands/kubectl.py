"""Kubectl command abstractions.

This module provides commands for Kubernetes resource management,
delegating to a KubernetesController for the actual operations.

This is a sync wrapper around the async controller so tier modules and
worker threads can call it directly.
"""

from __future__ import annotations

from pathlib import Path

from tierstack.infra.k8s import KubectlController, run_sync
from tierstack.infra.k8s.controller import (
    CommandResult,
    KubernetesController,
    PodCounts,
    PodInfo,
)


class KubectlCommands:
    """Kubectl-related shell commands.

    All methods delegate to the async controller using run_sync().

    Provides operations for:
    - Cluster reachability and context detection
    - Namespace management
    - Pod queries (status, readiness tallies, logs)
    - Manifest apply and delete-if-exists
    - Server-side dry-run admission probes
    """

    def __init__(self, controller: KubernetesController | None = None) -> None:
        """Initialize kubectl commands.

        Args:
            controller: Controller to delegate to (defaults to kubectl)
        """
        self._controller = controller or KubectlController()

    # =========================================================================
    # Cluster
    # =========================================================================

    def cluster_reachable(self, *, request_timeout: str = "10s") -> bool:
        """Check the API server answers within request_timeout."""
        return run_sync(
            self._controller.cluster_reachable(request_timeout=request_timeout)
        )

    def get_current_context(self) -> str:
        """Get the current kubectl context name."""
        return run_sync(self._controller.get_current_context())

    def count_nodes(self) -> int:
        """Count cluster nodes."""
        return run_sync(self._controller.count_nodes())

    # =========================================================================
    # Namespace Management
    # =========================================================================

    def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        return run_sync(self._controller.namespace_exists(namespace))

    def delete_namespace(
        self,
        namespace: str,
        *,
        wait: bool = True,
        timeout: str = "120s",
    ) -> CommandResult:
        """Delete a Kubernetes namespace and all its resources."""
        return run_sync(
            self._controller.delete_namespace(namespace, wait=wait, timeout=timeout)
        )

    # =========================================================================
    # Pod Operations
    # =========================================================================

    def get_pods(self, namespace: str, label_selector: str | None = None) -> list[PodInfo]:
        """Get pods in a namespace with their status."""
        return run_sync(self._controller.get_pods(namespace, label_selector))

    def count_pods(self, namespace: str, label_selector: str | None = None) -> PodCounts:
        """Tally ready/total pods matching a selector."""
        return PodCounts.from_pods(self.get_pods(namespace, label_selector))

    def get_pod_logs(self, name: str, namespace: str, *, tail: int = 5) -> str:
        """Return the last log lines of a pod."""
        return run_sync(self._controller.get_pod_logs(name, namespace, tail=tail))

    # =========================================================================
    # Resource Operations
    # =========================================================================

    def crd_exists(self, name: str) -> bool:
        """Check if a CustomResourceDefinition is registered."""
        return run_sync(self._controller.crd_exists(name))

    def list_resource_names(
        self,
        kind: str,
        namespace: str | None = None,
        *,
        all_namespaces: bool = False,
    ) -> list[str]:
        """List object names of a kind."""
        return run_sync(
            self._controller.list_resource_names(
                kind, namespace, all_namespaces=all_namespaces
            )
        )

    def get_jsonpath(
        self,
        kind: str,
        name: str,
        jsonpath: str,
        namespace: str | None = None,
    ) -> str | None:
        """Read a field of an object via jsonpath."""
        return run_sync(self._controller.get_jsonpath(kind, name, jsonpath, namespace))

    def apply_manifest(
        self,
        manifest_path: Path | None = None,
        *,
        content: str | None = None,
    ) -> CommandResult:
        """Apply a manifest file/directory or raw manifest content."""
        return run_sync(self._controller.apply_manifest(manifest_path, content=content))

    def delete_if_exists(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
    ) -> CommandResult:
        """Delete a named object, treating not-found as success."""
        return run_sync(self._controller.delete_if_exists(kind, name, namespace))

    def delete_manifest(self, manifest_path: Path, *, kustomize: bool = False) -> CommandResult:
        """Delete what a manifest path or kustomization declares."""
        return run_sync(
            self._controller.delete_manifest(manifest_path, kustomize=kustomize)
        )

    def delete_all(self, kind: str, namespace: str | None = None) -> CommandResult:
        """Delete every object of a kind."""
        return run_sync(self._controller.delete_all(kind, namespace))

    def delete_by_label(
        self,
        kind: str,
        namespace: str,
        label_selector: str,
    ) -> CommandResult:
        """Delete objects of a kind matching a label selector."""
        return run_sync(
            self._controller.delete_by_label(kind, namespace, label_selector)
        )

    def wait_for_condition(
        self,
        resource: str,
        namespace: str,
        *,
        condition: str = "available",
        timeout: str = "120s",
    ) -> CommandResult:
        """Wait for a resource to reach a condition."""
        return run_sync(
            self._controller.wait_for_condition(
                resource, namespace, condition=condition, timeout=timeout
            )
        )

    # =========================================================================
    # Admission
    # =========================================================================

    def dry_run_privileged_pod(self, name: str, image: str) -> CommandResult:
        """Attempt a server-side dry-run create of a privileged pod."""
        return run_sync(self._controller.dry_run_privileged_pod(name, image))
