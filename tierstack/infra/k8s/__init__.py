"""Kubernetes infrastructure abstraction layer.

This module provides a clean abstraction over the cluster query/mutate
operations used by the orchestrator.

Example:
    from tierstack.infra.k8s import KubectlController, run_sync

    controller = KubectlController()
    exists = run_sync(controller.namespace_exists("falco"))
    pods = run_sync(controller.get_pods("falco", "app.kubernetes.io/name=falco"))
"""

from .controller import (
    CRASH_STATES,
    CommandResult,
    KubernetesController,
    PodCounts,
    PodInfo,
)
from .kubectl_controller import KubectlController
from .utils import (
    PROCESS_TIMEOUT_GRACE,
    TIMEOUT_RETURNCODE,
    duration_seconds,
    run_sync,
)

__all__ = [
    # Controller classes
    "KubernetesController",
    "KubectlController",
    # Data classes
    "CommandResult",
    "PodInfo",
    "PodCounts",
    "CRASH_STATES",
    # Utilities
    "run_sync",
    "duration_seconds",
    "PROCESS_TIMEOUT_GRACE",
    "TIMEOUT_RETURNCODE",
]
