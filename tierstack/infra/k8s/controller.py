"""Abstract Kubernetes controller interface.

Defines the contract for the cluster query/mutate operations the
orchestrator needs. Implementations may shell out to kubectl or talk to
the API server directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

# =============================================================================
# Data Types
# =============================================================================

# Container waiting reasons that will not resolve by waiting longer
CRASH_STATES: frozenset[str] = frozenset(
    {"CrashLoopBackOff", "Error", "ImagePullBackOff", "ErrImagePull"}
)


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for matching on messages."""
        return f"{self.stdout}\n{self.stderr}".strip()


@dataclass
class PodInfo:
    """Information about a Kubernetes pod.

    ``status`` is the most specific state available: a container waiting
    reason (e.g. CrashLoopBackOff) when one exists, otherwise the pod phase.
    """

    name: str
    status: str
    ready: bool = False
    restarts: int = 0
    node: str = ""

    @property
    def is_running(self) -> bool:
        return self.status == "Running"

    @property
    def is_crashed(self) -> bool:
        return self.status in CRASH_STATES

    @property
    def is_settled(self) -> bool:
        """Ready, or a completed job pod."""
        return self.ready or self.status == "Succeeded"


@dataclass
class PodCounts:
    """Ready/total pod tally for one label selector in one namespace."""

    total: int = 0
    ready: int = 0
    running: int = 0
    crashed: int = 0

    @property
    def not_ready(self) -> int:
        return self.total - self.ready

    @classmethod
    def from_pods(cls, pods: list[PodInfo]) -> PodCounts:
        return cls(
            total=len(pods),
            ready=sum(1 for p in pods if p.is_settled),
            running=sum(1 for p in pods if p.is_running),
            crashed=sum(1 for p in pods if p.is_crashed),
        )


# =============================================================================
# Abstract Controller
# =============================================================================


class KubernetesController(ABC):
    """Abstract base class for Kubernetes operations.

    All methods are async so callers can fan out queries. Use `run_sync()`
    to call from synchronous code.

    Deletion methods follow delete-if-exists semantics: an object that is
    already absent is reported as success.

    Example:
        from tierstack.infra.k8s import KubectlController, run_sync

        controller = KubectlController()
        pods = run_sync(controller.get_pods("falco"))
    """

    # =========================================================================
    # Cluster
    # =========================================================================

    @abstractmethod
    async def cluster_reachable(self, *, request_timeout: str = "10s") -> bool:
        """Check the API server answers within request_timeout."""
        ...

    @abstractmethod
    async def get_current_context(self) -> str:
        """Get the current context name, or "" if none is configured."""
        ...

    @abstractmethod
    async def count_nodes(self) -> int:
        """Count cluster nodes."""
        ...

    # =========================================================================
    # Namespaces
    # =========================================================================

    @abstractmethod
    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        ...

    @abstractmethod
    async def delete_namespace(
        self,
        namespace: str,
        *,
        wait: bool = True,
        timeout: str = "120s",
    ) -> CommandResult:
        """Delete a namespace if it exists."""
        ...

    # =========================================================================
    # Pods
    # =========================================================================

    @abstractmethod
    async def get_pods(
        self,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[PodInfo]:
        """List pods in a namespace, optionally filtered by label selector."""
        ...

    @abstractmethod
    async def get_pod_logs(self, name: str, namespace: str, *, tail: int = 5) -> str:
        """Return the last `tail` log lines of a pod ("" on failure)."""
        ...

    # =========================================================================
    # Generic Resources
    # =========================================================================

    @abstractmethod
    async def crd_exists(self, name: str) -> bool:
        """Check if a CustomResourceDefinition is registered."""
        ...

    @abstractmethod
    async def list_resource_names(
        self,
        kind: str,
        namespace: str | None = None,
        *,
        all_namespaces: bool = False,
    ) -> list[str]:
        """List object names of a kind (empty if the kind is unknown)."""
        ...

    @abstractmethod
    async def get_jsonpath(
        self,
        kind: str,
        name: str,
        jsonpath: str,
        namespace: str | None = None,
    ) -> str | None:
        """Read a field of an object via jsonpath, None if unavailable."""
        ...

    @abstractmethod
    async def apply_manifest(
        self,
        manifest_path: Path | None = None,
        *,
        content: str | None = None,
    ) -> CommandResult:
        """Apply a manifest file/directory, or raw manifest content."""
        ...

    @abstractmethod
    async def delete_if_exists(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
    ) -> CommandResult:
        """Delete a named object; absent objects count as success."""
        ...

    @abstractmethod
    async def delete_manifest(
        self,
        manifest_path: Path,
        *,
        kustomize: bool = False,
    ) -> CommandResult:
        """Delete everything declared by a manifest path or kustomization."""
        ...

    @abstractmethod
    async def delete_all(self, kind: str, namespace: str | None = None) -> CommandResult:
        """Delete every object of a kind."""
        ...

    @abstractmethod
    async def delete_by_label(
        self,
        kind: str,
        namespace: str,
        label_selector: str,
    ) -> CommandResult:
        """Delete objects of a kind matching a label selector."""
        ...

    @abstractmethod
    async def wait_for_condition(
        self,
        resource: str,
        namespace: str,
        *,
        condition: str = "available",
        timeout: str = "120s",
    ) -> CommandResult:
        """Block until resource reports condition or timeout elapses."""
        ...

    # =========================================================================
    # Admission
    # =========================================================================

    @abstractmethod
    async def dry_run_privileged_pod(self, name: str, image: str) -> CommandResult:
        """Attempt a server-side dry-run create of a privileged pod."""
        ...
