"""Kubectl-based implementation of KubernetesController.

Uses subprocess calls to kubectl for all operations.
"""

from __future__ import annotations

import asyncio
import json
import subprocess
from pathlib import Path
from typing import Any

from loguru import logger

from .controller import (
    CommandResult,
    KubernetesController,
    PodInfo,
)
from .utils import PROCESS_TIMEOUT_GRACE, TIMEOUT_RETURNCODE, duration_seconds

# Process timeout for kubectl calls that carry no --timeout of their own
DEFAULT_KUBECTL_TIMEOUT = 60

NOT_FOUND_MARKERS = ("NotFound", "not found")


def _is_not_found(result: CommandResult) -> bool:
    return any(marker in result.stderr for marker in NOT_FOUND_MARKERS)


def _pod_from_json(item: dict[str, Any]) -> PodInfo:
    """Build a PodInfo from one entry of `kubectl get pods -o json`."""
    metadata = item.get("metadata", {})
    spec = item.get("spec", {})
    status = item.get("status", {})
    container_statuses = status.get("containerStatuses") or []

    state = status.get("phase", "Unknown")
    for cs in container_statuses:
        waiting = (cs.get("state") or {}).get("waiting") or {}
        terminated = (cs.get("state") or {}).get("terminated") or {}
        if waiting.get("reason"):
            state = waiting["reason"]
            break
        if terminated.get("reason") == "Error":
            state = "Error"
            break

    ready = bool(container_statuses) and all(
        cs.get("ready", False) for cs in container_statuses
    )

    return PodInfo(
        name=metadata.get("name", ""),
        status=state,
        ready=ready,
        restarts=sum(cs.get("restartCount", 0) for cs in container_statuses),
        node=spec.get("nodeName", ""),
    )


class KubectlController(KubernetesController):
    """Kubernetes controller using kubectl subprocess calls.

    All methods are async but internally use asyncio.to_thread()
    to run blocking subprocess calls without blocking the event loop.
    Every call is killed after a process timeout and reported as failed.
    """

    def __init__(self, timeout: float = DEFAULT_KUBECTL_TIMEOUT) -> None:
        self.timeout = timeout

    async def _run_kubectl(
        self,
        args: list[str],
        *,
        capture_output: bool = True,
        input_data: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a kubectl command asynchronously.

        Args:
            args: Command arguments (without 'kubectl' prefix)
            capture_output: Whether to capture stdout/stderr
            input_data: Optional input to send to stdin
            timeout: Process timeout in seconds (defaults to self.timeout)

        Returns:
            CommandResult with execution results
        """
        cmd = ["kubectl", *args]
        process_timeout = timeout or self.timeout

        def _run() -> CommandResult:
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=capture_output,
                    text=True,
                    input=input_data,
                    timeout=process_timeout,
                )
            except subprocess.TimeoutExpired:
                logger.debug(f"Timed out after {process_timeout}s: {' '.join(cmd)}")
                return CommandResult(
                    success=False,
                    stderr=f"kubectl timed out after {process_timeout}s",
                    returncode=TIMEOUT_RETURNCODE,
                )
            except FileNotFoundError:
                return CommandResult(
                    success=False, stderr="kubectl: command not found", returncode=127
                )
            logger.debug(f"{' '.join(cmd)} -> {result.returncode}")
            return CommandResult(
                success=result.returncode == 0,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
                returncode=result.returncode,
            )

        return await asyncio.to_thread(_run)

    # =========================================================================
    # Cluster
    # =========================================================================

    async def cluster_reachable(self, *, request_timeout: str = "10s") -> bool:
        """Check the API server answers within request_timeout."""
        result = await self._run_kubectl(
            ["cluster-info", f"--request-timeout={request_timeout}"]
        )
        return result.success

    async def get_current_context(self) -> str:
        """Get the current kubectl context name."""
        result = await self._run_kubectl(["config", "current-context"])
        return result.stdout.strip() if result.success else ""

    async def count_nodes(self) -> int:
        """Count cluster nodes."""
        return len(await self.list_resource_names("nodes"))

    # =========================================================================
    # Namespace Operations
    # =========================================================================

    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        result = await self._run_kubectl(["get", "namespace", namespace])
        return result.success

    async def delete_namespace(
        self,
        namespace: str,
        *,
        wait: bool = True,
        timeout: str = "120s",
    ) -> CommandResult:
        """Delete a Kubernetes namespace and all its resources."""
        args = ["delete", "namespace", namespace, "--ignore-not-found"]
        if wait:
            args.append("--wait=true")
            args.extend(["--timeout", timeout])
            return await self._run_kubectl(
                args, timeout=duration_seconds(timeout) + PROCESS_TIMEOUT_GRACE
            )
        args.append("--wait=false")
        return await self._run_kubectl(args)

    # =========================================================================
    # Pod Operations
    # =========================================================================

    async def get_pods(
        self,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[PodInfo]:
        """Get pods in a namespace with their status."""
        args = ["get", "pods", "-n", namespace, "-o", "json"]
        if label_selector:
            args.extend(["-l", label_selector])

        result = await self._run_kubectl(args)
        if not result.success or not result.stdout:
            return []

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            return []
        return [_pod_from_json(item) for item in data.get("items", [])]

    async def get_pod_logs(self, name: str, namespace: str, *, tail: int = 5) -> str:
        """Return the last `tail` log lines of a pod."""
        result = await self._run_kubectl(
            ["logs", "-n", namespace, name, f"--tail={tail}"]
        )
        return result.output if result.success else result.stderr.strip()

    # =========================================================================
    # Resource Operations
    # =========================================================================

    async def crd_exists(self, name: str) -> bool:
        """Check if a CustomResourceDefinition is registered."""
        result = await self._run_kubectl(["get", "crd", name])
        return result.success

    async def list_resource_names(
        self,
        kind: str,
        namespace: str | None = None,
        *,
        all_namespaces: bool = False,
    ) -> list[str]:
        """List object names of a kind."""
        args = ["get", kind, "-o", "name"]
        if all_namespaces:
            args.append("--all-namespaces")
        elif namespace:
            args.extend(["-n", namespace])

        result = await self._run_kubectl(args)
        if not result.success:
            return []
        # `-o name` prints kind/name; keep the name part
        return [
            line.split("/", 1)[-1]
            for line in result.stdout.splitlines()
            if line.strip()
        ]

    async def get_jsonpath(
        self,
        kind: str,
        name: str,
        jsonpath: str,
        namespace: str | None = None,
    ) -> str | None:
        """Read a field of an object via jsonpath."""
        args = ["get", kind, name, "-o", f"jsonpath={jsonpath}"]
        if namespace:
            args.extend(["-n", namespace])
        result = await self._run_kubectl(args)
        if not result.success:
            return None
        return result.stdout.strip()

    async def apply_manifest(
        self,
        manifest_path: Path | None = None,
        *,
        content: str | None = None,
    ) -> CommandResult:
        """Apply a Kubernetes manifest file, directory or raw content."""
        if content is not None:
            return await self._run_kubectl(["apply", "-f", "-"], input_data=content)
        if manifest_path is None:
            raise ValueError("apply_manifest needs a manifest_path or content")
        return await self._run_kubectl(["apply", "-f", str(manifest_path)])

    async def delete_if_exists(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
    ) -> CommandResult:
        """Delete a specific Kubernetes resource by name."""
        args = ["delete", kind, name, "--ignore-not-found"]
        if namespace:
            args.extend(["-n", namespace])
        return self._not_found_is_success(await self._run_kubectl(args))

    async def delete_manifest(
        self,
        manifest_path: Path,
        *,
        kustomize: bool = False,
    ) -> CommandResult:
        """Delete everything declared by a manifest path or kustomization."""
        if not manifest_path.exists():
            # Nothing declared means nothing to delete
            return CommandResult(success=True, stderr=f"{manifest_path} not found")
        flag = "-k" if kustomize else "-f"
        result = await self._run_kubectl(
            ["delete", flag, str(manifest_path), "--ignore-not-found"]
        )
        return self._not_found_is_success(result)

    async def delete_all(self, kind: str, namespace: str | None = None) -> CommandResult:
        """Delete every object of a kind."""
        args = ["delete", kind, "--all", "--ignore-not-found"]
        if namespace:
            args.extend(["-n", namespace])
        return self._not_found_is_success(await self._run_kubectl(args))

    async def delete_by_label(
        self,
        kind: str,
        namespace: str,
        label_selector: str,
    ) -> CommandResult:
        """Delete Kubernetes resources matching a label selector."""
        result = await self._run_kubectl(
            [
                "delete",
                kind,
                "-n",
                namespace,
                "-l",
                label_selector,
                "--ignore-not-found",
            ]
        )
        return self._not_found_is_success(result)

    async def wait_for_condition(
        self,
        resource: str,
        namespace: str,
        *,
        condition: str = "available",
        timeout: str = "120s",
    ) -> CommandResult:
        """Wait for a resource to reach a condition."""
        return await self._run_kubectl(
            [
                "wait",
                f"--for=condition={condition}",
                resource,
                "-n",
                namespace,
                f"--timeout={timeout}",
            ],
            timeout=duration_seconds(timeout) + PROCESS_TIMEOUT_GRACE,
        )

    # =========================================================================
    # Admission
    # =========================================================================

    async def dry_run_privileged_pod(self, name: str, image: str) -> CommandResult:
        """Attempt a server-side dry-run create of a privileged pod."""
        overrides = {
            "spec": {
                "containers": [
                    {
                        "name": name,
                        "image": image,
                        "securityContext": {"privileged": True},
                    }
                ]
            }
        }
        return await self._run_kubectl(
            [
                "run",
                name,
                f"--image={image}",
                "--restart=Never",
                f"--overrides={json.dumps(overrides)}",
                "--dry-run=server",
                "-o",
                "yaml",
            ]
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _not_found_is_success(result: CommandResult) -> CommandResult:
        if result.success or not _is_not_found(result):
            return result
        return CommandResult(
            success=True,
            stdout=result.stdout,
            stderr=result.stderr,
            returncode=0,
        )
