"""Tests for the kubectl-backed Kubernetes controller and its sync wrapper."""

import json
import subprocess
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tierstack.cli.deployment.shell_commands.kubectl import KubectlCommands
from tierstack.infra.k8s import (
    PROCESS_TIMEOUT_GRACE,
    TIMEOUT_RETURNCODE,
    KubectlController,
    PodInfo,
    run_sync,
)
from tierstack.infra.k8s.kubectl_controller import _pod_from_json

RUN = "tierstack.infra.k8s.kubectl_controller.subprocess.run"


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


def _pod_item(name: str, phase: str = "Running", *containers: dict) -> dict:
    return {
        "metadata": {"name": name},
        "spec": {"nodeName": "aks-node-0"},
        "status": {"phase": phase, "containerStatuses": list(containers)},
    }


class TestPodFromJson:
    """Tests for mapping `kubectl get pods -o json` items to PodInfo."""

    def test_ready_running_pod(self) -> None:
        pod = _pod_from_json(
            _pod_item("falco-abc", "Running", {"ready": True, "restartCount": 1, "state": {"running": {}}})
        )

        assert pod == PodInfo(name="falco-abc", status="Running", ready=True, restarts=1, node="aks-node-0")
        assert pod.is_settled

    def test_waiting_reason_overrides_phase(self) -> None:
        pod = _pod_from_json(
            _pod_item(
                "kyverno-0",
                "Running",
                {"ready": False, "restartCount": 4, "state": {"waiting": {"reason": "CrashLoopBackOff"}}},
            )
        )

        assert pod.status == "CrashLoopBackOff"
        assert pod.is_crashed
        assert not pod.ready

    def test_terminated_with_error(self) -> None:
        pod = _pod_from_json(
            _pod_item("job-1", "Failed", {"ready": False, "state": {"terminated": {"reason": "Error"}}})
        )

        assert pod.status == "Error"
        assert pod.is_crashed

    def test_completed_job_pod_is_settled(self) -> None:
        pod = _pod_from_json(_pod_item("migrate-1", "Succeeded"))

        assert not pod.ready
        assert pod.is_settled

    def test_pending_pod_without_containers(self) -> None:
        pod = _pod_from_json(_pod_item("harbor-core-0", "Pending"))

        assert pod.status == "Pending"
        assert not pod.is_settled
        assert not pod.is_crashed


class TestKubectlController:
    """Tests for kubectl argv building and result normalization."""

    @pytest.fixture
    def controller(self) -> KubectlController:
        return KubectlController()

    def test_get_pods_with_selector(self, controller: KubectlController) -> None:
        payload = {"items": [_pod_item("falco-1", "Running", {"ready": True, "state": {}})]}
        with patch(RUN, return_value=_completed(stdout=json.dumps(payload))) as mock_run:
            pods = run_sync(controller.get_pods("falco", "app.kubernetes.io/name=falco"))

        assert [p.name for p in pods] == ["falco-1"]
        cmd = mock_run.call_args[0][0]
        assert cmd[:3] == ["kubectl", "get", "pods"]
        assert cmd[cmd.index("-l") + 1] == "app.kubernetes.io/name=falco"

    def test_get_pods_unparseable_output(self, controller: KubectlController) -> None:
        with patch(RUN, return_value=_completed(stdout="not json")):
            assert run_sync(controller.get_pods("falco")) == []

    def test_get_pods_missing_kubectl(self, controller: KubectlController) -> None:
        with patch(RUN, side_effect=FileNotFoundError):
            assert run_sync(controller.get_pods("falco")) == []

    def test_delete_if_exists_not_found_is_success(self, controller: KubectlController) -> None:
        not_found = _completed(
            returncode=1,
            stderr='Error from server (NotFound): clustersecretstores "azure-keyvault" not found',
        )
        with patch(RUN, return_value=not_found) as mock_run:
            result = run_sync(controller.delete_if_exists("clustersecretstore", "azure-keyvault"))

        assert result.success
        assert "--ignore-not-found" in mock_run.call_args[0][0]

    def test_delete_if_exists_real_failure(self, controller: KubectlController) -> None:
        forbidden = _completed(returncode=1, stderr="Error from server (Forbidden): no access")
        with patch(RUN, return_value=forbidden):
            result = run_sync(controller.delete_if_exists("clusterrole", "vulnerable-app-role"))

        assert not result.success

    def test_delete_manifest_missing_path_is_noop(
        self, controller: KubectlController, tmp_path: Path
    ) -> None:
        with patch(RUN) as mock_run:
            result = run_sync(controller.delete_manifest(tmp_path / "absent"))

        assert result.success
        mock_run.assert_not_called()

    def test_delete_manifest_kustomize(self, controller: KubectlController, tmp_path: Path) -> None:
        with patch(RUN, return_value=_completed()) as mock_run:
            run_sync(controller.delete_manifest(tmp_path, kustomize=True))

        assert mock_run.call_args[0][0][:3] == ["kubectl", "delete", "-k"]

    def test_apply_manifest_content_goes_to_stdin(self, controller: KubectlController) -> None:
        with patch(RUN, return_value=_completed()) as mock_run:
            run_sync(controller.apply_manifest(content="kind: ClusterSecretStore"))

        assert mock_run.call_args[0][0] == ["kubectl", "apply", "-f", "-"]
        assert mock_run.call_args.kwargs["input"] == "kind: ClusterSecretStore"

    def test_apply_manifest_requires_input(self, controller: KubectlController) -> None:
        with pytest.raises(ValueError):
            run_sync(controller.apply_manifest())

    def test_list_resource_names_strips_kind(self, controller: KubectlController) -> None:
        output = "nodepool.karpenter.sh/default\nnodepool.karpenter.sh/system-surge\n"
        with patch(RUN, return_value=_completed(stdout=output)):
            names = run_sync(controller.list_resource_names("nodepools"))

        assert names == ["default", "system-surge"]

    def test_dry_run_privileged_pod(self, controller: KubectlController) -> None:
        with patch(RUN, return_value=_completed()) as mock_run:
            run_sync(controller.dry_run_privileged_pod("test-privileged", "nginx"))

        cmd = mock_run.call_args[0][0]
        assert "--dry-run=server" in cmd
        overrides = next(arg for arg in cmd if arg.startswith("--overrides="))
        spec = json.loads(overrides.removeprefix("--overrides="))
        assert spec["spec"]["containers"][0]["securityContext"] == {"privileged": True}

    def test_every_call_has_a_process_timeout(self) -> None:
        """Queries without their own --timeout are bounded by the controller default."""
        controller = KubectlController(timeout=15)
        with patch(RUN, return_value=_completed(stdout="{}")) as mock_run:
            run_sync(controller.get_pods("falco"))
            run_sync(controller.dry_run_privileged_pod("test-privileged", "nginx"))
            run_sync(controller.cluster_reachable())

        assert [c.kwargs["timeout"] for c in mock_run.call_args_list] == [15, 15, 15]

    def test_waits_extend_their_own_timeout(self, controller: KubectlController) -> None:
        """Calls carrying --timeout get that duration plus a grace period."""
        with patch(RUN, return_value=_completed()) as mock_run:
            run_sync(
                controller.wait_for_condition(
                    "deployment/vulnerable-app", "vulnerable-app", timeout="2m"
                )
            )
            run_sync(controller.delete_namespace("falco", timeout="120s"))

        assert [c.kwargs["timeout"] for c in mock_run.call_args_list] == [
            120 + PROCESS_TIMEOUT_GRACE,
            120 + PROCESS_TIMEOUT_GRACE,
        ]

    def test_hung_kubectl_becomes_failed_result(self, controller: KubectlController) -> None:
        """A killed kubectl is a failure, so readiness polling keeps its deadline."""
        with patch(RUN, side_effect=subprocess.TimeoutExpired(["kubectl"], 60)):
            result = run_sync(controller.delete_if_exists("crd", "nodepools.karpenter.sh"))
            pods = run_sync(controller.get_pods("falco"))

        assert not result.success
        assert result.returncode == TIMEOUT_RETURNCODE
        assert "timed out" in result.stderr
        assert pods == []

    def test_get_jsonpath_failure_is_none(self, controller: KubectlController) -> None:
        with patch(RUN, return_value=_completed(returncode=1, stderr="NotFound")):
            value = run_sync(
                controller.get_jsonpath("clustersecretstore", "azure-keyvault", "{.status}")
            )

        assert value is None


class TestKubectlCommands:
    """Tests for the sync wrapper over the async controller."""

    def test_count_pods_tallies_controller_pods(self) -> None:
        controller = MagicMock()
        controller.get_pods = AsyncMock(
            return_value=[
                PodInfo("a", "Running", ready=True),
                PodInfo("b", "Running", ready=False),
                PodInfo("c", "CrashLoopBackOff"),
                PodInfo("d", "Succeeded"),
            ]
        )
        kubectl = KubectlCommands(controller)

        counts = kubectl.count_pods("falco", "app=falco")

        assert counts.total == 4
        assert counts.ready == 2
        assert counts.running == 2
        assert counts.crashed == 1
        assert counts.not_ready == 2
        controller.get_pods.assert_awaited_once_with("falco", "app=falco")

    def test_delete_if_exists_delegates(self) -> None:
        controller = MagicMock()
        controller.delete_if_exists = AsyncMock(return_value=MagicMock(success=True))
        kubectl = KubectlCommands(controller)

        assert kubectl.delete_if_exists("crd", "probes.monitoring.coreos.com").success
        controller.delete_if_exists.assert_awaited_once_with(
            "crd", "probes.monitoring.coreos.com", None
        )
