"""Pydantic models for orchestrator configuration.

The models mirror the ``config:`` section of ``config.yaml``. Every field
has a default so the orchestrator runs without a config file at all.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, field_validator

from tierstack.infra.k8s.utils import duration_seconds


def _check_duration(value: str) -> str:
    duration_seconds(value)
    return value


# A Go-style duration string handed to kubectl or helm ("10s", "2m")
Duration = Annotated[str, AfterValidator(_check_duration)]


class PathSettings(BaseModel):
    """Locations of the static inputs consumed by the orchestrator.

    Relative paths are resolved against the project root.
    """

    tools_dir: Path = Path("tools")
    demo_workloads_dir: Path = Path("demo-workloads")
    policies_dir: Path = Path("security-tools/kyverno/policies")
    terraform_dir: Path = Path("infrastructure/terraform")

    def resolve(self, project_root: Path) -> PathSettings:
        """Return a copy with every relative path anchored at project_root."""
        return PathSettings(
            **{
                name: value if value.is_absolute() else project_root / value
                for name, value in self.model_dump().items()
            }
        )


class InstallSettings(BaseModel):
    """Install scheduling and readiness wait behavior."""

    max_workers: int = Field(default=4, ge=1, le=32)
    retries: int = Field(default=0, ge=0, le=5)
    retry_backoff_seconds: float = Field(default=10.0, ge=0)
    verify_timeout_seconds: float = Field(default=60.0, ge=0)
    verify_poll_seconds: float = Field(default=5.0, gt=0)


class ClusterSettings(BaseModel):
    """Target cluster identity and connectivity bounds."""

    name: str | None = None
    resource_group: str | None = None
    request_timeout: Duration = "10s"
    karpenter_crd_retries: int = Field(default=30, ge=0)
    karpenter_crd_poll_seconds: float = Field(default=10.0, ge=0)

    @field_validator("name", "resource_group", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        # ${VAR:-} substitutions produce empty strings
        if isinstance(value, str) and not value.strip():
            return None
        return value


class RBACObject(BaseModel):
    kind: str
    name: str


class DemoSettings(BaseModel):
    """Demo workloads removed by cleanup and redeployed by --reset-demo."""

    namespaces: list[str] = Field(
        default_factory=lambda: ["vulnerable-app", "compliant-app"]
    )
    reset_workload: str = "vulnerable-app"
    reset_namespace: str = "vulnerable-app"
    reset_timeout: Duration = "120s"
    rbac: list[RBACObject] = Field(
        default_factory=lambda: [
            RBACObject(kind="clusterrole", name="vulnerable-app-role"),
            RBACObject(kind="clusterrolebinding", name="vulnerable-app-binding"),
        ]
    )


class ProbeSettings(BaseModel):
    """Admission-control probe parameters."""

    pod_name: str = "test-privileged"
    image: str = "nginx"
    policy_namespace: str = "kyverno"
    blocked_markers: list[str] = Field(
        default_factory=lambda: ["blocked", "denied", "disallow"]
    )


class OrchestratorSettings(BaseModel):
    """Root configuration model."""

    paths: PathSettings = Field(default_factory=PathSettings)
    install: InstallSettings = Field(default_factory=InstallSettings)
    cluster: ClusterSettings = Field(default_factory=ClusterSettings)
    demo: DemoSettings = Field(default_factory=DemoSettings)
    probe: ProbeSettings = Field(default_factory=ProbeSettings)
