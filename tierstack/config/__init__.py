"""Orchestrator configuration (config.yaml + environment)."""

from .config_loader import load_config
from .settings import (
    ClusterSettings,
    DemoSettings,
    InstallSettings,
    OrchestratorSettings,
    PathSettings,
    ProbeSettings,
    RBACObject,
)

__all__ = [
    "load_config",
    "OrchestratorSettings",
    "PathSettings",
    "InstallSettings",
    "ClusterSettings",
    "DemoSettings",
    "ProbeSettings",
    "RBACObject",
]
