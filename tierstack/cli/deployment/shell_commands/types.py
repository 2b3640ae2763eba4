"""Data types for shell command results.

CommandResult and PodInfo are re-exported from tierstack.infra.k8s.controller,
their canonical location.
"""

from __future__ import annotations

from dataclasses import dataclass

# Re-export Kubernetes types from canonical location
from tierstack.infra.k8s.controller import CommandResult, PodCounts, PodInfo

__all__ = [
    "CommandResult",
    "PodInfo",
    "PodCounts",
    "AKSCluster",
]


@dataclass
class AKSCluster:
    """Name and resource group of a managed cluster."""

    name: str
    resource_group: str
