"""Install, validate and cleanup orchestration over the tier catalog.

This package coordinates the three top-level workflows:
- TierDeployer: installs selected tiers in ascending order
- QuickValidator: read-only health report
- CleanupOrchestrator: staged, idempotent teardown

All of them share a PrerequisiteChecker gate that raises DeploymentError
before any cluster mutation.
"""

from .cleanup import (
    CleanupOrchestrator,
    CleanupReport,
    CleanupSelection,
    CleanupStep,
    DestroyOutcome,
    DestroyStatus,
    PendingDestroy,
    StepStatus,
)
from .deployer import InstallReport, TierDeployer
from .errors import DeploymentError
from .prerequisites import PrerequisiteChecker, PrerequisiteReport
from .validator import QuickValidator, ValidationReport, ValidationSection

__all__ = [
    "CleanupOrchestrator",
    "CleanupReport",
    "CleanupSelection",
    "CleanupStep",
    "DeploymentError",
    "DestroyOutcome",
    "DestroyStatus",
    "InstallReport",
    "PendingDestroy",
    "PrerequisiteChecker",
    "PrerequisiteReport",
    "QuickValidator",
    "StepStatus",
    "TierDeployer",
    "ValidationReport",
    "ValidationSection",
]
