"""Tier catalog.

Tiers install in ascending order and clean up in descending order: each
tier assumes the CRDs, webhooks and scrape targets of the tiers below it.
"""

from .base import (
    FindingStatus,
    HelmRepo,
    InstallOutcome,
    InstallStatus,
    Tier,
    TierContext,
    TierReport,
    ToolDescriptor,
    ValidationFinding,
)
from .scheduler import TierScheduler, build_chains
from .tier1_security import SecurityCoreTier
from .tier2_observability import ObservabilityTier
from .tier3_platform import PlatformTier
from .tier4_aks_managed import AKSManagedTier

TIER_CLASSES: tuple[type[Tier], ...] = (
    SecurityCoreTier,
    ObservabilityTier,
    PlatformTier,
    AKSManagedTier,
)

ALL_TIERS = tuple(cls.number for cls in TIER_CLASSES)


def parse_tier_selector(value: str) -> list[int]:
    """Parse ``all`` or a comma-separated tier list into sorted tier numbers.

    Raises:
        ValueError: On an empty, non-numeric or unknown tier
    """
    value = value.strip().lower()
    if value == "all":
        return list(ALL_TIERS)

    tiers: set[int] = set()
    for part in value.split(","):
        part = part.strip()
        if not part.isdigit() or int(part) not in ALL_TIERS:
            raise ValueError(
                f"Invalid tier {part!r}: expected 'all' or a comma-separated "
                f"list of {', '.join(map(str, ALL_TIERS))}"
            )
        tiers.add(int(part))
    return sorted(tiers)


def build_tiers(context: TierContext, numbers: list[int] | None = None) -> list[Tier]:
    """Instantiate the selected tiers (all by default) in ascending order."""
    wanted = set(numbers or ALL_TIERS)
    return [cls(context) for cls in TIER_CLASSES if cls.number in wanted]


__all__ = [
    "ALL_TIERS",
    "TIER_CLASSES",
    "AKSManagedTier",
    "FindingStatus",
    "HelmRepo",
    "InstallOutcome",
    "InstallStatus",
    "ObservabilityTier",
    "PlatformTier",
    "SecurityCoreTier",
    "Tier",
    "TierContext",
    "TierReport",
    "TierScheduler",
    "ToolDescriptor",
    "ValidationFinding",
    "build_chains",
    "build_tiers",
    "parse_tier_selector",
]
