"""Tier 3: Platform Services (service mesh, composition, registry)."""

from __future__ import annotations

from .base import HelmRepo, Tier, ToolDescriptor

ISTIO_BASE = ToolDescriptor(
    name="Istio Base",
    release="istio-base",
    namespace="istio-system",
    chart="istio/base",
    tier=3,
    required=False,
    verify_pods=False,
)
ISTIOD = ToolDescriptor(
    name="Istiod",
    release="istiod",
    namespace="istio-system",
    chart="istio/istiod",
    values_file="istio/values.yaml",
    tier=3,
    label_selector="app=istiod",
    depends_on="Istio Base",
    required=False,
)
CROSSPLANE = ToolDescriptor(
    name="Crossplane",
    release="crossplane",
    namespace="crossplane-system",
    chart="crossplane-stable/crossplane",
    values_file="crossplane/values.yaml",
    tier=3,
    required=False,
)
HARBOR = ToolDescriptor(
    name="Harbor",
    release="harbor",
    namespace="harbor",
    chart="harbor/harbor",
    values_file="harbor/values.yaml",
    tier=3,
    timeout="10m",
    label_selector="release=harbor",
    required=False,
)

CROSSPLANE_PROVIDERS = "providers.pkg.crossplane.io"


class PlatformTier(Tier):
    number = 3
    title = "Platform Services"
    repos = (
        HelmRepo("istio", "https://istio-release.storage.googleapis.com/charts"),
        HelmRepo("crossplane-stable", "https://charts.crossplane.io/stable"),
        HelmRepo("harbor", "https://helm.goharbor.io"),
    )
    tools = (ISTIO_BASE, ISTIOD, CROSSPLANE, HARBOR)

    def pre_cleanup(self) -> None:
        if not self.commands.kubectl.crd_exists(CROSSPLANE_PROVIDERS):
            return
        # Providers hold finalizers that block the core uninstall
        result = self.commands.kubectl.delete_all(CROSSPLANE_PROVIDERS)
        if not result.success:
            self.console.warn("Could not delete Crossplane providers")
