"""Tier 1: Security Core.

Install order:
    Falco -> Falcosidekick -> Falco Talon   (chain, namespace falco)
    Kyverno, Trivy Operator, Kubescape      (independent)
"""

from __future__ import annotations

from .base import FindingStatus, HelmRepo, Tier, ToolDescriptor, ValidationFinding

FALCO = ToolDescriptor(
    name="Falco",
    release="falco",
    namespace="falco",
    chart="falcosecurity/falco",
    values_file="falco/values.yaml",
    label_selector="app.kubernetes.io/name=falco",
)
FALCOSIDEKICK = ToolDescriptor(
    name="Falcosidekick",
    release="falcosidekick",
    namespace="falco",
    chart="falcosecurity/falcosidekick",
    values_file="falcosidekick/values.yaml",
    timeout="3m",
    label_selector="app.kubernetes.io/name=falcosidekick",
    depends_on="Falco",
    required=False,
)
FALCO_TALON = ToolDescriptor(
    name="Falco Talon",
    release="falco-talon",
    namespace="falco",
    chart="falcosecurity/falco-talon",
    values_file="falco-talon/values.yaml",
    timeout="3m",
    label_selector="app.kubernetes.io/name=falco-talon",
    depends_on="Falcosidekick",
    required=False,
)
KYVERNO = ToolDescriptor(
    name="Kyverno",
    release="kyverno",
    namespace="kyverno",
    chart="kyverno/kyverno",
    values_file="kyverno/values.yaml",
)
TRIVY = ToolDescriptor(
    name="Trivy Operator",
    release="trivy-operator",
    namespace="trivy-system",
    chart="aqua/trivy-operator",
    values_file="trivy/values.yaml",
)
KUBESCAPE = ToolDescriptor(
    name="Kubescape",
    release="kubescape",
    namespace="kubescape",
    chart="kubescape/kubescape-operator",
    values_file="kubescape/values.yaml",
    required=False,
)


class SecurityCoreTier(Tier):
    """Runtime detection, admission policy, and scanning."""

    number = 1
    title = "Security Core"
    repos = (
        HelmRepo("falcosecurity", "https://falcosecurity.github.io/charts"),
        HelmRepo("kyverno", "https://kyverno.github.io/kyverno/"),
        HelmRepo("aqua", "https://aquasecurity.github.io/helm-charts/"),
        HelmRepo("kubescape", "https://kubescape.github.io/helm-charts/"),
    )
    tools = (FALCO, FALCOSIDEKICK, FALCO_TALON, KYVERNO, TRIVY, KUBESCAPE)

    def extra_findings(self) -> list[ValidationFinding]:
        kubectl = self.commands.kubectl
        running = kubectl.count_pods(FALCO.namespace, FALCO.selector).running
        if running == 0:
            return []

        nodes = kubectl.count_nodes()
        status = FindingStatus.OK if running >= nodes else FindingStatus.WARN
        return [
            ValidationFinding("Falco coverage", status, f"{running}/{nodes} nodes covered")
        ]
