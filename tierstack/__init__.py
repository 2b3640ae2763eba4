"""tierstack - tiered installer for a Kubernetes security platform stack."""

__version__ = "0.1.0"
