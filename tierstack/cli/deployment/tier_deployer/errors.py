"""Fatal orchestrator errors."""


class DeploymentError(Exception):
    """Raised when a pre-flight check or configuration step fails.

    Per-tool failures are never raised; they are reported as outcomes.
    """

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)
