"""Terraform command abstractions.

The orchestrator only reads outputs of, and optionally destroys, the
infrastructure provisioned by the setup workflow.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from tierstack.infra.constants import DEFAULT_CONSTANTS, DeploymentConstants

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class TerraformCommands:
    """Terraform-related shell commands."""

    def __init__(
        self,
        runner: CommandRunner,
        constants: DeploymentConstants = DEFAULT_CONSTANTS,
    ) -> None:
        """Initialize Terraform commands.

        Args:
            runner: Command runner for executing shell commands
            constants: Source of the output and destroy process timeouts
        """
        self._runner = runner
        self._output_timeout = constants.TERRAFORM_OUTPUT_TIMEOUT_SECONDS
        self._destroy_timeout = constants.TERRAFORM_DESTROY_TIMEOUT_SECONDS

    def output_raw(self, name: str, working_dir: Path) -> str | None:
        """Read a single output value, None if unavailable.

        Args:
            name: Output name (e.g., "key_vault_uri")
            working_dir: Terraform root module directory

        Returns:
            The raw output value, or None when Terraform fails or prints nothing
        """
        result = self._runner.run(
            ["terraform", "output", "-raw", name],
            cwd=working_dir,
            timeout=self._output_timeout,
        )
        value = result.stdout.strip()
        if not result.success or not value:
            return None
        return value

    def destroy(self, working_dir: Path, *, auto_approve: bool = True) -> CommandResult:
        """Destroy every resource in the Terraform state.

        Args:
            working_dir: Terraform root module directory
            auto_approve: Skip Terraform's own interactive approval

        Returns:
            CommandResult with destroy status
        """
        cmd = ["terraform", "destroy"]
        if auto_approve:
            cmd.append("-auto-approve")
        return self._runner.run(
            cmd, cwd=working_dir, capture_output=False, timeout=self._destroy_timeout
        )
