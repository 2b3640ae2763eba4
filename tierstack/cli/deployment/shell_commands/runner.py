"""Command runner for executing shell commands.

This module provides the base command execution functionality used by
all specialized command modules.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from tierstack.infra.k8s.utils import TIMEOUT_RETURNCODE

from .types import CommandResult


class CommandRunner:
    """Low-level command executor with consistent result handling.

    A command that cannot be started or that exceeds its timeout is
    reported as a failed CommandResult rather than an exception, so
    callers can record it as an outcome and move on.

    All specialized command modules (Helm, kubectl, Terraform, az) use
    this runner for actual command execution.
    """

    def __init__(self, project_root: Path) -> None:
        """Initialize the command runner.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
        """
        self.project_root = project_root

    def which(self, binary: str) -> str | None:
        """Resolve an executable on PATH."""
        return shutil.which(binary)

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        capture_output: bool = True,
        timeout: float | None = None,
        input_data: str | None = None,
    ) -> CommandResult:
        """Execute a shell command and return structured result.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to project_root)
            capture_output: Whether to capture stdout/stderr
            timeout: Seconds before the process is killed
            input_data: Optional input to send to stdin

        Returns:
            CommandResult with success status, output, and return code
        """
        argv = list(cmd)
        logger.debug(f"Running: {' '.join(argv)}")

        try:
            result = subprocess.run(
                argv,
                cwd=cwd or self.project_root,
                capture_output=capture_output,
                text=True,
                timeout=timeout,
                input=input_data,
            )
        except subprocess.TimeoutExpired:
            logger.debug(f"Timed out after {timeout}s: {argv[0]}")
            return CommandResult(
                success=False,
                stderr=f"{argv[0]} timed out after {timeout}s",
                returncode=TIMEOUT_RETURNCODE,
            )
        except FileNotFoundError:
            return CommandResult(
                success=False,
                stderr=f"{argv[0]}: command not found",
                returncode=127,
            )

        logger.debug(f"Exit {result.returncode}: {argv[0]}")
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )
