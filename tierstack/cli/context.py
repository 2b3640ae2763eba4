"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tierstack.cli.deployment.shell_commands import ShellCommands
from tierstack.cli.deployment.tier_deployer import DeploymentError
from tierstack.cli.deployment.tiers import TierContext
from tierstack.cli.shared.console import CLIConsole, console
from tierstack.config import OrchestratorSettings, load_config
from tierstack.infra.constants import DeploymentConstants, DeploymentPaths
from tierstack.utils.paths import get_project_root


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    project_root: Path
    settings: OrchestratorSettings
    commands: ShellCommands
    constants: DeploymentConstants
    paths: DeploymentPaths

    def tier_context(self) -> TierContext:
        return TierContext(
            commands=self.commands,
            console=self.console,
            settings=self.settings,
            paths=self.paths,
            constants=self.constants,
        )


def build_cli_context(config_path: Path | None = None) -> CLIContext:
    """Build a fresh CLIContext.

    Raises:
        DeploymentError: If the configuration is missing or invalid
    """
    project_root = get_project_root()
    try:
        settings = load_config(project_root, config_path)
    except (FileNotFoundError, ValueError) as e:
        raise DeploymentError("Invalid configuration", details=str(e)) from e

    constants = DeploymentConstants()
    return CLIContext(
        console=console,
        project_root=project_root,
        settings=settings,
        commands=ShellCommands(project_root, constants=constants),
        constants=constants,
        paths=DeploymentPaths(settings.paths),
    )
