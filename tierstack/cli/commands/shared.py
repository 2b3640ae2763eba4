"""Options and setup shared by every command."""

from pathlib import Path
from typing import Annotated

import typer

from tierstack.cli.context import CLIContext, build_cli_context
from tierstack.cli.shared.console import configure_logging

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to config.yaml (default: config.yaml in the project root)",
        dir_okay=False,
    ),
]

VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Log every external command to stderr",
    ),
]


def prepare(config: Path | None, verbose: bool) -> CLIContext:
    """Configure logging and build the command context."""
    configure_logging(verbose)
    return build_cli_context(config)
