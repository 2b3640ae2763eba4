"""Main CLI application module.

This module provides the main entry point for the tierstack CLI.

Commands:
- install: Install tool tiers in dependency order
- quick-validate: Read-only validation report
- cleanup: Remove demo state, optionally tools and infrastructure
"""

import typer

from .commands import cleanup_command, install_command, validate_command

# Create the main CLI application
app = typer.Typer(
    help="Tiered Kubernetes security platform installer",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.command(name="install")(install_command)
app.command(name="quick-validate")(validate_command)
app.command(name="cleanup")(cleanup_command)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
