"""Shared utilities for CLI commands.

This module provides common utilities used across all command modules,
including console output, confirmation prompts, logging setup and error
handling.
"""

import sys
from collections.abc import Callable
from functools import wraps

import typer
from loguru import logger
from rich.console import Console, ConsoleRenderable
from rich.panel import Panel


class CLIConsole:
    """Rich console wrapper for consistent CLI output."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the CLI console."""
        self.console = console or Console()

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        self.console.print(msg)

    def info(self, msg: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {msg}")

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]❌[/red] {msg}")

    def warn(self, msg: str) -> None:
        self.console.print(f"[yellow]⚠️[/yellow]  {msg}")

    def prompt_token(
        self,
        action: str,
        token: str,
        details: str | None = None,
    ) -> str:
        """Show a warning panel and read a typed confirmation token.

        The caller decides whether the returned text matches; an interrupted
        prompt returns an empty string.

        Args:
            action: Description of the action (e.g., "Destroy infrastructure")
            token: Literal the user must type to proceed
            details: Additional details about what will be affected

        Returns:
            The text the user typed, stripped
        """
        warning_lines = [f"[bold red]⚠️  {action}[/bold red]"]
        if details:
            warning_lines.append(f"\n{details}")
        warning_lines.append("\n[yellow]This cannot be undone.[/yellow]")

        self.console.print(
            Panel(
                "\n".join(warning_lines),
                title="Confirmation Required",
                border_style="red",
            )
        )

        try:
            response = self.console.input(f"\n[bold]Type '{token}' to confirm:[/bold] ")
        except (KeyboardInterrupt, EOFError):
            self.console.print("\n[dim]Cancelled.[/dim]")
            return ""
        return response.strip()

    def handle_error(
        self, message: str, details: str | None = None, exit_code: int = 1
    ) -> None:
        """Handle an error by printing a message and exiting.

        Args:
            message: Error message to display
            details: Optional additional details
            exit_code: Exit code to use
        """
        self.error(f"[bold red]{message}[/bold red]")
        if details:
            self.console.print(Panel(details, title="Details", border_style="red"))
        raise typer.Exit(exit_code)

    def print_header(self, title: str, style: str = "blue") -> None:
        """Print a styled header panel.

        Args:
            title: Header title text
            style: Border style color
        """
        self.console.print(
            Panel.fit(
                f"[bold {style}]{title}[/bold {style}]",
                border_style=style,
            )
        )

    def print_subheader(self, title: str) -> None:
        """Print a subheader.

        Args:
            title: Subheader title text
        """
        self.console.print(f"\n[bold underline]{title}[/bold underline]\n")


def configure_logging(verbose: bool = False) -> None:
    """Route loguru output to stderr: DEBUG when verbose, else WARNING."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Decorator to wrap command functions with standard error handling.

    Catches common exceptions and formats them consistently.

    Args:
        func: The command function to wrap

    Returns:
        Wrapped function with error handling
    """
    from tierstack.cli.deployment.tier_deployer.errors import DeploymentError

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except DeploymentError as e:
            console.handle_error(e.message, e.details)
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled by user.[/dim]")
            raise typer.Exit(130) from None

    return wrapper


# Shared console instance for consistent output
console = CLIConsole()
