from unittest.mock import MagicMock

import pytest
import typer

from tierstack.cli.deployment.tier_deployer import DeploymentError
from tierstack.cli.shared.console import CLIConsole, with_error_handling


def test_with_error_handling_handles_deployment_error():
    @with_error_handling
    def _command() -> None:
        raise DeploymentError("Boom", details="extra")

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 1


def test_with_error_handling_handles_keyboard_interrupt():
    @with_error_handling
    def _command() -> None:
        raise KeyboardInterrupt

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 130


def test_with_error_handling_passes_exit_through():
    @with_error_handling
    def _command() -> None:
        raise typer.Exit(3)

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 3


def test_prompt_token_returns_stripped_input():
    rich_console = MagicMock()
    rich_console.input.return_value = "  destroy \n"

    typed = CLIConsole(rich_console).prompt_token("Destroy infrastructure", "destroy")

    assert typed == "destroy"
    assert "Type 'destroy' to confirm" in rich_console.input.call_args.args[0]


@pytest.mark.parametrize("interrupt", [KeyboardInterrupt, EOFError])
def test_prompt_token_interrupted(interrupt):
    rich_console = MagicMock()
    rich_console.input.side_effect = interrupt

    assert CLIConsole(rich_console).prompt_token("Destroy infrastructure", "destroy") == ""
