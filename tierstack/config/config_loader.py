"""Orchestrator configuration loading."""

from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from tierstack.config.config_utils import substitute_env_vars
from tierstack.config.settings import OrchestratorSettings

CONFIG_FILENAME = "config.yaml"


def load_config(
    project_root: Path,
    file_path: Path | None = None,
) -> OrchestratorSettings:
    """
    Load orchestrator settings from a YAML file with environment substitution.

    Args:
        project_root: Project root; ``.env`` and the default config live here
            and relative paths in the result are resolved against it.
        file_path: Explicit config path. When omitted, ``config.yaml`` in the
            project root is used if present, otherwise built-in defaults.

    Returns:
        OrchestratorSettings with paths resolved against project_root

    Raises:
        FileNotFoundError: If an explicitly requested file doesn't exist
        ValueError: If substitution, YAML parsing or validation fails,
                   or the YAML has no top-level 'config' key

    YAML Structure Requirements:
        The YAML file must have a top-level 'config:' key containing configuration data.
    """
    # Load .env so ${AKS_CLUSTER_NAME}-style placeholders resolve
    load_dotenv(project_root / ".env", override=False)

    explicit = file_path is not None
    path = file_path if file_path is not None else project_root / CONFIG_FILENAME

    if not path.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {path}")
        logger.debug(f"No {CONFIG_FILENAME} at {path}, using built-in defaults")
        return _finalize(OrchestratorSettings(), project_root)

    logger.info(f"Loading configuration from {path}")
    content = substitute_env_vars(path.read_text(encoding="utf-8"))

    try:
        loaded: dict[str, Any] | None = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    if not isinstance(loaded, dict) or "config" not in loaded:
        raise ValueError("Invalid YAML structure: missing 'config' key")

    try:
        settings = OrchestratorSettings.model_validate(loaded["config"] or {})
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {path}:\n{e}") from e

    return _finalize(settings, project_root)


def _finalize(settings: OrchestratorSettings, project_root: Path) -> OrchestratorSettings:
    return settings.model_copy(update={"paths": settings.paths.resolve(project_root)})
