import os
from pathlib import Path

# Files that mark the root of a deployment kit checkout
ROOT_MARKERS = ("config.yaml", "pyproject.toml")


def get_project_root(start: Path | None = None) -> Path:
    """Get the project root directory.

    TIERSTACK_PROJECT_ROOT wins when set. Otherwise walks up from ``start``
    (the working directory by default) to the first directory holding
    config.yaml or pyproject.toml.

    Returns:
        Path to the project root directory
    """
    override = os.environ.get("TIERSTACK_PROJECT_ROOT")
    if override:
        return Path(override).resolve()

    current = (start or Path.cwd()).resolve()

    # Walk up the directory tree looking for a root marker
    for parent in [current, *current.parents]:
        if any((parent / marker).exists() for marker in ROOT_MARKERS):
            return parent

    # Fallback to the starting directory itself
    return current
