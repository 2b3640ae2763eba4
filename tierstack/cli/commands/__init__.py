"""CLI command modules.

- install: install tiers in dependency order
- validate: read-only health report (``quick-validate``)
- cleanup: staged teardown
"""

from .cleanup import cleanup_command
from .install import install_command
from .validate import validate_command

__all__ = ["install_command", "validate_command", "cleanup_command"]
