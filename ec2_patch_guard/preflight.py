"""Checks that must pass before the workflow touches the instance."""
from __future__ import annotations

import os
import shutil
from typing import Iterable, List

from .errors import DependencyMissingError, PrivilegeError


def require_root() -> None:
    """Raise :class:`PrivilegeError` unless the effective user is root."""

    if os.geteuid() != 0:
        raise PrivilegeError(
            "This tool must be run as root. Please use sudo to run it."
        )


def require_executables(commands: Iterable[str]) -> None:
    """Raise :class:`DependencyMissingError` naming every command not on ``PATH``."""

    missing: List[str] = [command for command in commands if shutil.which(command) is None]
    if missing:
        raise DependencyMissingError(
            f"Required command(s) not installed: {', '.join(missing)}"
        )


__all__ = ["require_executables", "require_root"]
