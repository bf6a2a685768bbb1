"""Shared helpers: config directory resolution and path expansion."""

from __future__ import annotations

import os
from pathlib import Path

DEVMUX_DIR_ENV = "DEVMUX_DIR"


def devmux_dir() -> Path:
    """Return the devmux config directory.

    ``$DEVMUX_DIR`` wins; otherwise ``~/.devmux``.
    """
    env_dir = os.environ.get(DEVMUX_DIR_ENV, "")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".devmux"


def expand_dir(directory: str) -> str:
    """Expand a leading ``~`` in a working directory. Existence is not checked."""
    return os.path.expanduser(directory) if directory else str(Path.home())
