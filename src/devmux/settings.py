"""Settings: reads settings.toml + .env to produce the workspace Settings.

Key entities:
  - Settings: frozen dataclass with paths, devices, hosts and tmux options.
  - load_settings(): parse .env + settings.toml -> Settings. DEVMUX_<KEY>
    environment variables override [global]. A missing
    settings.toml is not an error; built-in defaults are used.
  - render_default_settings(): commented settings.toml written by `devmux init`.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .layout import Layout, default_layout, layout_from_dict
from .utils import devmux_dir, expand_dir

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one devmux run."""

    # Paths
    project_dir: str = "~/projects/firmware"
    notes_dir: str = "~/notes"
    config_dir: Path = field(default_factory=lambda: devmux_dir())

    # Serial consoles
    device_1: str = "/dev/ttyUSB0"
    device_2: str = "/dev/ttyUSB1"
    baud_1: str = "115200"
    baud_2: str = "115200"

    # Remote hosts
    dev_host: str = "user@192.168.1.100"
    prod_host: str = "user@192.168.1.200"

    # Tmux
    attach_session: str = "dev"
    socket_name: str | None = None  # None -> default tmux server

    # Raw [[sessions]] / [[splits]] tables; empty -> built-in layout
    custom_layout: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def tools_dir(self) -> str:
        return f"{self.project_dir.rstrip('/')}/tools"

    @property
    def settings_file(self) -> Path:
        return self.config_dir / "settings.toml"

    def variables(self) -> dict[str, str]:
        """Substitution variables for window/split directories and commands."""
        return {
            "HOME": str(Path.home()),
            "PROJECT": expand_dir(self.project_dir),
            "TOOLS": expand_dir(self.tools_dir),
            "NOTES": expand_dir(self.notes_dir),
            "DEVICE_1": self.device_1,
            "DEVICE_2": self.device_2,
            "BAUD_1": self.baud_1,
            "BAUD_2": self.baud_2,
            "DEV_HOST": self.dev_host,
            "PROD_HOST": self.prod_host,
        }

    def layout(self) -> Layout:
        """Return the layout to reconcile: custom tables if given, else built-in."""
        if "sessions" in self.custom_layout:
            return layout_from_dict(
                self.custom_layout, self.variables(), self.attach_session
            )
        return default_layout(self.variables(), self.attach_session)


# ---------------------------------------------------------------------------
# load_settings
# ---------------------------------------------------------------------------

# DEVMUX_PROJECT_DIR, DEVMUX_SOCKET_NAME, ... override [global]
ENV_PREFIX = "DEVMUX_"

_STR_KEYS = (
    "project_dir",
    "notes_dir",
    "device_1",
    "device_2",
    "baud_1",
    "baud_2",
    "dev_host",
    "prod_host",
    "attach_session",
)


def load_settings(config_dir: Path | None = None) -> Settings:
    """Read .env + settings.toml and return Settings.

    Precedence per key: ``DEVMUX_<KEY>`` environment variable (including
    values loaded from .env) > ``[global]`` in settings.toml > default.

    Args:
        config_dir: Override for the base config directory.
                    Defaults to ``devmux_dir()``.

    Returns:
        Settings with defaults for every key neither source sets.

    Raises:
        ValueError: settings.toml is not valid TOML or is badly shaped.
    """
    if config_dir is None:
        config_dir = devmux_dir()

    # Load .env files (local cwd first, then config_dir)
    local_env = Path(".env")
    global_env = config_dir / ".env"
    if local_env.is_file():
        load_dotenv(local_env)
    if global_env.is_file():
        load_dotenv(global_env)

    raw = _read_toml(config_dir / "settings.toml")

    global_section = raw.get("global", {})
    if not isinstance(global_section, dict):
        raise ValueError("settings.toml: [global] must be a table.")

    kwargs: dict[str, Any] = {}
    for key in (*_STR_KEYS, "socket_name"):
        env_value = os.getenv(f"{ENV_PREFIX}{key.upper()}", "")
        if env_value:
            kwargs[key] = env_value
        elif key in global_section and global_section[key] != "":
            kwargs[key] = str(global_section[key])

    custom_layout: dict[str, Any] = {}
    for key in ("sessions", "splits"):
        if key not in raw:
            continue
        if not isinstance(raw[key], list):
            raise ValueError(
                f"settings.toml: '{key}' must be an array of tables ([[{key}]])."
            )
        custom_layout[key] = raw[key]
    if "splits" in custom_layout and "sessions" not in custom_layout:
        raise ValueError("[[splits]] requires [[sessions]] to be declared as well.")

    settings = Settings(config_dir=config_dir, custom_layout=custom_layout, **kwargs)
    # Surface layout errors at load time rather than mid-reconcile
    settings.layout()
    return settings


def _read_toml(toml_path: Path) -> dict[str, Any]:
    """Parse settings.toml; a missing file reads as empty."""
    if not toml_path.is_file():
        logger.debug("No settings file at %s, using defaults", toml_path)
        return {}
    try:
        with open(toml_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {toml_path}: {e}") from e


def render_default_settings() -> str:
    """Return a commented settings.toml listing every key with its default."""
    d = Settings()
    return f"""\
# devmux settings
# Unset keys fall back to the defaults shown here.
# DEVMUX_<KEY> environment variables (or .env entries) override [global],
# e.g. DEVMUX_PROJECT_DIR=/work/fw or DEVMUX_SOCKET_NAME=work.

[global]
project_dir = "{d.project_dir}"
notes_dir = "{d.notes_dir}"

# Serial consoles
device_1 = "{d.device_1}"
device_2 = "{d.device_2}"
baud_1 = "{d.baud_1}"
baud_2 = "{d.baud_2}"

# Remote hosts
dev_host = "{d.dev_host}"
prod_host = "{d.prod_host}"

# Session to attach to after reconciling
attach_session = "{d.attach_session}"
# socket_name = "work"           # tmux -L socket; default server if unset

# Declaring any [[sessions]] replaces the built-in layout.
# Directories and commands may use $PROJECT, $TOOLS, $NOTES, $HOME,
# $DEVICE_1, $DEVICE_2, $BAUD_1, $BAUD_2, $DEV_HOST and $PROD_HOST.
#
# [[sessions]]
# name = "dev"
# windows = [
#   {{ name = "editor", dir = "$PROJECT", command = "nvim ." }},
#   {{ name = "build", dir = "$PROJECT", command = "make -j$(nproc)" }},
# ]
#
# [[sessions]]
# name = "monitor"
# windows = [{{ name = "sys", dir = "~", command = "htop" }}]
#
# [[splits]]
# target = "monitor:sys"
# dir = "~"
# orientation = "h"              # "v" below, "h" to the right
# command = "watch -n1 sensors"
"""
