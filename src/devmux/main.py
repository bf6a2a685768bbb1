"""Application entry point: CLI dispatcher and workspace bootstrap.

Handles three execution modes:
  1. `devmux init` writes a commented default settings.toml to the config dir.
  2. `devmux up` reconciles the tmux workspace and exits without attaching.
  3. Default: reconciles the workspace, then attaches to the configured
     session (`dev` unless overridden). The exit code is tmux's.
"""

import logging
import shutil
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def _init(config_dir: Path) -> int:
    """Write a default settings.toml unless one exists."""
    from .settings import render_default_settings

    toml_path = config_dir / "settings.toml"
    if toml_path.exists():
        print(f"{toml_path} already exists, leaving it untouched.")
        return 1

    config_dir.mkdir(parents=True, exist_ok=True)
    toml_path.write_text(render_default_settings())
    print(f"Settings written to {toml_path}")
    return 0


def _setup_logging() -> None:
    logging.basicConfig(
        format="[%(name)s] %(levelname)s %(message)s",
        level=logging.WARNING,
    )
    logging.getLogger("devmux").setLevel(logging.INFO)


def run(attach: bool = True, config_dir: Path | None = None) -> int:
    """Reconcile the workspace and optionally attach. Returns an exit code."""
    from .settings import load_settings
    from .tmux_manager import TmuxManager

    try:
        settings = load_settings(config_dir=config_dir)
    except ValueError as e:
        print(f"Error: {e}\n")
        print("Check your settings.toml configuration.")
        return 1

    if not shutil.which("tmux"):
        logger.warning("tmux not found on PATH; every step below will fail")

    layout = settings.layout()
    manager = TmuxManager(socket_name=settings.socket_name)
    result = manager.reconcile(layout)
    if not result.changed:
        logger.info("Workspace already up to date")

    if not attach:
        return 0

    logger.info(
        "All sessions created. Attaching to '%s'.", layout.attach_session
    )
    return manager.attach(layout.attach_session)


def main() -> None:
    """Main entry point."""
    from .utils import devmux_dir

    command = sys.argv[1] if len(sys.argv) > 1 else ""

    if command == "init":
        sys.exit(_init(devmux_dir()))

    if command not in ("", "up"):
        print(f"Unknown command: {command}")
        print("Usage: devmux [up | init]")
        sys.exit(2)

    _setup_logging()
    sys.exit(run(attach=command != "up"))


if __name__ == "__main__":
    main()
