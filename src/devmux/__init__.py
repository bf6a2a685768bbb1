"""devmux - idempotent tmux workspace bootstrapper.

Declares the sessions of an embedded-engineering workspace (dev, serial
consoles, remote servers, logs, notes, system monitor) and creates whatever
is missing from the running tmux server, then attaches to the dev session.

Package entry point. Exports the version string only; main.py imports the
functional modules.
"""

__version__ = "0.1.0"
