"""Declarative workspace layout: sessions, windows and monitor splits.

Key entities:
  - WindowSpec / SessionSpec: ordered session -> window table. The first
    window of a session becomes its initial window.
  - SplitSpec: an extra pane split under an existing window.
  - Layout: everything the reconciler needs, plus the session to attach to.
  - default_layout(): the built-in embedded-engineering workspace.
  - parse_target(): split "session:window[.pane]" into its parts.
"""

from __future__ import annotations

from dataclasses import dataclass
from string import Template
from typing import Any

from .utils import expand_dir

ORIENTATIONS = ("v", "h")


@dataclass(frozen=True)
class WindowSpec:
    """A window to ensure inside a session."""

    name: str
    directory: str
    command: str = ""  # empty -> idle shell


@dataclass(frozen=True)
class SessionSpec:
    """A session and its windows, in creation order."""

    name: str
    windows: tuple[WindowSpec, ...] = ()

    @property
    def window_names(self) -> list[str]:
        return [w.name for w in self.windows]


@dataclass(frozen=True)
class SplitSpec:
    """A split of ``target`` that runs ``command`` in the new pane."""

    target: str  # "session:window" or "session:window.pane"
    directory: str
    orientation: str  # "v" (new pane below) | "h" (new pane to the right)
    command: str = ""

    def __post_init__(self) -> None:
        if self.orientation not in ORIENTATIONS:
            raise ValueError(
                f"Split '{self.target}': orientation must be 'v' or 'h', "
                f"got {self.orientation!r}"
            )


@dataclass(frozen=True)
class Layout:
    sessions: tuple[SessionSpec, ...] = ()
    splits: tuple[SplitSpec, ...] = ()
    attach_session: str = "dev"

    @property
    def session_names(self) -> list[str]:
        return [s.name for s in self.sessions]


def parse_target(target: str) -> tuple[str, str, int | None]:
    """Split a tmux target into (session, window, pane_index).

    >>> parse_target("monitor:sys.1")
    ('monitor', 'sys', 1)
    >>> parse_target("monitor:sys")
    ('monitor', 'sys', None)
    """
    session, sep, rest = target.partition(":")
    if not sep or not session or not rest:
        raise ValueError(f"Invalid target '{target}': expected session:window[.pane]")

    window, dot, pane = rest.rpartition(".")
    if dot and pane.isdigit() and window:
        return session, window, int(pane)
    return session, rest, None


# ---------------------------------------------------------------------------
# Variable substitution
# ---------------------------------------------------------------------------


def substitute(text: str, variables: dict[str, str]) -> str:
    """Replace ``$PROJECT``-style variables; unknown ``$...`` is left alone.

    Shell constructs such as ``$(nproc)`` pass through untouched.
    """
    return Template(text).safe_substitute(variables)


def _window(
    name: str, directory: str, command: str, variables: dict[str, str]
) -> WindowSpec:
    return WindowSpec(
        name=name,
        directory=expand_dir(substitute(directory, variables)),
        command=substitute(command, variables),
    )


def _split(
    target: str, directory: str, orientation: str, command: str, variables: dict[str, str]
) -> SplitSpec:
    return SplitSpec(
        target=target,
        directory=expand_dir(substitute(directory, variables)),
        orientation=orientation,
        command=substitute(command, variables),
    )


# ---------------------------------------------------------------------------
# Built-in layout
# ---------------------------------------------------------------------------

# (session, [(window, directory, command), ...])
_DEFAULT_SESSIONS: list[tuple[str, list[tuple[str, str, str]]]] = [
    (
        "dev",
        [
            ("editor", "$PROJECT", "nvim ."),
            ("build", "$PROJECT", "make -j$(nproc)"),
            ("flash", "$TOOLS", "./flash.sh"),
            ("tests", "$PROJECT/tests", "./run_tests.sh"),
        ],
    ),
    (
        "serial",
        [
            ("minicom-1", "~", "minicom -D $DEVICE_1 -b $BAUD_1"),
            ("minicom-2", "~", "minicom -D $DEVICE_2 -b $BAUD_2"),
        ],
    ),
    (
        "server",
        [
            ("ssh-dev", "~", "ssh $DEV_HOST"),
            ("ssh-prod", "~", "ssh $PROD_HOST"),
            ("scp-push", "$PROJECT", "scp bin/firmware.bin $DEV_HOST:/opt/firmware/"),
        ],
    ),
    (
        "logs",
        [
            ("runtime", "$PROJECT/logs", "tail -f app.log"),
            ("dmesg", "~", "dmesg -w"),
            ("journal", "~", "journalctl -f"),
        ],
    ),
    (
        "notes",
        [
            ("scratch", "$NOTES", "nvim scratch.md"),
            ("wiki", "$NOTES/wiki", "nvim index.md"),
            ("journal", "$NOTES", "nvim $(date +%F).md"),
        ],
    ),
    ("monitor", [("sys", "~", "htop")]),
]

_DEFAULT_SPLITS: list[tuple[str, str, str, str]] = [
    ("monitor:sys", "~", "h", "watch -n1 sensors"),
    ("monitor:sys.1", "~", "v", "dmesg -w"),
]


def default_layout(
    variables: dict[str, str], attach_session: str = "dev"
) -> Layout:
    """Build the built-in workspace with ``variables`` substituted in."""
    sessions = tuple(
        SessionSpec(
            name=name,
            windows=tuple(_window(w, d, c, variables) for w, d, c in windows),
        )
        for name, windows in _DEFAULT_SESSIONS
    )
    splits = tuple(_split(t, d, o, c, variables) for t, d, o, c in _DEFAULT_SPLITS)
    return Layout(sessions=sessions, splits=splits, attach_session=attach_session)


def layout_from_dict(
    raw: dict[str, Any], variables: dict[str, str], attach_session: str = "dev"
) -> Layout:
    """Build a Layout from the ``[[sessions]]`` / ``[[splits]]`` tables of settings.toml."""
    sessions_raw = raw.get("sessions", [])
    if not isinstance(sessions_raw, list) or not sessions_raw:
        raise ValueError("settings.toml must contain at least one [[sessions]] entry.")

    sessions: list[SessionSpec] = []
    seen: set[str] = set()
    for session_raw in sessions_raw:
        if not isinstance(session_raw, dict):
            raise ValueError("Each [[sessions]] entry must be a table.")
        name = session_raw.get("name")
        if not name or not isinstance(name, str):
            raise ValueError("Each [[sessions]] entry must have a 'name' field.")
        if name in seen:
            raise ValueError(f"Session '{name}' is declared more than once.")
        seen.add(name)

        windows_raw = session_raw.get("windows", [])
        if not isinstance(windows_raw, list):
            raise ValueError(f"Session '{name}': 'windows' must be an array of tables.")

        windows: list[WindowSpec] = []
        window_names: set[str] = set()
        for window_raw in windows_raw:
            if not isinstance(window_raw, dict):
                raise ValueError(
                    f"Session '{name}': each window must be a table, got {window_raw!r}."
                )
            window_name = window_raw.get("name")
            if not window_name or not isinstance(window_name, str):
                raise ValueError(f"Session '{name}': every window needs a 'name'.")
            if window_name in window_names:
                raise ValueError(
                    f"Session '{name}': window '{window_name}' is declared twice."
                )
            window_names.add(window_name)
            windows.append(
                _window(
                    window_name,
                    str(window_raw.get("dir", "~")),
                    str(window_raw.get("command", "")),
                    variables,
                )
            )
        if not windows:
            raise ValueError(f"Session '{name}' must declare at least one window.")
        sessions.append(SessionSpec(name=name, windows=tuple(windows)))

    splits_raw = raw.get("splits", [])
    if not isinstance(splits_raw, list):
        raise ValueError("'splits' must be an array of tables ([[splits]]).")

    splits: list[SplitSpec] = []
    for split_raw in splits_raw:
        if not isinstance(split_raw, dict):
            raise ValueError("Each [[splits]] entry must be a table.")
        target = split_raw.get("target")
        if not target or not isinstance(target, str):
            raise ValueError("Each [[splits]] entry must have a 'target' field.")
        parse_target(target)
        splits.append(
            _split(
                target,
                str(split_raw.get("dir", "~")),
                str(split_raw.get("orientation", "v")),
                str(split_raw.get("command", "")),
                variables,
            )
        )

    return Layout(
        sessions=tuple(sessions), splits=tuple(splits), attach_session=attach_session
    )
