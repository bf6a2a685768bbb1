"""Tmux session/window/pane reconciliation via libtmux.

Brings the live tmux server up to a declared Layout by creating only what is
missing:
  - ensure_session: create a detached session with its first window.
  - ensure_window: add a named window to an existing session.
  - ensure_split: split a single-pane window (or continue a split chain).
  - reconcile_session / reconcile: walk a SessionSpec / whole Layout.
  - attach: hand the terminal over to a session (plain tmux CLI).

Nothing is ever killed, renamed or re-sent. Every check is re-queried from
tmux, so a second run is a no-op. Check-then-act is not atomic: two devmux
runs racing on the same server may both create the same window.

Key class: TmuxManager.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field

import libtmux
from libtmux.constants import PaneDirection
from libtmux.exc import LibTmuxException

from .layout import Layout, SessionSpec, parse_target

logger = logging.getLogger(__name__)

_DIRECTIONS = {
    "v": PaneDirection.Below,
    "h": PaneDirection.Right,
}


@dataclass
class ReconcileResult:
    """What a reconcile pass created. Empty lists mean nothing changed."""

    sessions: list[str] = field(default_factory=list)
    windows: list[str] = field(default_factory=list)  # "session:window"
    splits: list[str] = field(default_factory=list)  # split targets

    @property
    def changed(self) -> bool:
        return bool(self.sessions or self.windows or self.splits)


class TmuxManager:
    """Creates missing tmux sessions, windows and panes."""

    def __init__(
        self,
        socket_name: str | None = None,
        server: libtmux.Server | None = None,
    ):
        """Initialize tmux manager.

        Args:
            socket_name: tmux socket (``tmux -L``); None for the default server.
            server: Pre-built server object, mainly for tests.
        """
        self.socket_name = socket_name
        self._server = server

    @property
    def server(self) -> libtmux.Server:
        """libtmux server for ``socket_name``, built on first use."""
        if self._server is None:
            self._server = libtmux.Server(socket_name=self.socket_name)
        return self._server

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def session_exists(self, name: str) -> bool:
        """True if a session called ``name`` exists.

        An unreachable or missing tmux counts as "absent".
        """
        try:
            return bool(self.server.has_session(name))
        except LibTmuxException as e:
            logger.debug("has-session %s failed: %s", name, e)
            return False

    def get_session(self, name: str) -> libtmux.Session | None:
        try:
            for session in self.server.sessions:
                if session.session_name == name:
                    return session
        except LibTmuxException as e:
            logger.debug("list-sessions failed: %s", e)
        return None

    def window_names(self, session_name: str) -> list[str]:
        """Names of the windows in ``session_name`` (empty if it is missing)."""
        session = self.get_session(session_name)
        if session is None:
            return []
        return [w.window_name or "" for w in session.windows]

    def _find_window(
        self, session_name: str, window_name: str
    ) -> libtmux.Window | None:
        session = self.get_session(session_name)
        if session is None:
            return None
        for window in session.windows:
            if window.window_name == window_name:
                return window
        return None

    # ------------------------------------------------------------------
    # Ensure operations
    # ------------------------------------------------------------------

    def ensure_session(
        self, name: str, window_name: str, directory: str, command: str = ""
    ) -> bool:
        """Create session ``name`` with its first window unless it exists.

        An existing session is left alone, whatever its first window is.

        Returns:
            True if the session was created.
        """
        if self.session_exists(name):
            return False

        logger.info("Creating session: %s with window: %s", name, window_name)
        try:
            session = self.server.new_session(
                session_name=name,
                window_name=window_name,
                start_directory=directory,
                attach=False,
            )
            if command:
                pane = session.windows[0].active_pane
                if pane is not None:
                    pane.send_keys(command, enter=True, suppress_history=False)
        except LibTmuxException as e:
            logger.error("Failed to create session %s: %s", name, e)
            return False
        return True

    def ensure_window(
        self, session_name: str, window_name: str, directory: str, command: str = ""
    ) -> bool:
        """Add window ``window_name`` to ``session_name`` unless it exists.

        An existing window's command is never re-sent.

        Returns:
            True if the window was created.
        """
        if window_name in self.window_names(session_name):
            return False

        session = self.get_session(session_name)
        if session is None:
            logger.error(
                "Cannot create window %s:%s: session does not exist",
                session_name,
                window_name,
            )
            return False

        logger.info("Creating window: %s:%s", session_name, window_name)
        try:
            window = session.new_window(
                window_name=window_name,
                start_directory=directory,
                attach=False,
            )
            if command:
                pane = window.active_pane
                if pane is not None:
                    pane.send_keys(command, enter=True, suppress_history=False)
        except LibTmuxException as e:
            logger.error(
                "Failed to create window %s:%s: %s", session_name, window_name, e
            )
            return False
        return True

    def ensure_split(
        self,
        target: str,
        directory: str,
        orientation: str,
        command: str = "",
        expected_panes: int = 1,
    ) -> bool:
        """Split ``target`` and run ``command`` in the new pane.

        ``target`` is ``session:window`` (split the active pane) or
        ``session:window.N`` (split pane N). The target window is selected
        first. The split only happens when the window has exactly
        ``expected_panes`` panes (1 unless continuing a split chain that
        this pass created).
        The split is not verified before ``command`` is sent.

        Returns:
            True if a new pane was created.
        """
        session_name, window_name, pane_index = parse_target(target)
        window = self._find_window(session_name, window_name)
        if window is None:
            logger.error("Cannot split %s: window does not exist", target)
            return False

        try:
            window.select()
            panes = list(window.panes)
            if len(panes) > expected_panes:
                logger.info("Skipping split for %s: already has multiple panes", target)
                return False
            if len(panes) < expected_panes:
                logger.warning(
                    "Skipping split for %s: expected %d panes, found %d",
                    target,
                    expected_panes,
                    len(panes),
                )
                return False

            pane = window.active_pane
            if pane_index is not None:
                pane = next(
                    (p for p in panes if p.pane_index == str(pane_index)), None
                )
            if pane is None:
                logger.error("Cannot split %s: pane not found", target)
                return False

            logger.info("Splitting %s (%s)", target, orientation)
            new_pane = pane.split(
                direction=_DIRECTIONS[orientation],
                start_directory=directory,
            )
            if command:
                new_pane.send_keys(command, enter=True, suppress_history=False)
        except LibTmuxException as e:
            logger.error("Failed to split %s: %s", target, e)
            return False
        return True

    # ------------------------------------------------------------------
    # Reconcile
    # ------------------------------------------------------------------

    def reconcile_session(self, spec: SessionSpec) -> ReconcileResult:
        """Ensure ``spec`` exists: first window via the session, rest as windows."""
        result = ReconcileResult()
        for i, window in enumerate(spec.windows):
            if i == 0:
                if self.ensure_session(
                    spec.name, window.name, window.directory, window.command
                ):
                    result.sessions.append(spec.name)
            elif self.ensure_window(
                spec.name, window.name, window.directory, window.command
            ):
                result.windows.append(f"{spec.name}:{window.name}")
        return result

    def reconcile(self, layout: Layout) -> ReconcileResult:
        """Reconcile every session in order, then apply the splits.

        The first split of a window needs a single-pane window. Each later
        split of the same window only runs if the previous one created its
        pane in this pass, so a window the user already split is left alone.
        """
        result = ReconcileResult()
        for spec in layout.sessions:
            part = self.reconcile_session(spec)
            result.sessions.extend(part.sessions)
            result.windows.extend(part.windows)

        # (session, window) -> panes created this pass, or None once a split failed
        created: dict[tuple[str, str], int | None] = {}
        for split in layout.splits:
            session_name, window_name, _ = parse_target(split.target)
            key = (session_name, window_name)
            if key in created and created[key] is None:
                logger.info(
                    "Skipping split for %s: earlier split of %s:%s was not made",
                    split.target,
                    session_name,
                    window_name,
                )
                continue

            made = created.get(key, 0)
            if self.ensure_split(
                split.target,
                split.directory,
                split.orientation,
                split.command,
                expected_panes=made + 1,
            ):
                created[key] = made + 1
                result.splits.append(split.target)
            else:
                created[key] = None
        return result

    # ------------------------------------------------------------------
    # Attach
    # ------------------------------------------------------------------

    def attach(self, session_name: str) -> int:
        """Attach the terminal to ``session_name`` and return tmux's exit code.

        Inside tmux (``$TMUX`` set) the current client is switched instead,
        since tmux refuses nested attaches.
        """
        cmd = ["tmux"]
        if self.socket_name:
            cmd += ["-L", self.socket_name]
        if os.environ.get("TMUX"):
            cmd += ["switch-client", "-t", session_name]
        else:
            cmd += ["attach", "-t", session_name]

        try:
            return subprocess.run(cmd).returncode
        except FileNotFoundError:
            logger.error("Cannot attach to %s: tmux is not installed", session_name)
            return 127
