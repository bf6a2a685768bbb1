"""In-memory stand-ins for libtmux Server/Session/Window/Pane.

Only the attributes and methods TmuxManager touches are modelled. Every
send_keys call is recorded so tests can assert nothing was re-sent.
"""

from __future__ import annotations

import pytest
from libtmux.exc import LibTmuxException


class FakePane:
    def __init__(self, window: "FakeWindow", index: int, start_directory: str):
        self.window = window
        self.pane_index = str(index)
        self.start_directory = start_directory
        self.sent: list[str] = []

    def send_keys(self, cmd: str, enter: bool = True, suppress_history=None) -> None:
        self.window.session.server.check()
        self.sent.append(cmd + ("\n" if enter else ""))

    def split(self, direction=None, start_directory=None, **kwargs) -> "FakePane":
        self.window.session.server.check()
        pane = FakePane(self.window, len(self.window.panes), start_directory or "")
        pane.direction = direction
        self.window.panes.append(pane)
        return pane


class FakeWindow:
    def __init__(self, session: "FakeSession", name: str, start_directory: str):
        self.session = session
        self.window_name = name
        self.panes = [FakePane(self, 0, start_directory)]
        self.select_count = 0

    @property
    def active_pane(self) -> FakePane:
        return self.panes[0]

    def select(self) -> "FakeWindow":
        self.session.server.check()
        self.select_count += 1
        return self


class FakeSession:
    def __init__(self, server: "FakeServer", name: str):
        self.server = server
        self.session_name = name
        self.windows: list[FakeWindow] = []

    def new_window(self, window_name=None, start_directory=None, attach=False):
        self.server.check()
        window = FakeWindow(self, window_name, start_directory or "")
        self.windows.append(window)
        return window


class FakeServer:
    def __init__(self):
        self._sessions: list[FakeSession] = []
        self.broken = False

    def check(self) -> None:
        if self.broken:
            raise LibTmuxException("no server running on /tmp/tmux-1000/default")

    @property
    def sessions(self) -> list[FakeSession]:
        self.check()
        return list(self._sessions)

    def has_session(self, target_session: str, exact: bool = True) -> bool:
        self.check()
        return any(s.session_name == target_session for s in self._sessions)

    def new_session(
        self, session_name=None, window_name=None, start_directory=None, attach=False
    ) -> FakeSession:
        self.check()
        session = FakeSession(self, session_name)
        session.new_window(window_name=window_name, start_directory=start_directory)
        self._sessions.append(session)
        return session

    # --- test helpers ---

    def session(self, name: str) -> FakeSession:
        return next(s for s in self._sessions if s.session_name == name)

    def window(self, session: str, name: str) -> FakeWindow:
        return next(w for w in self.session(session).windows if w.window_name == name)

    def all_sent(self) -> list[str]:
        return [
            cmd
            for s in self._sessions
            for w in s.windows
            for p in w.panes
            for cmd in p.sent
        ]

    def snapshot(self) -> dict[str, dict[str, int]]:
        """session -> window -> pane count."""
        return {
            s.session_name: {w.window_name: len(w.panes) for w in s.windows}
            for s in self._sessions
        }


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()
