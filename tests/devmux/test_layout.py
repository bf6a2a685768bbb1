"""Tests for layout.py: specs, target parsing, substitution, layout tables."""

from pathlib import Path

import pytest

from devmux.layout import (
    SplitSpec,
    default_layout,
    layout_from_dict,
    parse_target,
    substitute,
)

VARS = {
    "HOME": "/home/eng",
    "PROJECT": "/home/eng/projects/firmware",
    "TOOLS": "/home/eng/projects/firmware/tools",
    "NOTES": "/home/eng/notes",
    "DEVICE_1": "/dev/ttyUSB0",
    "DEVICE_2": "/dev/ttyUSB1",
    "BAUD_1": "115200",
    "BAUD_2": "57600",
    "DEV_HOST": "user@192.168.1.100",
    "PROD_HOST": "user@192.168.1.200",
}


class TestParseTarget:
    def test_window_target(self):
        assert parse_target("monitor:sys") == ("monitor", "sys", None)

    def test_pane_target(self):
        assert parse_target("monitor:sys.1") == ("monitor", "sys", 1)

    def test_dotted_window_name_without_index(self):
        assert parse_target("dev:v1.x") == ("dev", "v1.x", None)

    @pytest.mark.parametrize("target", ["monitor", ":sys", "monitor:"])
    def test_invalid(self, target: str):
        with pytest.raises(ValueError):
            parse_target(target)


class TestSubstitute:
    def test_replaces_known_variables(self):
        assert substitute("minicom -D $DEVICE_1 -b $BAUD_1", VARS) == (
            "minicom -D /dev/ttyUSB0 -b 115200"
        )

    def test_leaves_shell_syntax_alone(self):
        assert substitute("make -j$(nproc)", VARS) == "make -j$(nproc)"
        assert substitute("nvim $(date +%F).md", VARS) == "nvim $(date +%F).md"

    def test_unknown_variable_untouched(self):
        assert substitute("echo $EDITOR", VARS) == "echo $EDITOR"


class TestSplitSpec:
    def test_rejects_unknown_orientation(self):
        with pytest.raises(ValueError, match="orientation"):
            SplitSpec(target="monitor:sys", directory="~", orientation="x")


class TestDefaultLayout:
    def test_sessions_in_order(self):
        layout = default_layout(VARS)
        assert layout.session_names == [
            "dev",
            "serial",
            "server",
            "logs",
            "notes",
            "monitor",
        ]
        assert layout.attach_session == "dev"

    def test_dev_windows_and_first_window(self):
        dev = default_layout(VARS).sessions[0]
        assert dev.window_names == ["editor", "build", "flash", "tests"]
        editor, build, flash, tests = dev.windows
        assert editor.directory == "/home/eng/projects/firmware"
        assert editor.command == "nvim ."
        assert build.command == "make -j$(nproc)"
        assert flash.directory == "/home/eng/projects/firmware/tools"
        assert tests.directory == "/home/eng/projects/firmware/tests"

    def test_devices_and_hosts_substituted(self):
        layout = default_layout(VARS)
        serial = layout.sessions[1]
        assert serial.windows[1].command == "minicom -D /dev/ttyUSB1 -b 57600"
        server = layout.sessions[2]
        assert server.windows[2].command == (
            "scp bin/firmware.bin user@192.168.1.100:/opt/firmware/"
        )

    def test_home_shorthand_expanded(self):
        serial = default_layout(VARS).sessions[1]
        assert serial.windows[0].directory == str(Path.home())

    def test_monitor_splits(self):
        layout = default_layout(VARS)
        assert [(s.target, s.orientation, s.command) for s in layout.splits] == [
            ("monitor:sys", "h", "watch -n1 sensors"),
            ("monitor:sys.1", "v", "dmesg -w"),
        ]

    def test_window_names_unique_per_session(self):
        for session in default_layout(VARS).sessions:
            assert len(set(session.window_names)) == len(session.window_names)


class TestLayoutFromDict:
    def test_builds_sessions_and_splits(self):
        raw = {
            "sessions": [
                {
                    "name": "work",
                    "windows": [
                        {"name": "edit", "dir": "$PROJECT", "command": "nvim"},
                        {"name": "shell"},
                    ],
                }
            ],
            "splits": [
                {"target": "work:edit", "orientation": "h", "command": "htop"}
            ],
        }
        layout = layout_from_dict(raw, VARS, attach_session="work")
        assert layout.session_names == ["work"]
        edit, shell = layout.sessions[0].windows
        assert edit.directory == "/home/eng/projects/firmware"
        assert shell.command == ""
        assert shell.directory == str(Path.home())
        assert layout.splits[0].orientation == "h"
        assert layout.attach_session == "work"

    def test_session_without_name(self):
        with pytest.raises(ValueError, match="name"):
            layout_from_dict({"sessions": [{"windows": [{"name": "a"}]}]}, VARS)

    def test_duplicate_session(self):
        raw = {
            "sessions": [
                {"name": "a", "windows": [{"name": "w"}]},
                {"name": "a", "windows": [{"name": "w"}]},
            ]
        }
        with pytest.raises(ValueError, match="more than once"):
            layout_from_dict(raw, VARS)

    def test_duplicate_window(self):
        raw = {"sessions": [{"name": "a", "windows": [{"name": "w"}, {"name": "w"}]}]}
        with pytest.raises(ValueError, match="declared twice"):
            layout_from_dict(raw, VARS)

    def test_session_without_windows(self):
        with pytest.raises(ValueError, match="at least one window"):
            layout_from_dict({"sessions": [{"name": "a"}]}, VARS)

    def test_split_with_bad_target(self):
        raw = {
            "sessions": [{"name": "a", "windows": [{"name": "w"}]}],
            "splits": [{"target": "nowindow"}],
        }
        with pytest.raises(ValueError, match="Invalid target"):
            layout_from_dict(raw, VARS)
