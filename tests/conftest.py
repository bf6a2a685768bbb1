"""Root conftest: sets env vars BEFORE any devmux module is imported.

Points DEVMUX_DIR at a throwaway directory so a developer's real
~/.devmux/settings.toml never leaks into tests.
"""

import os
import tempfile

# Drop exported DEVMUX_* overrides and any enclosing tmux client
for _key in [k for k in os.environ if k.startswith("DEVMUX_")]:
    del os.environ[_key]
os.environ.pop("TMUX", None)
os.environ["DEVMUX_DIR"] = tempfile.mkdtemp(prefix="devmux-test-")
