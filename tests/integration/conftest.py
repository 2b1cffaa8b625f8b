import os
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

FAKE_SERVER = """#!{python}
import argparse
import os
import signal
import socket
import sys
import time

parser = argparse.ArgumentParser()
parser.add_argument("--host", default="0.0.0.0")
parser.add_argument("--port", type=int, default=3000)
parser.add_argument("--strictPort", action="store_true")
args = parser.parse_args()

mode = os.environ.get("FAKE_SERVER_MODE", "serve")
if mode == "fail":
    sys.exit(int(os.environ.get("FAKE_SERVER_EXIT_CODE", "1")))

if mode == "stubborn":
    signal.signal(signal.SIGTERM, signal.SIG_IGN)

if mode == "serve":
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind((args.host, args.port))
    sock.listen(8)
    print("fake server listening on", args.port, flush=True)

marker = os.environ.get("FAKE_SERVER_MARKER")
if marker:
    open(marker, "w").close()

while True:
    time.sleep(0.05)
"""


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project directory whose node_modules/.bin/vite is a Python stand-in."""
    if sys.platform == "win32":
        pytest.skip("shebang executables are POSIX only")
    bin_dir = tmp_path / "node_modules" / ".bin"
    bin_dir.mkdir(parents=True)
    script = bin_dir / "vite"
    _ = script.write_text(FAKE_SERVER.format(python=sys.executable))
    script.chmod(0o755)
    return tmp_path


@pytest.fixture
def server_mode(monkeypatch: pytest.MonkeyPatch) -> Callable[..., None]:
    """Select how the stand-in server behaves once launched."""

    def _set(mode: str, exit_code: int = 1, marker: Path | None = None) -> None:
        monkeypatch.setenv("FAKE_SERVER_MODE", mode)
        monkeypatch.setenv("FAKE_SERVER_EXIT_CODE", str(exit_code))
        if marker is not None:
            monkeypatch.setenv("FAKE_SERVER_MARKER", str(marker))

    return _set


@pytest.fixture
def pid_alive() -> Callable[[int], bool]:
    def _alive(pid: int) -> bool:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True

    return _alive
