"""Port probing by bind-and-release.

A probe tries to bind and listen on host:port itself. Success means no
one else holds the port; the socket is closed before the result is
returned, so a probe never leaves a listener behind.
"""

import socket
import sys
from typing import final

import anyio.to_thread

from ._models import PortStatus


def _socket_family(host: str) -> socket.AddressFamily:
    return socket.AF_INET6 if ":" in host else socket.AF_INET


def probe_port(host: str, port: int) -> PortStatus:
    """Check once whether something is listening on host:port.

    ``EADDRINUSE`` and ``EACCES`` mean the port is taken. Every other bind
    error (bad address, out-of-range port, ...) is also reported as
    IN_USE: wrongly spawning a second server on a busy port is worse than
    wrongly assuming one is already running.

    Args:
        host: Address to bind, e.g. ``0.0.0.0``.
        port: TCP port to test.

    Returns:
        PortStatus.FREE if the bind succeeded, PortStatus.IN_USE otherwise.
    """
    try:
        with socket.socket(_socket_family(host), socket.SOCK_STREAM) as sock:
            if sys.platform != "win32":
                # TIME_WAIT remnants of a dead server must not look like a listener
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(1)
    except (OSError, OverflowError, ValueError, TypeError):
        return PortStatus.IN_USE
    return PortStatus.FREE


@final
class PortProber:
    """Async port prober.

    Runs ``probe_port`` in a worker thread so probing never blocks the
    event loop. Each call uses its own socket, so concurrent probes from
    the readiness watcher and the classifier are safe.
    """

    __slots__ = ()

    async def __call__(self, host: str, port: int) -> PortStatus:
        """Probe host:port once."""
        return await anyio.to_thread.run_sync(probe_port, host, port)
