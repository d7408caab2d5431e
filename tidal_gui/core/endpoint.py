# tidal_gui/core/endpoint.py
"""
Endpoint selection – decides where the server will listen.

The port chosen here is handed to the server binary *and* used for the
window URL, so both always agree.
"""

from __future__ import annotations

import logging
import os
import socket

from tidal_gui.core.models import Endpoint

logger = logging.getLogger(__name__)


class EndpointError(RuntimeError):
    """No usable host/port pair could be found."""


def _bind_socket(host: str, port: int) -> socket.socket:
    """Return a socket bound to (host, port) using the host's address family."""
    try:
        family, _type, _proto, _canon, sockaddr = socket.getaddrinfo(
            host, port, type=socket.SOCK_STREAM
        )[0]
    except socket.gaierror as exc:
        raise EndpointError(f"Cannot resolve host {host!r}: {exc}") from exc

    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        # TIME_WAIT leftovers of the previous server are not "in use"
        if os.name == "posix":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(sockaddr)
    except OSError:
        sock.close()
        raise
    return sock


def find_free_port(host: str) -> int:
    with _bind_socket(host, 0) as sock:
        return sock.getsockname()[1]


def port_available(host: str, port: int) -> bool:
    try:
        sock = _bind_socket(host, port)
    except OSError:
        return False
    sock.close()
    return True


def acquire_endpoint(host: str, port: int, check_free: bool = True) -> Endpoint:
    """
    Return the Endpoint for this run.

    ``port == 0`` allocates a free port; any other value is used as-is
    (after making sure nothing else is bound to it when `check_free`).
    """
    if port == 0:
        try:
            port = find_free_port(host)
        except OSError as exc:
            raise EndpointError(f"Cannot allocate a port on {host}: {exc}") from exc
        logger.debug("Allocated free port %d on %s", port, host)
    elif check_free and not port_available(host, port):
        raise EndpointError(f"Port {port} on {host} is already in use")

    return Endpoint(host=host, port=port)
