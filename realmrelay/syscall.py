"""Process and socket helpers: daemonizing, fd limits and socket creation."""

from __future__ import annotations

import errno
import ipaddress
import os
import socket
import sys

try:
    import resource
except ImportError:  # not available on every platform
    resource = None  # type: ignore[assignment]

_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF
_IPPROTO_MPTCP = getattr(socket, "IPPROTO_MPTCP", 262)
_SO_BINDTODEVICE = getattr(socket, "SO_BINDTODEVICE", 25)


def daemonize(msg: str) -> None:
    """Detach into the background, keeping the working directory.

    Standard streams are redirected to the null device. Prints ``msg``
    on success or an error message on failure.
    """
    try:
        if not hasattr(os, "fork"):
            raise OSError(errno.ENOSYS, "fork is not supported on this platform")
        pwd = os.path.realpath(os.getcwd())
        sys.stdout.flush()
        sys.stderr.flush()
        if os.fork() > 0:
            os._exit(0)
        os.setsid()
        if os.fork() > 0:
            os._exit(0)
        os.umask(0)
        os.chdir(pwd)
        devnull = os.open(os.devnull, os.O_RDWR)
        for fd in (0, 1, 2):
            os.dup2(devnull, fd)
        if devnull > 2:
            os.close(devnull)
    except OSError as exc:
        print(f"failed to daemonize: {exc}", file=sys.stderr)
        return
    print(msg)


def _require_resource() -> None:
    if resource is None:
        raise OSError(errno.ENOSYS, "resource limits are not supported on this platform")


def _to_u64(value: int) -> int:
    if value == resource.RLIM_INFINITY or value < 0:
        return _U64_MAX
    return value


def set_nofile_limit(nofile: int) -> None:
    """Set both soft and hard open-file limits to ``nofile``."""
    if nofile < 0:
        raise ValueError(f"nofile must not be negative: {nofile}")
    _require_resource()
    value = resource.RLIM_INFINITY if nofile >= _U64_MAX else nofile
    try:
        resource.setrlimit(resource.RLIMIT_NOFILE, (value, value))
    except ValueError as exc:
        raise OSError(errno.EPERM, str(exc)) from exc


def get_nofile_limit() -> tuple[int, int]:
    """Return the current ``(soft, hard)`` open-file limits."""
    _require_resource()
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    return _to_u64(soft), _to_u64(hard)


def bump_nofile_limit() -> None:
    """Raise the soft open-file limit to the hard limit."""
    cur, top = get_nofile_limit()
    if cur < top:
        set_nofile_limit(top)


def new_socket(family: int, sock_type: int, proto: int) -> socket.socket:
    """Create a non-blocking, non-inheritable socket."""
    sock = socket.socket(family, sock_type, proto)
    try:
        sock.setblocking(False)
        sock.set_inheritable(False)
    except OSError:
        sock.close()
        raise
    return sock


def _family_of(addr) -> int:
    host = addr[0] if isinstance(addr, tuple) else addr
    if isinstance(host, str):
        host = ipaddress.ip_address(host.strip("[]"))
    return socket.AF_INET6 if host.version == 6 else socket.AF_INET


def new_tcp_socket(addr) -> socket.socket:
    """Create a non-blocking TCP socket matching the family of ``addr``."""
    return new_socket(_family_of(addr), socket.SOCK_STREAM, socket.IPPROTO_TCP)


def new_mptcp_socket(addr) -> socket.socket:
    """Create a non-blocking MPTCP socket (Linux only)."""
    if not sys.platform.startswith("linux"):
        raise OSError(errno.EPROTONOSUPPORT, "MPTCP is only supported on Linux")
    return new_socket(_family_of(addr), socket.SOCK_STREAM, _IPPROTO_MPTCP)


def new_udp_socket(addr) -> socket.socket:
    """Create a non-blocking UDP socket matching the family of ``addr``."""
    return new_socket(_family_of(addr), socket.SOCK_DGRAM, socket.IPPROTO_UDP)


def bind_to_device(sock: socket.socket, iface: str) -> None:
    """Bind a socket to a network interface (Linux only)."""
    if not sys.platform.startswith("linux"):
        raise OSError(errno.ENOPROTOOPT, "binding to a device is only supported on Linux")
    sock.setsockopt(socket.SOL_SOCKET, _SO_BINDTODEVICE, iface.encode())