"""Endpoint configuration: where to listen and where to relay."""

from __future__ import annotations

import ipaddress
import re
import socket
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .balancer import Balancer
from .net_conf import BindOpts, ConnectOpts, NetConf

_PORT_RE = re.compile(r"[0-9]+")
_U16_RE = re.compile(r"\+?[0-9]+")

SocketAddr = tuple[str, int]
_OPTIONAL_STR_FIELDS = (
    "balance",
    "through",
    "interface",
    "listen_interface",
    "listen_transport",
    "remote_transport",
)


def _arg(args: Any, name: str) -> Any:
    if args is None:
        return None
    if isinstance(args, Mapping):
        return args.get(name)
    return getattr(args, name, None)


def _parse_port(text: str) -> int | None:
    if not _PORT_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= 0xFFFF else None


def _parse_socket_addr(s: str) -> SocketAddr | None:
    if s.startswith("["):
        close = s.find("]:")
        if close < 0:
            return None
        host, port_text = s[1:close], s[close + 2:]
        parser = ipaddress.IPv6Address
    else:
        host, sep, port_text = s.rpartition(":")
        if not sep:
            return None
        parser = ipaddress.IPv4Address
    port = _parse_port(port_text)
    if port is None:
        return None
    try:
        ip = parser(host)
    except ValueError:
        return None
    return str(ip), port


def _to_socket_addrs(s: str) -> list[SocketAddr]:
    parsed = _parse_socket_addr(s)
    if parsed is not None:
        return [parsed]
    host, sep, port_text = s.rpartition(":")
    if not sep:
        raise ValueError(f"invalid socket address: {s!r}")
    port = _parse_port(port_text)
    if port is None:
        raise ValueError(f"invalid port value: {s!r}")
    infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    return [(info[4][0], info[4][1]) for info in infos]


def _format_addr(addr: SocketAddr) -> str:
    host, port = addr
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


@dataclass(frozen=True)
class DomainName:
    """A remote given by name, resolved when connecting."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


RemoteAddr = SocketAddr | DomainName


def parse_remote(remote: str) -> RemoteAddr:
    """Parse a remote as a socket address, or else as ``domain:port``."""
    parsed = _parse_socket_addr(remote)
    if parsed is not None:
        return parsed
    host, sep, port_text = remote.rpartition(":")
    if not sep:
        raise ValueError(f"invalid remote address: {remote!r}")
    if not _U16_RE.fullmatch(port_text) or int(port_text) > 0xFFFF:
        raise ValueError(f"invalid remote port: {remote!r}")
    return DomainName(host, int(port_text))


def _remote_str(raddr: RemoteAddr) -> str:
    return str(raddr) if isinstance(raddr, DomainName) else _format_addr(raddr)


@dataclass
class Endpoint:
    """A fully built relay endpoint."""

    laddr: SocketAddr
    raddr: RemoteAddr
    bind_opts: BindOpts
    conn_opts: ConnectOpts
    extra_raddrs: list[RemoteAddr] = field(default_factory=list)

    def __str__(self) -> str:
        remotes = [_remote_str(self.raddr), *map(_remote_str, self.extra_raddrs)]
        return f"{_format_addr(self.laddr)} -> {', '.join(remotes)}"


@dataclass
class EndpointInfo:
    """A built endpoint and which protocols to relay on it."""

    no_tcp: bool
    use_udp: bool
    endpoint: Endpoint


@dataclass
class EndpointConf:
    """One relay rule as written in the configuration."""

    listen: str
    remote: str
    extra_remotes: list[str] = field(default_factory=list)
    balance: str | None = None
    through: str | None = None
    interface: str | None = None
    listen_interface: str | None = None
    listen_transport: str | None = None
    remote_transport: str | None = None
    network: NetConf = field(default_factory=NetConf)

    def is_empty(self) -> bool:
        return False

    def build_local(self) -> SocketAddr:
        """Resolve the listen address."""
        try:
            addrs = _to_socket_addrs(self.listen)
        except (ValueError, OSError) as exc:
            raise ValueError(f"invalid local address: {self.listen!r}: {exc}") from exc
        if not addrs:
            raise ValueError(f"invalid local address: {self.listen!r}")
        return addrs[0]

    def build_send_through(self) -> SocketAddr | None:
        """Resolve the outgoing bind address; a bare IP gets port 0."""
        if self.through is None:
            return None
        try:
            addrs = _to_socket_addrs(self.through)
        except (ValueError, OSError):
            addrs = []
        if addrs:
            return addrs[0]
        text = self.through.replace("[", "").replace("]", "")
        try:
            return str(ipaddress.ip_address(text)), 0
        except ValueError:
            return None

    def build_balancer(self) -> Balancer:
        if self.balance is not None:
            return Balancer.parse_from_str(self.balance)
        return Balancer()

    def build(self) -> EndpointInfo:
        laddr = self.build_local()
        raddr = parse_remote(self.remote)
        extra_raddrs = [parse_remote(r) for r in self.extra_remotes]

        info = self.network.build()
        conn_opts = info.conn_opts
        bind_opts = info.bind_opts
        conn_opts.balancer = self.build_balancer()
        conn_opts.bind_address = self.build_send_through()
        conn_opts.bind_interface = self.interface
        bind_opts.bind_interface = self.listen_interface

        return EndpointInfo(
            no_tcp=info.no_tcp,
            use_udp=info.use_udp,
            endpoint=Endpoint(
                laddr=laddr,
                raddr=raddr,
                bind_opts=bind_opts,
                conn_opts=conn_opts,
                extra_raddrs=extra_raddrs,
            ),
        )

    @classmethod
    def from_cmd_args(cls, args: Any) -> "EndpointConf":
        listen = _arg(args, "local")
        remote = _arg(args, "remote")
        if listen is None or remote is None:
            raise ValueError("both a listen and a remote address are required")
        return cls(
            listen=listen,
            remote=remote,
            through=_arg(args, "through"),
            interface=_arg(args, "interface"),
            listen_interface=_arg(args, "listen_interface"),
            listen_transport=_arg(args, "listen_transport"),
            remote_transport=_arg(args, "remote_transport"),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EndpointConf":
        if not isinstance(data, Mapping):
            raise ValueError("endpoint: expected a table")
        values: dict[str, Any] = {}
        for name in ("listen", "remote"):
            value = data.get(name)
            if not isinstance(value, str):
                raise ValueError(f"endpoint.{name}: expected a string")
            values[name] = value
        extra = data.get("extra_remotes", [])
        if not isinstance(extra, list) or not all(isinstance(r, str) for r in extra):
            raise ValueError("endpoint.extra_remotes: expected a list of strings")
        values["extra_remotes"] = list(extra)
        for name in _OPTIONAL_STR_FIELDS:
            value = data.get(name)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"endpoint.{name}: expected a string")
            values[name] = value
        network = data.get("network")
        values["network"] = NetConf() if network is None else NetConf.from_dict(network)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"listen": self.listen, "remote": self.remote}
        if self.extra_remotes:
            data["extra_remotes"] = list(self.extra_remotes)
        for name in _OPTIONAL_STR_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if not self.network.is_empty():
            data["network"] = self.network.to_dict()
        return data