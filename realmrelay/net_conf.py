"""Per-endpoint network options."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from .balancer import Balancer
from .consts import (
    PROXY_PROTOCOL_TIMEOUT,
    PROXY_PROTOCOL_VERSION,
    TCP_KEEPALIVE,
    TCP_KEEPALIVE_PROBE,
    TCP_TIMEOUT,
    UDP_TIMEOUT,
)

_UINT_RE = re.compile(r"\+?[0-9]+")
_BOOL_FIELDS = frozenset(
    {"no_tcp", "use_udp", "ipv6_only", "send_mptcp", "accept_mptcp", "send_proxy", "accept_proxy"}
)


def _arg(args: Any, name: str) -> Any:
    if args is None:
        return None
    if isinstance(args, Mapping):
        return args.get(name)
    return getattr(args, name, None)


def _flag(args: Any, name: str) -> bool | None:
    """A command-line switch: ``True`` when given, otherwise unset."""
    if _arg(args, name):
        return True
    return None


def _parse_uint(text: Any) -> int | None:
    if isinstance(text, str) and _UINT_RE.fullmatch(text):
        return int(text)
    return None


def _parse_bool(text: Any) -> bool | None:
    return {"true": True, "false": False}.get(text) if isinstance(text, str) else None


@dataclass
class BindOpts:
    """Options for the listening side."""

    ipv6_only: bool = False
    accept_mptcp: bool = False
    bind_interface: str | None = None


@dataclass
class ProxyOpts:
    """PROXY protocol options."""

    send_proxy: bool = False
    accept_proxy: bool = False
    send_proxy_version: int = PROXY_PROTOCOL_VERSION
    accept_proxy_timeout: int = PROXY_PROTOCOL_TIMEOUT


@dataclass
class ConnectOpts:
    """Options for the connecting side."""

    send_mptcp: bool = False
    tcp_keepalive: int = TCP_KEEPALIVE
    tcp_keepalive_probe: int = TCP_KEEPALIVE_PROBE
    connect_timeout: int = TCP_TIMEOUT
    associate_timeout: int = UDP_TIMEOUT
    bind_address: Any = None
    bind_interface: str | None = None
    balancer: Balancer = field(default_factory=Balancer)
    transport: Any = None
    proxy_opts: ProxyOpts = field(default_factory=ProxyOpts)


@dataclass
class NetInfo:
    """Built network options of one endpoint."""

    bind_opts: BindOpts
    conn_opts: ConnectOpts
    no_tcp: bool
    use_udp: bool


@dataclass
class NetConf:
    """Network options; unset fields take defaults when built."""

    no_tcp: bool | None = None
    use_udp: bool | None = None
    ipv6_only: bool | None = None
    send_mptcp: bool | None = None
    accept_mptcp: bool | None = None
    send_proxy: bool | None = None
    accept_proxy: bool | None = None
    send_proxy_version: int | None = None
    accept_proxy_timeout: int | None = None
    tcp_keepalive: int | None = None
    tcp_keepalive_probe: int | None = None
    tcp_timeout: int | None = None
    udp_timeout: int | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def build(self) -> NetInfo:
        def pick(value, default):
            return default if value is None else value

        bind_opts = BindOpts(
            ipv6_only=pick(self.ipv6_only, False),
            accept_mptcp=pick(self.accept_mptcp, False),
        )
        conn_opts = ConnectOpts(
            send_mptcp=pick(self.send_mptcp, False),
            tcp_keepalive=pick(self.tcp_keepalive, TCP_KEEPALIVE),
            tcp_keepalive_probe=pick(self.tcp_keepalive_probe, TCP_KEEPALIVE_PROBE),
            connect_timeout=pick(self.tcp_timeout, TCP_TIMEOUT),
            associate_timeout=pick(self.udp_timeout, UDP_TIMEOUT),
            proxy_opts=ProxyOpts(
                send_proxy=pick(self.send_proxy, False),
                accept_proxy=pick(self.accept_proxy, False),
                send_proxy_version=pick(self.send_proxy_version, PROXY_PROTOCOL_VERSION),
                accept_proxy_timeout=pick(self.accept_proxy_timeout, PROXY_PROTOCOL_TIMEOUT),
            ),
        )
        return NetInfo(
            bind_opts=bind_opts,
            conn_opts=conn_opts,
            no_tcp=pick(self.no_tcp, False),
            use_udp=pick(self.use_udp, False),
        )

    def rst_field(self, other: "NetConf") -> "NetConf":
        """Override fields with those set in ``other``."""
        for f in fields(self):
            value = getattr(other, f.name)
            if value is not None:
                setattr(self, f.name, value)
        return self

    def take_field(self, other: "NetConf") -> "NetConf":
        """Fill unset fields from ``other``."""
        for f in fields(self):
            value = getattr(other, f.name)
            if getattr(self, f.name) is None and value is not None:
                setattr(self, f.name, value)
        return self

    @classmethod
    def from_cmd_args(cls, args: Any) -> "NetConf":
        use_mptcp = _flag(args, "use_mptcp")
        keepalive = _parse_uint(_arg(args, "tcp_keepalive"))
        return cls(
            no_tcp=_flag(args, "no_tcp"),
            use_udp=_flag(args, "use_udp"),
            ipv6_only=_flag(args, "ipv6_only"),
            send_mptcp=use_mptcp,
            accept_mptcp=use_mptcp,
            tcp_keepalive=keepalive,
            # the probe count is taken from --tcp-keepalive as well
            tcp_keepalive_probe=keepalive,
            tcp_timeout=_parse_uint(_arg(args, "tcp_timeout")),
            udp_timeout=_parse_uint(_arg(args, "udp_timeout")),
            send_proxy=_parse_bool(_arg(args, "send_proxy")),
            send_proxy_version=_parse_uint(_arg(args, "send_proxy_version")),
            accept_proxy=_parse_bool(_arg(args, "accept_proxy")),
            accept_proxy_timeout=_parse_uint(_arg(args, "accept_proxy_timeout")),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NetConf":
        if not isinstance(data, Mapping):
            raise ValueError("network: expected a table")
        values: dict[str, Any] = {}
        for f in fields(cls):
            value = data.get(f.name)
            if value is None:
                continue
            if f.name in _BOOL_FIELDS:
                if not isinstance(value, bool):
                    raise ValueError(f"network.{f.name}: expected a boolean")
            elif isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"network.{f.name}: expected a non-negative integer")
            values[f.name] = value
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }