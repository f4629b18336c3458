"""DNS resolver configuration."""

from __future__ import annotations

import ipaddress
import re
import socket
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from itertools import groupby
from typing import Any

import dns.resolver

_UINT_RE = re.compile(r"\+?[0-9]+")
_PORT_RE = re.compile(r"[0-9]+")
_U32_MAX = 0xFFFF_FFFF
_DEFAULT_MIN_TTL = 0
_DEFAULT_MAX_TTL = 86400
_DEFAULT_CACHE_SIZE = 32

SocketAddr = tuple[str, int]


def _arg(args: Any, name: str) -> Any:
    if args is None:
        return None
    if isinstance(args, Mapping):
        return args.get(name)
    return getattr(args, name, None)


def _parse_uint(text: Any, limit: int | None = None) -> int | None:
    if not isinstance(text, str) or not _UINT_RE.fullmatch(text):
        return None
    value = int(text)
    if limit is not None and value > limit:
        return None
    return value


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


class DnsMode(Enum):
    """Address family lookup strategy."""

    IPV4_ONLY = "ipv4_only"
    IPV6_ONLY = "ipv6_only"
    IPV4_AND_IPV6 = "ipv4_and_ipv6"
    IPV4_THEN_IPV6 = "ipv4_then_ipv6"
    IPV6_THEN_IPV4 = "ipv6_then_ipv4"

    @classmethod
    def parse(cls, s: str) -> "DnsMode":
        """Parse case-insensitively; unknown names give IPV4_AND_IPV6."""
        try:
            return cls(s.lower())
        except ValueError:
            return cls.IPV4_AND_IPV6

    def __str__(self) -> str:
        return self.value


class DnsProtocol(Enum):
    """Transport used to reach the name servers."""

    TCP = "tcp"
    UDP = "udp"
    TCP_AND_UDP = "tcp_and_udp"

    @classmethod
    def parse(cls, s: str) -> "DnsProtocol":
        """Parse case-insensitively; anything but tcp or udp gives both."""
        lowered = s.lower()
        if lowered == "tcp":
            return cls.TCP
        if lowered == "udp":
            return cls.UDP
        return cls.TCP_AND_UDP

    def protocols(self) -> list[str]:
        """The individual protocols this setting stands for."""
        if self is DnsProtocol.TCP:
            return ["tcp"]
        if self is DnsProtocol.UDP:
            return ["udp"]
        return ["tcp", "udp"]

    def __str__(self) -> str:
        return "tcp+udp" if self is DnsProtocol.TCP_AND_UDP else self.value


@dataclass(frozen=True)
class NameServerConfig:
    """One name server reached over one protocol."""

    socket_addr: SocketAddr
    protocol: str
    trust_negative_responses: bool = True


@dataclass
class ResolverConfig:
    """The set of name servers a resolver queries."""

    name_servers: list[NameServerConfig] = field(default_factory=list)

    def add_name_server(self, server: NameServerConfig) -> None:
        self.name_servers.append(server)


@dataclass
class ResolverOpts:
    """Resolver tuning; TTLs are in seconds."""

    ip_strategy: DnsMode = DnsMode.IPV4_THEN_IPV6
    positive_min_ttl: int | None = None
    positive_max_ttl: int | None = None
    cache_size: int = _DEFAULT_CACHE_SIZE


def system_nameservers() -> list[SocketAddr]:
    """Name servers from the system configuration, adjacent duplicates removed."""
    try:
        resolver = dns.resolver.Resolver(configure=True)
    except (dns.resolver.NoResolverConfiguration, OSError):
        return []
    addrs: list[SocketAddr] = []
    for ns in resolver.nameservers:
        if isinstance(ns, str):
            addrs.append((ns, resolver.port))
        else:
            address = getattr(ns, "address", None)
            if address is not None:
                addrs.append((address, getattr(ns, "port", resolver.port)))
    return [addr for addr, _ in groupby(addrs)]


@dataclass
class DnsConf:
    """DNS options; unset fields take the resolver's defaults."""

    mode: DnsMode | None = None
    min_ttl: int | None = None
    max_ttl: int | None = None
    cache_size: int | None = None
    protocol: DnsProtocol | None = None
    nameservers: list[str] | None = None

    def is_empty(self) -> bool:
        return all(
            value is None for value in (self.mode, self.min_ttl, self.max_ttl, self.cache_size)
        )

    def build(self) -> tuple[ResolverConfig | None, ResolverOpts | None]:
        """Return the resolver configuration and options, ``None`` where default."""
        opts: ResolverOpts | None
        if self.is_empty():
            opts = None
        else:
            opts = ResolverOpts()
            if self.mode is not None:
                opts.ip_strategy = self.mode
            opts.positive_min_ttl = self.min_ttl
            opts.positive_max_ttl = self.max_ttl
            if self.cache_size is not None:
                opts.cache_size = self.cache_size

        protocol = self.protocol or DnsProtocol.TCP_AND_UDP
        if self.nameservers is None and protocol is DnsProtocol.TCP_AND_UDP:
            return None, opts

        if self.nameservers is not None:
            addrs = [_to_socket_addrs(server)[0] for server in self.nameservers]
        else:
            addrs = system_nameservers()

        conf = ResolverConfig()
        for addr in addrs:
            for proto in protocol.protocols():
                conf.add_name_server(NameServerConfig(socket_addr=addr, protocol=proto))
        return conf, opts

    def rst_field(self, other: "DnsConf") -> "DnsConf":
        """Override fields with those set in ``other``."""
        for f in fields(self):
            value = getattr(other, f.name)
            if value is not None:
                setattr(self, f.name, list(value) if isinstance(value, list) else value)
        return self

    def take_field(self, other: "DnsConf") -> "DnsConf":
        """Fill unset fields from ``other``."""
        for f in fields(self):
            value = getattr(other, f.name)
            if getattr(self, f.name) is None and value is not None:
                setattr(self, f.name, list(value) if isinstance(value, list) else value)
        return self

    @classmethod
    def from_cmd_args(cls, args: Any) -> "DnsConf":
        mode = _arg(args, "dns_mode")
        protocol = _arg(args, "dns_protocol")
        servers = _arg(args, "dns_servers")
        return cls(
            mode=DnsMode.parse(mode) if mode is not None else None,
            min_ttl=_parse_uint(_arg(args, "dns_min_ttl"), _U32_MAX),
            max_ttl=_parse_uint(_arg(args, "dns_max_ttl"), _U32_MAX),
            cache_size=_parse_uint(_arg(args, "dns_cache_size")),
            protocol=DnsProtocol.parse(protocol) if protocol is not None else None,
            nameservers=servers.split(",") if servers is not None else None,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DnsConf":
        if not isinstance(data, Mapping):
            raise ValueError("dns: expected a table")

        def enum_value(name: str, enum_cls):
            value = data.get(name)
            if value is None:
                return None
            try:
                return enum_cls(value)
            except ValueError:
                raise ValueError(f"dns.{name}: unknown variant {value!r}") from None

        def uint(name: str, limit: int | None = None):
            value = data.get(name)
            if value is None:
                return None
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"dns.{name}: expected a non-negative integer")
            if limit is not None and value > limit:
                raise ValueError(f"dns.{name}: value out of range")
            return value

        servers = data.get("nameservers")
        if servers is not None:
            if not isinstance(servers, list) or not all(isinstance(s, str) for s in servers):
                raise ValueError("dns.nameservers: expected a list of strings")
            servers = list(servers)

        return cls(
            mode=enum_value("mode", DnsMode),
            min_ttl=uint("min_ttl", _U32_MAX),
            max_ttl=uint("max_ttl", _U32_MAX),
            cache_size=uint("cache_size"),
            protocol=enum_value("protocol", DnsProtocol),
            nameservers=servers,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, list):
                value = list(value)
            data[f.name] = value
        return data

    def __str__(self) -> str:
        mode = self.mode or DnsMode.IPV4_AND_IPV6
        protocol = self.protocol or DnsProtocol.TCP_AND_UDP
        min_ttl = _DEFAULT_MIN_TTL if self.min_ttl is None else self.min_ttl
        max_ttl = _DEFAULT_MAX_TTL if self.max_ttl is None else self.max_ttl
        cache_size = _DEFAULT_CACHE_SIZE if self.cache_size is None else self.cache_size
        servers = "system" if self.nameservers is None else ", ".join(self.nameservers)
        return (
            f"mode={mode}, protocol={protocol}, "
            f"min-ttl={min_ttl}, max-ttl={max_ttl}, cache-size={cache_size}, "
            f"servers={servers}"
        )