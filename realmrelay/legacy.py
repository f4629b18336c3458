"""The original flat configuration format of address and port lists."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from itertools import chain, islice, repeat
from typing import Any

from .endpoint_conf import EndpointConf

_U16_RE = re.compile(r"\+?[0-9]+")

_KEYS = {
    "listen_addrs": "listening_addresses",
    "listen_ports": "listening_ports",
    "remote_addrs": "remote_addresses",
    "remote_ports": "remote_ports",
}


def _parse_u16(text: str) -> int:
    if not _U16_RE.fullmatch(text) or int(text) > 0xFFFF:
        raise ValueError(f"failed to parse port: {text!r}")
    return int(text)


def flatten_ports(ports: Sequence[str]) -> list[int]:
    """Expand entries such as ``"1-4"`` and ``"5"`` into a list of ports."""
    result: list[int] = []
    for entry in ports:
        parts = entry.split("-")
        start = _parse_u16(parts[0])
        end = _parse_u16(parts[1]) if len(parts) > 1 else start
        result.extend(range(start, end + 1))
    return result


def join_addr_port(addrs: Sequence[str], ports: Sequence[int], length: int) -> list[str]:
    """Pair addresses with ports, padding both with their first item."""
    if not addrs or not ports:
        raise ValueError("addresses and ports must not be empty")
    port_iter = islice(chain(islice(ports, length), repeat(ports[0])), length)
    addr_iter = islice(chain(islice(addrs, length), repeat(addrs[0])), length)
    return [f"{addr}:{port}" for addr, port in zip(addr_iter, port_iter)]


@dataclass
class LegacyConf:
    """Parallel lists of listen and remote addresses and port ranges."""

    listen_addrs: list[str]
    listen_ports: list[str]
    remote_addrs: list[str]
    remote_ports: list[str]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LegacyConf":
        if not isinstance(data, Mapping):
            raise ValueError("legacy config: expected an object")
        values: dict[str, list[str]] = {}
        for attr, key in _KEYS.items():
            value = data.get(key)
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ValueError(f"legacy config: {key} must be a list of strings")
            values[attr] = list(value)
        return cls(**values)

    def to_dict(self) -> dict[str, list[str]]:
        return {key: list(getattr(self, attr)) for attr, key in _KEYS.items()}

    def to_endpoints(self) -> list[EndpointConf]:
        """One endpoint per listen port."""
        listen_ports = flatten_ports(self.listen_ports)
        remote_ports = flatten_ports(self.remote_ports)
        length = len(listen_ports)
        listen = join_addr_port(self.listen_addrs, listen_ports, length)
        remote = join_addr_port(self.remote_addrs, remote_ports, length)
        return [EndpointConf(listen=l, remote=r) for l, r in zip(listen, remote)]