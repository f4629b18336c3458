"""Consistent-hash balancing keyed on the client IP address."""

from __future__ import annotations

import ipaddress
import math
from bisect import bisect_left
from collections.abc import Sequence

_SEED = 0xBC9F1D34
_M = 0xC6A4A793
_MASK = 0xFFFFFFFF
_MIN_REPLICA = 128
_MAX_PEERS = 255

IpLike = ipaddress.IPv4Address | ipaddress.IPv6Address | str


def _mix_word(h: int, word: int) -> int:
    h = (h + word) & _MASK
    h = (h * _M) & _MASK
    return h ^ (h >> 16)


def chash(buf: bytes) -> int:
    """Return the 32-bit hash of an arbitrary byte string."""
    h = _SEED ^ ((len(buf) * _M) & _MASK)
    full = len(buf) - len(buf) % 4
    for start in range(0, full, 4):
        h = _mix_word(h, int.from_bytes(buf[start:start + 4], "little"))

    tail = buf[full:]
    if len(tail) >= 3:
        h = (h + (tail[2] << 16)) & _MASK
    if len(tail) >= 2:
        h = (h + (tail[1] << 8)) & _MASK
    if len(tail) >= 1:
        h = (h + tail[0]) & _MASK
        h = (h * _M) & _MASK
        h ^= h >> 24
    return h


def chash_for_ip(buf: bytes) -> int:
    """Hash address octets as whole 32-bit little-endian words.

    Bytes that do not fill a whole word are ignored; for IPv4 and IPv6
    octets the result equals :func:`chash`.
    """
    h = _SEED ^ ((len(buf) * _M) & _MASK)
    full = len(buf) - len(buf) % 4
    for start in range(0, full, 4):
        h = _mix_word(h, int.from_bytes(buf[start:start + 4], "little"))
    return h


def replica_ratio(weights: Sequence[int]) -> int:
    """Return how many virtual nodes each unit of weight gets."""
    if not weights:
        raise ValueError("weights must not be empty")
    top = max(weights)
    if top >= _MIN_REPLICA:
        return 1
    if top == 0:
        return 255
    return math.ceil(_MIN_REPLICA / top)


def _check_weights(weights: Sequence[int]) -> list[int]:
    weights = list(weights)
    if len(weights) > _MAX_PEERS:
        raise ValueError(f"too many peers: {len(weights)} > {_MAX_PEERS}")
    for weight in weights:
        if not 0 <= weight <= 255:
            raise ValueError(f"weight out of range 0..255: {weight}")
    return weights


class IpHash:
    """Maps each client address to a peer token on a hash ring."""

    def __init__(self, weights: Sequence[int]) -> None:
        weights = _check_weights(weights)
        self._total = len(weights)
        self._hashes: list[int] = []
        self._tokens: list[int] = []
        if len(weights) <= 1:
            return

        ratio = replica_ratio(weights)
        nodes = [
            (chash(f"{vidx} 114514".encode()), token)
            for token, weight in enumerate(weights)
            for vidx in range(weight * ratio + 1)
        ]
        nodes.sort(key=lambda node: node[0])
        self._hashes = [h for h, _ in nodes]
        self._tokens = [t for _, t in nodes]

    @property
    def nodes(self) -> tuple[tuple[int, int], ...]:
        """Virtual nodes as sorted ``(hash, token)`` pairs."""
        return tuple(zip(self._hashes, self._tokens))

    def total(self) -> int:
        """Number of peers."""
        return self._total

    def next(self, ip: IpLike) -> int | None:
        """Return the peer token selected for the given address."""
        if self._total <= 1:
            return 0
        addr = ipaddress.ip_address(ip) if isinstance(ip, str) else ip
        key = chash_for_ip(addr.packed)
        idx = bisect_left(self._hashes, key)
        if idx >= len(self._hashes):
            idx = 0
        return self._tokens[idx]

    def __repr__(self) -> str:
        return f"IpHash(total={self._total}, nodes={len(self._hashes)})"