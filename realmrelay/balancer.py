"""Load-balancer selection across the configured remote peers."""

from __future__ import annotations

import re
from collections.abc import Sequence
from enum import Enum

from .ip_hash import IpHash, IpLike
from .round_robin import RoundRobin

_WEIGHT_RE = re.compile(r"\+?[0-9]+")


class Strategy(Enum):
    """Balance strategy."""

    OFF = "off"
    IPHASH = "iphash"
    ROUNDROBIN = "roundrobin"

    @classmethod
    def parse(cls, s: str) -> "Strategy":
        """Parse a strategy name; raise ValueError for an unknown one."""
        try:
            return cls(s)
        except ValueError:
            raise ValueError(f"unknown strategy: {s}") from None

    def __str__(self) -> str:
        return self.value


def _parse_weight(text: str) -> int | None:
    text = text.strip()
    if not _WEIGHT_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= 255 else None


class Balancer:
    """Combined load balancer dispatching to the chosen strategy."""

    def __init__(self, strategy: Strategy = Strategy.OFF, weights: Sequence[int] = ()) -> None:
        self._strategy = strategy
        self._inner: IpHash | RoundRobin | None
        match strategy:
            case Strategy.OFF:
                self._inner = None
            case Strategy.IPHASH:
                self._inner = IpHash(weights)
            case Strategy.ROUNDROBIN:
                self._inner = RoundRobin(weights)

    def strategy(self) -> Strategy:
        """Current balance strategy."""
        return self._strategy

    def total(self) -> int:
        """Number of peers; zero when balancing is off."""
        return 0 if self._inner is None else self._inner.total()

    def next(self, src_ip: IpLike) -> int | None:
        """Select the peer token for a connection from ``src_ip``."""
        if isinstance(self._inner, IpHash):
            return self._inner.next(src_ip)
        if isinstance(self._inner, RoundRobin):
            return self._inner.next()
        return 0

    @classmethod
    def parse_from_str(cls, s: str) -> "Balancer":
        """Parse ``"$strategy: $weight1, $weight2, ..."``.

        Weights that are not valid 0..255 integers are skipped.
        """
        strategy, sep, weights = s.partition(":")
        if not sep:
            raise ValueError(f"invalid balance string, missing ':': {s!r}")
        parsed = [
            w for w in (_parse_weight(part) for part in weights.strip().split(","))
            if w is not None
        ]
        return cls(Strategy.parse(strategy.strip()), parsed)

    def __repr__(self) -> str:
        return f"Balancer(strategy={self._strategy}, total={self.total()})"