"""Smooth weighted round-robin balancing."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass

_MAX_PEERS = 255


@dataclass
class _Node:
    current: int
    effective: int
    weight: int
    token: int


class RoundRobin:
    """Picks peers in proportion to their weights, interleaving evenly."""

    def __init__(self, weights: Sequence[int]) -> None:
        weights = list(weights)
        if len(weights) > _MAX_PEERS:
            raise ValueError(f"too many peers: {len(weights)} > {_MAX_PEERS}")
        for weight in weights:
            if not 0 <= weight <= 255:
                raise ValueError(f"weight out of range 0..255: {weight}")
        self._total = len(weights)
        self._lock = threading.Lock()
        self._nodes: list[_Node] = []
        if len(weights) > 1:
            self._nodes = [
                _Node(current=0, effective=w, weight=w, token=i)
                for i, w in enumerate(weights)
            ]

    def total(self) -> int:
        """Number of peers."""
        return self._total

    def next(self) -> int | None:
        """Return the token of the next peer."""
        if self._total <= 1:
            return 0
        with self._lock:
            total_weight = 0
            best: _Node | None = None
            for node in self._nodes:
                total_weight += node.effective
                node.current += node.effective
                if node.effective < node.weight:
                    node.effective += 1
                if best is None or node.current > best.current:
                    best = node
            if best is None:
                return None
            best.current -= total_weight
            return best.token

    def __repr__(self) -> str:
        return f"RoundRobin(total={self._total})"