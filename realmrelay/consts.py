"""Version, environment names, defaults and enabled features."""

from __future__ import annotations

from dataclasses import dataclass

VERSION = "2.9.2"
ENV_CONFIG = "REALM_CONF"

DEFAULT_LOG_FILE = "stdout"

TCP_TIMEOUT = 5
TCP_KEEPALIVE = 15
TCP_KEEPALIVE_PROBE = 3
UDP_TIMEOUT = 30

PROXY_PROTOCOL_VERSION = 2
PROXY_PROTOCOL_TIMEOUT = 5


@dataclass(frozen=True)
class Features:
    """Optional capabilities this build provides."""

    mimalloc: bool = False
    jemalloc: bool = False
    multi_thread: bool = False
    hook: bool = False
    proxy: bool = False
    balance: bool = False
    transport: bool = False
    brutal_shutdown: bool = False

    def __str__(self) -> str:
        shown = (
            (self.hook, "hook"),
            (self.proxy, "proxy"),
            (self.balance, "balance"),
            (self.brutal_shutdown, "brutal"),
            (self.transport, "transport"),
            (self.multi_thread, "multi-thread"),
            (self.mimalloc, "mimalloc"),
            (self.jemalloc, "jemalloc"),
        )
        return "".join(f"[{name}]" for enabled, name in shown if enabled)


FEATURES = Features(proxy=True, balance=True)