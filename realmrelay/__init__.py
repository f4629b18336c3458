"""Relay configuration, load balancing, system helpers and command-line front end."""

__version__ = "2.9.2"

__all__ = [
    "balancer",
    "cli",
    "conf",
    "consts",
    "dns_conf",
    "endpoint_conf",
    "ip_hash",
    "legacy",
    "log_conf",
    "net_conf",
    "round_robin",
    "syscall",
]