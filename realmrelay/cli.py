"""Command line: flags, options, the convert subcommand and startup."""

from __future__ import annotations

import argparse
import json
import logging
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import syscall
from .conf import CmdOverride, ConfigError, FullConf
from .consts import ENV_CONFIG, FEATURES, VERSION
from .dns_conf import DnsConf
from .endpoint_conf import EndpointConf, EndpointInfo
from .legacy import LegacyConf
from .log_conf import TRACE, LogConf
from .net_conf import NetConf

_UINT_RE = re.compile(r"\+?[0-9]+")
_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF
_PAGE_SIZE = 0x1000

logging.addLevelName(TRACE, "TRACE")


@dataclass
class ConfigInput:
    """Start from a configuration file or directory."""

    path: str
    opts: CmdOverride


@dataclass
class EndpointInput:
    """Start from a single endpoint given on the command line."""

    endpoint: EndpointConf
    opts: CmdOverride


def _version_text() -> str:
    return f"Realm {VERSION} {FEATURES}"


def _parse_uint(text: str, limit: int = _U64_MAX) -> int | None:
    if not _UINT_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= limit else None


def _add_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("FLAGS")
    flags = (
        ("-h", "--help", "help", "show help"),
        ("-v", "--version", "version", "show version"),
        ("-d", "--daemon", "daemon", "run as a unix daemon"),
        ("-u", "--udp", "use_udp", "force enable udp forward"),
        ("-m", "--mtcp", "use_mptcp", "force enable mptcp protocol"),
        ("-t", "--ntcp", "no_tcp", "force disable tcp forward"),
        ("-6", "--ipv6", "ipv6_only", "force disable ipv6 mapped ipv4"),
        ("-f", "--tfo", "fast_open", "force enable tcp fast open -- deprecated"),
        ("-z", "--splice", "zero_copy", "force enable tcp zero copy -- deprecated"),
    )
    for short, long, dest, text in flags:
        group.add_argument(short, long, dest=dest, action="store_true", help=text)


def _add_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("OPTIONS")
    options = (
        ("-c", "--config", "config", "path", "use config file"),
        ("-l", "--listen", "local", "address", "listen address"),
        ("-r", "--remote", "remote", "address", "remote address"),
        ("-x", "--through", "through", "address", "send through ip or address"),
        ("-i", "--interface", "interface", "device", "send through interface"),
        ("-e", "--listen-interface", "listen_interface", "device", "listen interface"),
        ("-a", "--listen-transport", "listen_transport", "options", "listen transport"),
        ("-b", "--remote-transport", "remote_transport", "options", "remote transport"),
    )
    for short, long, dest, metavar, text in options:
        group.add_argument(short, long, dest=dest, metavar=metavar, help=text)


def _add_global_options(parser: argparse.ArgumentParser) -> None:
    sections = {
        "SYS OPTIONS": (
            ("-n", "--nofile", "nofile", "limit", "set nofile limit"),
            ("-p", "--pipe-page", "pipe_page", "number", "set pipe capacity"),
            ("-j", "--pre-conn-hook", "pre_conn_hook", "path", "set pre-connect hook"),
        ),
        "LOG OPTIONS": (
            (None, "--log-level", "log_level", "level", "override log level"),
            (None, "--log-output", "log_output", "path", "override log output"),
        ),
        "DNS OPTIONS": (
            (None, "--dns-mode", "dns_mode", "mode", "override dns mode"),
            (None, "--dns-min-ttl", "dns_min_ttl", "second", "override dns min ttl"),
            (None, "--dns-max-ttl", "dns_max_ttl", "second", "override dns max ttl"),
            (None, "--dns-cache-size", "dns_cache_size", "number", "override dns cache size"),
            (None, "--dns-protocol", "dns_protocol", "protocol", "override dns protocol"),
            (None, "--dns-servers", "dns_servers", "servers", "override dns servers"),
        ),
        "PROXY OPTIONS": (
            (None, "--send-proxy", "send_proxy", "send_proxy", "send proxy protocol header"),
            (None, "--send-proxy-version", "send_proxy_version", "version",
             "send proxy protocol version"),
            (None, "--accept-proxy", "accept_proxy", "accept_proxy",
             "accept proxy protocol header"),
            (None, "--accept-proxy-timeout", "accept_proxy_timeout", "second",
             "accept proxy protocol timeout"),
        ),
        "TIMEOUT OPTIONS": (
            (None, "--tcp-timeout", "tcp_timeout", "second", "override tcp timeout(5s)"),
            (None, "--udp-timeout", "udp_timeout", "second", "override udp timeout(30s)"),
            (None, "--tcp-keepalive", "tcp_keepalive", "second",
             "override default tcp keepalive interval(15s)"),
            (None, "--tcp-keepalive-probe", "tcp_keepalive_probe", "count",
             "override default tcp keepalive count(3)"),
        ),
    }
    for title, options in sections.items():
        group = parser.add_argument_group(title)
        for short, long, dest, metavar, text in options:
            names = [short, long] if short else [long]
            group.add_argument(*names, dest=dest, metavar=metavar, help=text)


def _add_convert(parser: argparse.ArgumentParser) -> None:
    subparsers = parser.add_subparsers(dest="command", title="SUBCOMMANDS")
    convert = subparsers.add_parser(
        "convert",
        help="convert your legacy configuration into an advanced one",
        description="convert your legacy configuration into an advanced one",
    )
    convert.add_argument("convert_config", metavar="config")
    convert.add_argument(
        "-t", "--type", dest="type", metavar="type", default="toml", choices=("toml", "json")
    )
    convert.add_argument("-o", "--output", dest="output", metavar="path")


def build_parser() -> argparse.ArgumentParser:
    """The parser for every flag, option and subcommand."""
    parser = argparse.ArgumentParser(
        prog="realm",
        usage="realm [FLAGS] [OPTIONS]",
        description="A high efficiency relay tool",
        add_help=False,
    )
    _add_flags(parser)
    _add_options(parser)
    _add_global_options(parser)
    _add_convert(parser)
    return parser


def parse_global_opts(args: Any) -> CmdOverride:
    """Collect the log, DNS and network overrides from parsed arguments."""
    return CmdOverride(
        log=LogConf.from_cmd_args(args),
        dns=DnsConf.from_cmd_args(args),
        network=NetConf.from_cmd_args(args),
    )


def handle_convert(args: Any) -> str:
    """Convert a legacy JSON configuration; write it out and return it."""
    raw = Path(args.convert_config).read_bytes()
    legacy = LegacyConf.from_dict(json.loads(raw))
    full = FullConf.from_legacy(legacy)
    if args.type == "toml":
        data = full.to_toml()
    elif args.type == "json":
        data = full.to_json()
    else:
        raise ValueError(f"unknown output type: {args.type}")
    if args.output is not None:
        Path(args.output).write_text(data, encoding="utf-8")
    else:
        print(data)
    return data


def _apply_nofile(args: argparse.Namespace) -> None:
    try:
        if args.nofile is not None:
            nofile = _parse_uint(args.nofile)
            if nofile is None:
                print(f"invalid nofile value: {args.nofile}", file=sys.stderr)
            else:
                try:
                    syscall.set_nofile_limit(nofile)
                except (OSError, ValueError):
                    pass
        else:
            try:
                syscall.bump_nofile_limit()
            except (OSError, ValueError):
                pass
        soft, hard = syscall.get_nofile_limit()
    except OSError:
        return
    print(f"fd: soft={soft}, hard={hard}")


def _apply_pipe_page(args: argparse.Namespace) -> None:
    if args.pipe_page is None or not sys.platform.startswith("linux"):
        return
    page = _parse_uint(args.pipe_page)
    if page is None:
        print(f"invalid page value: {args.pipe_page}", file=sys.stderr)
        return
    print(f"pipe capacity: {page * _PAGE_SIZE}")


def _handle_matches(args: argparse.Namespace) -> ConfigInput | EndpointInput | None:
    if args.daemon and os.name == "posix":
        syscall.daemonize("realm is running in the background")

    if os.name == "posix":
        _apply_nofile(args)
    _apply_pipe_page(args)

    opts = parse_global_opts(args)
    if args.config is not None:
        return ConfigInput(args.config, opts)
    if args.local is not None and args.remote is not None:
        return EndpointInput(EndpointConf.from_cmd_args(args), opts)
    return None


def scan(argv: list[str] | None = None) -> ConfigInput | EndpointInput | None:
    """Parse the command line; return what to start from, or None."""
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else list(argv)
    if not argv:
        parser.print_help(sys.stderr)
        raise SystemExit(2)

    args = parser.parse_args(argv)
    if args.help:
        parser.print_help()
        return None
    if args.version:
        print(_version_text())
        return None
    if args.command == "convert":
        handle_convert(args)
        return None
    return _handle_matches(args)


def _setup_log(log: LogConf) -> None:
    print(f"log: {log}")
    level, stream = log.build()
    logger = logging.getLogger("realmrelay")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s[%(name)s][%(levelname)s]%(message)s",
            datefmt="[%Y-%m-%d][%H:%M:%S]",
        )
    )
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def _load_conf(argv: list[str] | None) -> FullConf | None:
    env_conf = os.environ.get(ENV_CONFIG)
    if env_conf is not None:
        try:
            return FullConf.from_conf_str(env_conf)
        except (ConfigError, ValueError):
            pass

    cmd = scan(argv)
    if isinstance(cmd, EndpointInput):
        conf = FullConf()
        conf.add_endpoint(cmd.endpoint).apply_global_opts().apply_cmd_opts(cmd.opts)
        return conf
    if isinstance(cmd, ConfigInput):
        conf = FullConf.from_conf_file(cmd.path)
        conf.apply_global_opts().apply_cmd_opts(cmd.opts)
        return conf
    return None


def main(argv: list[str] | None = None) -> int:
    """Load the configuration and set up logging, DNS and endpoints."""
    try:
        conf = _load_conf(argv)
        if conf is None:
            return 0
        _setup_log(conf.log)
        print(f"dns: {conf.dns}")
        conf.dns.build()
        endpoints: list[EndpointInfo] = []
        for endpoint_conf in conf.endpoints:
            info = endpoint_conf.build()
            print(f"inited: {info.endpoint}")
            endpoints.append(info)
    except (ConfigError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0