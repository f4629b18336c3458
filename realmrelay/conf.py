"""Full configuration: global sections plus endpoints, from files or strings."""

from __future__ import annotations

import json
import os
import sys
import tomllib
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from .dns_conf import DnsConf
from .endpoint_conf import EndpointConf
from .legacy import LegacyConf
from .log_conf import LogConf
from .net_conf import NetConf

_EXTENSIONS = (".toml", ".json")


class ConfigError(Exception):
    """A configuration that cannot be read or parsed."""


@dataclass
class CmdOverride:
    """Options given on the command line; they override the file."""

    log: LogConf = field(default_factory=LogConf)
    dns: DnsConf = field(default_factory=DnsConf)
    network: NetConf = field(default_factory=NetConf)


def _config_files(root: str) -> Iterator[str]:
    for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in sorted(filenames):
            if name.startswith("."):
                continue
            if os.path.splitext(name)[1] not in _EXTENSIONS:
                continue
            path = os.path.join(dirpath, name)
            if os.path.isfile(path):
                yield path


@dataclass
class FullConf:
    """Global log, DNS and network sections and the list of endpoints."""

    log: LogConf = field(default_factory=LogConf)
    dns: DnsConf = field(default_factory=DnsConf)
    network: NetConf = field(default_factory=NetConf)
    endpoints: list[EndpointConf] = field(default_factory=list)

    @classmethod
    def from_conf_file(cls, path: str | os.PathLike[str]) -> "FullConf":
        """Load a file, or merge every toml/json file below a directory.

        Hidden files and directories are skipped. Earlier files take
        precedence for global sections; endpoints are concatenated.
        """
        path = os.fspath(path)
        if os.path.isfile(path):
            try:
                text = Path(path).read_text(encoding="utf-8")
            except OSError as exc:
                raise ConfigError(f"failed to open {path}: {exc}") from exc
            try:
                return cls.from_conf_str(text)
            except (ConfigError, ValueError) as exc:
                raise ConfigError(f"failed to parse {path}: {exc}") from exc

        if not os.path.exists(path):
            raise ConfigError(f"failed to open {path}: no such file or directory")

        full = cls()
        for file in _config_files(path):
            try:
                text = Path(file).read_text(encoding="utf-8")
            except OSError as exc:
                raise ConfigError(f"failed to open {file}: {exc}") from exc
            try:
                part = cls.from_conf_str(text)
            except (ConfigError, ValueError) as exc:
                raise ConfigError(f"failed to parse {file}: {exc}") from exc
            full.take_fields(part)
        return full

    @classmethod
    def from_conf_str(cls, s: str) -> "FullConf":
        """Parse as TOML, then JSON, then the legacy JSON format."""
        try:
            return cls.from_dict(tomllib.loads(s))
        except (ValueError, TypeError) as exc:
            toml_err = exc

        try:
            return cls.from_dict(json.loads(s))
        except (ValueError, TypeError) as exc:
            json_err = exc

        try:
            legacy = LegacyConf.from_dict(json.loads(s))
        except (ValueError, TypeError) as exc:
            legacy_err = exc
        else:
            print("attention: you are using a legacy config file!", file=sys.stderr)
            return cls.from_legacy(legacy)

        raise ConfigError(
            f"parse as toml: {toml_err}; parse as json: {json_err}; "
            f"parse as legacy: {legacy_err}"
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FullConf":
        if not isinstance(data, Mapping):
            raise ValueError("expected a table at the top level")
        endpoints = data.get("endpoints")
        if not isinstance(endpoints, list):
            raise ValueError("missing field `endpoints`")
        log = data.get("log")
        dns = data.get("dns")
        network = data.get("network")
        return cls(
            log=LogConf() if log is None else LogConf.from_dict(log),
            dns=DnsConf() if dns is None else DnsConf.from_dict(dns),
            network=NetConf() if network is None else NetConf.from_dict(network),
            endpoints=[EndpointConf.from_dict(ep) for ep in endpoints],
        )

    @classmethod
    def from_legacy(cls, legacy: LegacyConf) -> "FullConf":
        return cls(endpoints=legacy.to_endpoints())

    def take_fields(self, other: "FullConf") -> None:
        """Fill unset global fields from ``other`` and append its endpoints."""
        self.log.take_field(other.log)
        self.dns.take_field(other.dns)
        self.network.take_field(other.network)
        self.endpoints.extend(other.endpoints)

    def add_endpoint(self, endpoint: EndpointConf) -> "FullConf":
        self.endpoints.append(endpoint)
        return self

    def apply_cmd_opts(self, opts: CmdOverride) -> "FullConf":
        """Let command-line options override the configured ones."""
        self.log.rst_field(opts.log)
        self.dns.rst_field(opts.dns)
        for endpoint in self.endpoints:
            endpoint.network.rst_field(opts.network)
        return self

    def apply_global_opts(self) -> "FullConf":
        """Fill each endpoint's unset network options from the global section."""
        for endpoint in self.endpoints:
            endpoint.network.take_field(self.network)
        return self

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if not self.log.is_empty():
            data["log"] = self.log.to_dict()
        if not self.dns.is_empty():
            data["dns"] = self.dns.to_dict()
        if not self.network.is_empty():
            data["network"] = self.network.to_dict()
        data["endpoints"] = [endpoint.to_dict() for endpoint in self.endpoints]
        return data

    def to_toml(self) -> str:
        return tomli_w.dumps(self.to_dict())

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))