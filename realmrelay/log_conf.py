"""Logging configuration."""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, TextIO

from .consts import DEFAULT_LOG_FILE

TRACE = 5


def _arg(args: Any, name: str) -> Any:
    if args is None:
        return None
    if isinstance(args, Mapping):
        return args.get(name)
    return getattr(args, name, None)


class LogLevel(Enum):
    """Log verbosity."""

    OFF = "off"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"

    @classmethod
    def parse(cls, s: str) -> "LogLevel":
        """Parse a level case-insensitively; unknown names give OFF."""
        try:
            return cls(s.lower())
        except ValueError:
            return cls.OFF

    def __str__(self) -> str:
        return self.value


_LOGGING_LEVELS = {
    LogLevel.OFF: logging.CRITICAL + 10,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.TRACE: TRACE,
}


@dataclass
class LogConf:
    """Log level and output destination; unset fields take defaults."""

    level: LogLevel | None = None
    output: str | None = None

    def is_empty(self) -> bool:
        return self.level is None and self.output is None

    def build(self) -> tuple[int, TextIO]:
        """Return a ``logging`` level and the stream to write to.

        ``stdout`` and ``stderr`` name the standard streams; any other
        output is a file opened for appending.
        """
        level = self.level or LogLevel.OFF
        output = self.output or DEFAULT_LOG_FILE
        if output == "stdout":
            stream: TextIO = sys.stdout
        elif output == "stderr":
            stream = sys.stderr
        else:
            try:
                stream = open(output, "a", encoding="utf-8")
            except OSError as exc:
                raise OSError(exc.errno, f"failed to open {output}: {exc.strerror}") from exc
        return _LOGGING_LEVELS[level], stream

    def rst_field(self, other: "LogConf") -> "LogConf":
        """Override fields with those set in ``other``."""
        if other.level is not None:
            self.level = other.level
        if other.output is not None:
            self.output = other.output
        return self

    def take_field(self, other: "LogConf") -> "LogConf":
        """Fill unset fields from ``other``."""
        if self.level is None and other.level is not None:
            self.level = other.level
        if self.output is None and other.output is not None:
            self.output = other.output
        return self

    @classmethod
    def from_cmd_args(cls, args: Any) -> "LogConf":
        level = _arg(args, "log_level")
        output = _arg(args, "log_output")
        return cls(
            level=LogLevel.parse(level) if level is not None else None,
            output=output,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LogConf":
        if not isinstance(data, Mapping):
            raise ValueError("log: expected a table")
        level = data.get("level")
        output = data.get("output")
        if level is not None:
            try:
                level = LogLevel(level)
            except ValueError:
                raise ValueError(f"log.level: unknown variant {level!r}") from None
        if output is not None and not isinstance(output, str):
            raise ValueError("log.output: expected a string")
        return cls(level=level, output=output)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.level is not None:
            data["level"] = self.level.value
        if self.output is not None:
            data["output"] = self.output
        return data

    def __str__(self) -> str:
        level = self.level or LogLevel.OFF
        output = self.output or "stdout"
        return f"level={level}, output={output}"