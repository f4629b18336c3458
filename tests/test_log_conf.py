import argparse
import logging
import sys

import pytest

from realmrelay.log_conf import LogConf, LogLevel


def test_parse_is_case_insensitive():
    assert LogLevel.parse("WARN") is LogLevel.WARN
    assert LogLevel.parse("Debug") is LogLevel.DEBUG


def test_parse_unknown_falls_back_to_off():
    assert LogLevel.parse("verbose") is LogLevel.OFF


def test_level_str():
    assert str(LogLevel.parse("TRACE")) == "trace"


def test_display_defaults():
    assert str(LogConf()) == "level=off, output=stdout"


def test_display_set_values():
    assert str(LogConf(level=LogLevel.INFO, output="stderr")) == "level=info, output=stderr"


def test_build_default_stdout_and_off():
    level, stream = LogConf().build()
    assert stream is sys.stdout
    assert level > logging.CRITICAL


def test_build_levels_ordered():
    levels = [LogConf(level=lv).build()[0] for lv in
              (LogLevel.TRACE, LogLevel.DEBUG, LogLevel.INFO, LogLevel.WARN, LogLevel.ERROR)]
    assert levels == sorted(levels)
    assert LogConf(level=LogLevel.DEBUG).build()[0] == logging.DEBUG


def test_build_stderr():
    assert LogConf(output="stderr").build()[1] is sys.stderr


def test_build_file_appends(tmp_path):
    path = tmp_path / "out.log"
    path.write_text("first\n")
    _, stream = LogConf(output=str(path)).build()
    with stream:
        stream.write("second\n")
    assert path.read_text() == "first\nsecond\n"


def test_build_unopenable_file(tmp_path):
    with pytest.raises(OSError):
        LogConf(output=str(tmp_path / "missing" / "x.log")).build()


def test_rst_overrides_only_set_fields():
    conf = LogConf(level=LogLevel.INFO, output="a.log")
    conf.rst_field(LogConf(level=LogLevel.ERROR))
    assert conf == LogConf(level=LogLevel.ERROR, output="a.log")


def test_take_fills_only_unset_fields():
    conf = LogConf(level=LogLevel.INFO)
    conf.take_field(LogConf(level=LogLevel.ERROR, output="b.log"))
    assert conf == LogConf(level=LogLevel.INFO, output="b.log")


def test_is_empty():
    assert LogConf().is_empty() is True
    assert LogConf(output="stdout").is_empty() is False


def test_from_cmd_args_namespace():
    ns = argparse.Namespace(log_level="INFO", log_output=None)
    assert LogConf.from_cmd_args(ns) == LogConf(level=LogLevel.INFO)


def test_from_cmd_args_mapping():
    conf = LogConf.from_cmd_args({"log_output": "x.log"})
    assert conf == LogConf(output="x.log")


def test_dict_round_trip():
    conf = LogConf(level=LogLevel.WARN, output="stderr")
    assert LogConf.from_dict(conf.to_dict()) == conf
    assert LogConf().to_dict() == {}


def test_from_dict_is_case_sensitive():
    with pytest.raises(ValueError):
        LogConf.from_dict({"level": "INFO"})