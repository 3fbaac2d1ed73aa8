# src/users_api/tests/test_logging/test_levels.py
import logging

import pytest

from users_api.core.logging.levels import VERBOSE, LogLevel, levelno_for, register_verbose_level


def test_levels_map_to_stdlib_numbers():
    assert LogLevel.DEBUG.levelno == logging.DEBUG
    assert LogLevel.VERBOSE.levelno == VERBOSE
    assert LogLevel.INFO.levelno == logging.INFO
    assert LogLevel.WARN.levelno == logging.WARNING
    assert LogLevel.ERROR.levelno == logging.ERROR


def test_verbose_sits_between_debug_and_info():
    assert logging.DEBUG < VERBOSE < logging.INFO


@pytest.mark.parametrize(
    "name, expected",
    [
        ("info", LogLevel.INFO),
        ("INFO", LogLevel.INFO),
        ("Warning", LogLevel.WARN),
        ("critical", LogLevel.ERROR),
        ("verbose", LogLevel.VERBOSE),
        (LogLevel.DEBUG, LogLevel.DEBUG),
    ],
)
def test_parse_accepts_casing_and_stdlib_spellings(name, expected):
    assert LogLevel.parse(name) is expected


def test_parse_rejects_unknown_names():
    with pytest.raises(ValueError, match="Unknown log level"):
        LogLevel.parse("loud")


def test_from_levelno_picks_most_severe_level_not_above():
    assert LogLevel.from_levelno(logging.CRITICAL) is LogLevel.ERROR
    assert LogLevel.from_levelno(logging.WARNING) is LogLevel.WARN
    assert LogLevel.from_levelno(17) is LogLevel.VERBOSE
    assert LogLevel.from_levelno(5) is LogLevel.DEBUG


def test_levelno_for_and_registered_name():
    register_verbose_level()
    assert levelno_for("warn") == logging.WARNING
    assert logging.getLevelName(VERBOSE) == "VERBOSE"
