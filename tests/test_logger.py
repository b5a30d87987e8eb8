import json
import logging

import pytest

from metricd import logger


@pytest.mark.parametrize(
    "level, expected",
    [
        ("info", logging.INFO),
        ("debug", logging.DEBUG),
        ("warn", logging.WARNING),
        ("ERROR", logging.ERROR),
        ("", logging.INFO),
    ],
)
def test_initialize_valid_levels(level, expected):
    result = logger.initialize(level)
    assert result is logger.get_logger()
    assert logger.get_logger().level == expected


@pytest.mark.parametrize("level", ["notalevel", "Info", "warning"])
def test_initialize_invalid_level(level):
    before = logger.get_logger()
    with pytest.raises(ValueError):
        logger.initialize(level)
    assert logger.get_logger() is before


def test_logger_writes_json_lines(capsys):
    log = logger.initialize("info")
    log.info("hello")
    record = json.loads(capsys.readouterr().err.strip())
    assert record["msg"] == "hello"
    assert record["level"] == "info"


def test_level_filters_lower_records(capsys):
    log = logger.initialize("info")
    log.debug("hidden")
    assert capsys.readouterr().err == ""


def test_reinitialize_does_not_duplicate_output(capsys):
    logger.initialize("debug")
    log = logger.initialize("debug")
    log.debug("once")
    lines = capsys.readouterr().err.strip().splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["level"] == "debug"