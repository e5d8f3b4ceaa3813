"""Test per-sink level filtering."""

import pytest

from carryover.core.log import (
    LEVELS,
    ConsoleSink,
    FileSink,
    LogfireSink,
    OTLPSink,
    level_name,
    setup_logger,
)


def write_all_levels(tmp_path, level):
    log_file = tmp_path / f"{level}.log"
    logger = setup_logger(
        log_root=tmp_path,
        session_name="test",
        console=ConsoleSink(enabled=False),
        otlp=OTLPSink(enabled=False),
        file=FileSink(enabled=True, level=level, path=str(log_file)),
        logfire=LogfireSink(enabled=False),
    )
    logger.trace("TRACE message")
    logger.debug("DEBUG message")
    logger.info("INFO message")
    logger.warn("WARN message")
    logger.error("ERROR message")
    logger.close()
    return log_file.read_text()


@pytest.mark.parametrize("level, kept, dropped", [
    ("trace", ["TRACE", "DEBUG", "INFO", "WARN", "ERROR"], []),
    ("debug", ["DEBUG", "INFO", "ERROR"], ["TRACE"]),
    ("info", ["INFO", "WARN", "ERROR"], ["TRACE", "DEBUG"]),
    ("warn", ["WARN", "ERROR"], ["DEBUG", "INFO"]),
    ("error", ["ERROR"], ["INFO", "WARN"]),
])
def test_file_sink_level(tmp_path, level, kept, dropped):
    content = write_all_levels(tmp_path, level)

    for name in kept:
        assert f"{name} message" in content
    for name in dropped:
        assert f"{name} message" not in content


def test_extra_attributes_are_appended(tmp_path):
    log_file = tmp_path / "attrs.log"
    logger = setup_logger(
        log_root=tmp_path,
        session_name="test",
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, level="info", path=str(log_file)),
    )
    logger.info("Dropping commit {sha}", sha="abc123")
    logger.close()

    content = log_file.read_text()
    assert "Dropping commit abc123" in content
    assert "sha='abc123'" in content


def test_level_ordering():
    order = ['trace', 'debug', 'info', 'warn', 'error', 'fatal']

    for lower, higher in zip(order, order[1:]):
        assert LEVELS[lower] < LEVELS[higher]


def test_level_name_round_trips():
    for name, number in LEVELS.items():
        assert level_name(number) == name
