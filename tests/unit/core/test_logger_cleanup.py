"""Tests for logger cleanup cascade via BaseCloseable."""

import pytest

from carryover.core.log import (
    ConsoleSink,
    FileSink,
    Logger,
    LogfireSink,
    OTLPSink,
)


def file_logger(path):
    return Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(path)),
        otlp=OTLPSink(enabled=False),
        logfire=LogfireSink(enabled=False),
    )


def test_logger_closes_file_via_context_manager(tmp_path):
    logger = file_logger(tmp_path / "test.log")
    logger.setup(log_root=tmp_path, session_name="test")

    assert logger.file._file is not None
    assert not logger.file._file.closed

    with logger:
        logger.info("test message")

    assert logger.file._file.closed


def test_logger_closes_on_exception(tmp_path):
    logger = file_logger(tmp_path / "test.log")
    logger.setup(log_root=tmp_path, session_name="test")

    with pytest.raises(ValueError), logger:
        logger.info("before exception")
        raise ValueError("test exception")

    assert logger.file._file.closed


def test_config_cascade_closes_logger(tmp_path):
    """Config.close() cascades to Logger then to every sink."""
    from carryover.core.config import Config

    # the validator installs the logger, opening the file
    config = Config(
        logger=file_logger(tmp_path / "cascade.log"),
        log_root=tmp_path,
        session_name="cascade",
    )

    assert not config.logger.file._file.closed

    config.close()

    assert config.logger.file._file.closed


def test_file_path_template(tmp_path):
    logger = Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True),
    )
    logger.setup(log_root=tmp_path, session_name="rebase-test")

    with logger:
        logger.info("templated path")

    assert (tmp_path / "rebase-test" / "carryover.log").exists()


def test_file_written_and_flushed_on_close(tmp_path):
    log_file = tmp_path / "written.log"
    logger = file_logger(log_file)
    logger.setup(log_root=tmp_path, session_name="write-test")

    with logger:
        logger.info("test message to file")

    assert "test message to file" in log_file.read_text()
