import gzip
import logging
import sys

import pytest

from easeprobe.logconf import (
    DEFAULT_MAX_BACKUPS,
    DEFAULT_MAX_LOG_AGE,
    DEFAULT_MAX_LOG_SIZE,
    LogLevel,
    LogSettings,
    dump_log_level,
    load_log_level,
)


@pytest.fixture
def root_level():
    root = logging.getLogger()
    saved = root.level
    yield root
    root.setLevel(saved)


def _private_logger(name):
    logger = logging.getLogger(name)
    logger.propagate = False
    return logger


@pytest.mark.parametrize(
    "name, level",
    [
        ("debug", LogLevel.DEBUG),
        ("info", LogLevel.INFO),
        ("warn", LogLevel.WARN),
        ("error", LogLevel.ERROR),
        ("fatal", LogLevel.FATAL),
        ("panic", LogLevel.PANIC),
    ],
)
def test_log_level_yaml(name, level):
    assert load_log_level(name) == level
    assert dump_log_level(level) == name + "\n"


@pytest.mark.parametrize("text", ["none", "- none", "- log::error"])
def test_log_level_yaml_invalid(text):
    with pytest.raises(ValueError):
        load_log_level(text)


def test_dump_invalid_level():
    with pytest.raises(ValueError):
        dump_log_level(100)


def test_log_level_python_mapping():
    assert LogLevel.DEBUG.python_level == logging.DEBUG
    assert LogLevel.WARN.python_level == logging.WARNING
    assert LogLevel.PANIC.python_level == logging.CRITICAL
    assert load_log_level("panic").python_level == logging.CRITICAL


def test_check_default():
    settings = LogSettings(level=LogLevel.PANIC, max_size=0, max_age=0, max_backups=0)
    settings.check_default()
    assert settings.level == LogLevel.INFO
    assert settings.max_size == DEFAULT_MAX_LOG_SIZE
    assert settings.max_age == DEFAULT_MAX_LOG_AGE
    assert settings.max_backups == DEFAULT_MAX_BACKUPS


def test_app_log_self_rotate(tmp_path):
    file = tmp_path / "test.log"
    logger = _private_logger("easeprobe-test-app")
    settings = LogSettings(file=str(file))
    settings.init_log(logger)
    logger.info("hello-app")
    settings.get_writer().flush()
    assert file.exists()
    assert "hello-app" in file.read_text()

    settings.rotate()
    backups = list(tmp_path.glob("test-*"))
    assert len(backups) >= 1
    with gzip.open(backups[0], "rt") as handle:
        assert "hello-app" in handle.read()
    assert "hello-app" not in file.read_text()
    settings.close()
    assert settings.is_stdout is False


def test_system_log_self_rotate(tmp_path, root_level):
    file = tmp_path / "easeprobe.log"
    settings = LogSettings(file=str(file), compress=False)
    settings.init_log(None)
    try:
        logging.getLogger("easeprobe-system-check").warning("system-line")
        settings.get_writer().flush()
        assert "system-line" in file.read_text()
        assert root_level.level == logging.INFO
        settings.rotate()
        backups = list(tmp_path.glob("easeprobe-*.log"))
        assert len(backups) == 1
        assert "system-line" in backups[0].read_text()
    finally:
        settings.close()


def test_non_self_rotate_log(tmp_path):
    file = tmp_path / "my.log"
    logger = _private_logger("easeprobe-test-plain")
    settings = LogSettings(file=str(file), self_rotate=False)
    settings.init_log(logger)
    logger.info("before")
    settings.rotate()
    logger.info("after")
    settings.get_writer().flush()
    assert list(tmp_path.glob("my-*")) == []
    text = file.read_text()
    assert "before" in text and "after" in text
    settings.close()
    assert settings.get_writer().closed is True


def test_open_log_fail(tmp_path):
    logger = _private_logger("easeprobe-test-fail")
    settings = LogSettings(file=str(tmp_path), self_rotate=False)
    settings.init_log(logger)
    assert settings.is_stdout is True
    assert settings.get_writer() is sys.stdout

    settings.close()
    settings.writer = None
    settings.rotate()
    assert settings.get_writer() is sys.stdout


def test_size_rotation(tmp_path):
    file = tmp_path / "big.log"
    settings = LogSettings(file=str(file), max_size=1, compress=False)
    settings.open()
    writer = settings.get_writer()
    chunk = "x" * (600 * 1024)
    writer.write(chunk)
    writer.write(chunk)
    writer.flush()
    backups = list(tmp_path.glob("big-*.log"))
    assert len(backups) == 1
    assert backups[0].stat().st_size == len(chunk)
    assert file.stat().st_size == len(chunk)
    settings.close()


def test_max_backups_kept(tmp_path):
    file = tmp_path / "keep.log"
    settings = LogSettings(file=str(file), max_backups=1, compress=False)
    settings.open()
    writer = settings.get_writer()
    for index in range(3):
        writer.write(f"line {index}\n")
        writer.flush()
        settings.rotate()
    assert settings.is_stdout is False
    assert file.read_text() == ""
    assert len(list(tmp_path.glob("keep-*"))) == 1
    settings.close()


def test_log_info(caplog):
    settings = LogSettings()
    with caplog.at_level(logging.INFO, logger="easeprobe.logconf"):
        settings.log_info("Application")
    assert "Application Log File [Stdout] - Self-Rotate" in caplog.text

    settings = LogSettings(file="app.log", self_rotate=False)
    with caplog.at_level(logging.INFO, logger="easeprobe.logconf"):
        settings.log_info("Web Access")
    assert "Web Access Log File [app.log] - Third-Party Rotate" in caplog.text