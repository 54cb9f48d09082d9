"""Tests for the logging setup helper."""

import logging

import pytest

from sentiment_aggregator.utils.logging_utils import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_yaml_config_applied_and_file_dir_created(tmp_path):
    log_file = tmp_path / "nested" / "app.log"
    config = tmp_path / "logging.yaml"
    config.write_text(
        "version: 1\n"
        "disable_existing_loggers: false\n"
        "handlers:\n"
        "  file:\n"
        "    class: logging.FileHandler\n"
        f"    filename: {log_file.as_posix()}\n"
        "root:\n"
        "  handlers: [file]\n",
        encoding="utf-8",
    )

    setup_logging(config, log_level="debug")

    assert log_file.parent.is_dir()
    assert logging.getLogger().level == logging.DEBUG


def test_missing_file_falls_back_to_basic_config(tmp_path, mocker):
    basic_config = mocker.patch("sentiment_aggregator.utils.logging_utils.logging.basicConfig")
    setup_logging(tmp_path / "missing.yaml", log_level="WARNING")
    basic_config.assert_called_once()
    assert basic_config.call_args.kwargs["level"] == "WARNING"


def test_invalid_config_falls_back_to_basic_config(tmp_path, mocker):
    config = tmp_path / "logging.yaml"
    config.write_text("version: 99\n", encoding="utf-8")
    basic_config = mocker.patch("sentiment_aggregator.utils.logging_utils.logging.basicConfig")
    setup_logging(config)
    basic_config.assert_called_once()
