import logging

import pytest

from kme.logging_config import NOISY_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def restore_root_level():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


def test_setup_logging_returns_named_logger_and_sets_level():
    logger = setup_logging("kme.test", level=logging.DEBUG)
    assert logger.name == "kme.test"
    assert logging.getLogger().level == logging.DEBUG


def test_setup_logging_reads_level_from_environment(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    setup_logging("kme.test")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_quiets_client_libraries():
    setup_logging("kme.test", level=logging.DEBUG)
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_setup_logging_when_level_name_unknown_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    setup_logging("kme.test")
    assert logging.getLogger().level == logging.INFO
