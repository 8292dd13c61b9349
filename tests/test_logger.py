import logging
import sys

import pytest

from soapkit.catalog import CatalogCache
from soapkit.logger import setup_logger
from soapkit.sources import BytesSource


@pytest.fixture
def fresh_logger(monkeypatch):
    yield monkeypatch
    monkeypatch.undo()
    setup_logger()


def test_level_comes_from_environment(fresh_logger):
    fresh_logger.setenv("SOAPKIT_LOG_LEVEL", "debug")
    log = setup_logger()
    assert log.name == "soapkit"
    assert log.level == logging.DEBUG


def test_unknown_level_falls_back_to_warning(fresh_logger):
    fresh_logger.setenv("SOAPKIT_LOG_LEVEL", "chatty")
    assert setup_logger().level == logging.WARNING


def test_single_stderr_handler_after_repeated_setup(fresh_logger):
    setup_logger()
    log = setup_logger()
    assert len(log.handlers) == 1
    assert log.handlers[0].stream is sys.stderr


def test_catalog_load_failure_is_logged_as_error(caplog):
    CatalogCache(BytesSource(None)).get_catalog()
    errors = [r for r in caplog.records if r.name == "soapkit" and r.levelno == logging.ERROR]
    assert errors and "Catalog source unavailable" in errors[0].getMessage()
