import logging

import pytest

from validkit.infrastructure.config.settings import set_config_for_testing
from validkit.infrastructure.monitoring.logger_setup import (
    DEFAULT_LOG_LEVEL,
    LIBRARY_LOGGER,
    resolve_log_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_library_logger():
    yield
    lib_logger = logging.getLogger(LIBRARY_LOGGER)
    for handler in lib_logger.handlers[:]:
        lib_logger.removeHandler(handler)
        handler.close()
    lib_logger.setLevel(logging.NOTSET)


def test_resolve_log_level_by_name():
    assert resolve_log_level("debug") == logging.DEBUG
    assert resolve_log_level("nonsense") == DEFAULT_LOG_LEVEL


def test_resolve_log_level_from_config():
    set_config_for_testing({"logging.level": "WARNING"})
    assert resolve_log_level() == logging.WARNING


def test_setup_logging_replaces_handlers():
    setup_logging(logging.DEBUG)
    lib_logger = setup_logging(logging.ERROR)

    assert lib_logger.name == LIBRARY_LOGGER
    assert lib_logger.level == logging.ERROR
    assert len(lib_logger.handlers) == 1


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "validkit.log"
    lib_logger = setup_logging(logging.INFO, log_file=str(log_file))

    logging.getLogger("validkit.infrastructure.resilience.api_retry").warning("retrying")
    for handler in lib_logger.handlers:
        handler.flush()

    assert len(lib_logger.handlers) == 2
    assert "retrying" in log_file.read_text(encoding="utf-8")


def test_setup_logging_survives_unwritable_file(tmp_path):
    lib_logger = setup_logging(logging.INFO, log_file=str(tmp_path / "missing" / "dir" / "x.log"))
    assert len(lib_logger.handlers) == 1


def test_setup_logging_leaves_root_logger_alone():
    root = logging.getLogger()
    handlers_before = list(root.handlers)

    setup_logging(logging.DEBUG)

    assert root.handlers == handlers_before
