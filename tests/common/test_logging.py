import logging
import pytest
from src.common.logging import configure_logging, log_execution_time, setup_logger

logger = logging.getLogger("src.tests.timing")

class Lookup:
    @log_execution_time(logger, slow_seconds=0.0)
    def find(self, city, limit=10):
        return [city] * limit

    @log_execution_time(logger)
    def broken(self, city):
        raise RuntimeError("store down")

def test_timing_log_names_the_city(caplog):
    with caplog.at_level(logging.DEBUG, logger="src.tests.timing"):
        assert Lookup().find("Delhi", limit=2) == ["Delhi", "Delhi"]
    assert "find[Delhi] took" in caplog.text

def test_timing_log_reads_keyword_city(caplog):
    with caplog.at_level(logging.DEBUG, logger="src.tests.timing"):
        Lookup().find(city="Mumbai", limit=1)
    assert "find[Mumbai]" in caplog.text

def test_failure_is_logged_and_reraised(caplog):
    with pytest.raises(RuntimeError):
        Lookup().broken("Bangalore")
    assert "broken[Bangalore] failed" in caplog.text

def test_setup_logger_keeps_one_handler():
    first = setup_logger("src.tests.handlers", logging.INFO)
    second = setup_logger("src.tests.handlers", logging.WARNING)
    assert first is second
    assert len(second.handlers) == 1
    assert second.level == logging.WARNING

def test_configure_logging_parses_level_names():
    try:
        assert configure_logging("debug").level == logging.DEBUG
        assert configure_logging("nonsense").level == logging.INFO
    finally:
        logging.getLogger("src").setLevel(logging.NOTSET)
