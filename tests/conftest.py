import logging

import pytest

from pico_wire import PicoContainer

log_capture: list[str] = []


class ListLogHandler(logging.Handler):
    def emit(self, record):
        log_capture.append(self.format(record))


@pytest.fixture(autouse=True)
def reset_logging_capture():
    log_capture.clear()


@pytest.fixture
def pico_logs():
    """Attach a ListLogHandler to the pico_wire logger at DEBUG for one test."""
    logger = logging.getLogger("pico_wire")
    handler = ListLogHandler()
    previous = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        yield log_capture
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous)


@pytest.fixture
def container():
    pico = PicoContainer()
    yield pico
    pico.shutdown()
