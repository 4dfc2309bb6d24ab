import logging

import pytest
from rich.logging import RichHandler

from waveform_session.utils.log import PACKAGE_LOGGER, configure_logging, get_logger


@pytest.fixture
def package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def test_get_logger_uses_package_namespace():
    assert get_logger("history").name == f"{PACKAGE_LOGGER}.history"
    assert get_logger("waveform_session.services.level_meter").name == "waveform_session.services.level_meter"


def test_configure_logging_installs_one_rich_handler(package_logger):
    configure_logging(logging.DEBUG)
    configure_logging(logging.DEBUG)

    handlers = [h for h in package_logger.handlers if isinstance(h, RichHandler)]
    assert len(handlers) == 1
    assert package_logger.level == logging.DEBUG
    assert not package_logger.propagate
    assert get_logger("skip").getEffectiveLevel() == logging.DEBUG
