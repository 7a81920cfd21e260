import io
import logging

from stampslot.logging_utils import level_for_verbosity, setup_logging


def test_verbosity_levels():
    assert level_for_verbosity(0) == logging.WARNING
    assert level_for_verbosity(1) == logging.INFO
    assert level_for_verbosity(2) == logging.DEBUG
    assert level_for_verbosity(5) == logging.DEBUG


def test_setup_is_idempotent_and_rebinds_stream():
    first, second = io.StringIO(), io.StringIO()
    logger = setup_logging(0, logger_name="stampslot.test_logging", stream=first)
    setup_logging(1, logger_name="stampslot.test_logging", stream=second)

    tagged = [h for h in logger.handlers if getattr(h, "_stampslot_handler", False)]
    assert len(tagged) == 1
    assert logger.level == logging.INFO

    logger.info("hello")
    assert first.getvalue() == ""
    assert "hello" in second.getvalue()
