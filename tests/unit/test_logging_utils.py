"""Unit tests for package logging setup."""

import logging

import pytest

from lesson_relay.utils import configure_logging
from lesson_relay.utils.logging import HTTP_LOGGERS


@pytest.fixture
def restore_http_loggers():
    saved = {}
    for name in HTTP_LOGGERS:
        target = logging.getLogger(name)
        saved[name] = (list(target.handlers), target.level, target.propagate)
    yield
    for name, (handlers, level, propagate) in saved.items():
        target = logging.getLogger(name)
        target.handlers[:] = handlers
        target.setLevel(level)
        target.propagate = propagate


def test_configure_logging_attaches_single_handler():
    logger = configure_logging(logging.DEBUG, name="lesson_relay.test_logging", extra_loggers=())
    configure_logging(logging.DEBUG, name="lesson_relay.test_logging", extra_loggers=())

    stream_handlers = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
    assert len(stream_handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_http_library_loggers_are_bound_by_default(restore_http_loggers):
    configure_logging(logging.DEBUG, name="lesson_relay.test_logging_http")

    for name in HTTP_LOGGERS:
        target = logging.getLogger(name)
        assert target.handlers
        # request lines from httpx stay out of DEBUG output
        assert target.level == logging.INFO


def test_explicit_extra_loggers_replace_http_defaults(restore_http_loggers):
    before = {name: logging.getLogger(name).level for name in HTTP_LOGGERS}

    configure_logging(
        logging.WARNING,
        name="lesson_relay.test_logging_extra",
        extra_loggers=["lesson_relay.test_third_party"],
    )

    extra = logging.getLogger("lesson_relay.test_third_party")
    assert extra.level == logging.WARNING
    assert extra.handlers
    assert {name: logging.getLogger(name).level for name in HTTP_LOGGERS} == before
