"""Tests for structlog setup."""

import logging

import pytest
import structlog

from chatseq.logging import DRIVER_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.mark.parametrize("debug", [True, False])
def test_bound_context_is_merged_into_events(debug):
    setup_logging(debug)

    assert structlog.get_config()["processors"][0] is structlog.contextvars.merge_contextvars


def test_production_renders_json():
    setup_logging(debug=False)

    assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)


def test_driver_loggers_are_quieted_in_debug_mode():
    setup_logging(debug=True)

    for name in DRIVER_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
