"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from pet_lifecycle.logging_config import SERVICE_NAME, get_logger, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_json_lines_carry_context(restore_logging, capsys) -> None:
    setup_logging(log_level="INFO", json_logs=True)

    with structlog.contextvars.bound_contextvars(operation="release_escrow"):
        get_logger("pet_lifecycle.test").info("escrow.released", escrow_id="e-1")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["event"] == "escrow.released"
    assert record["operation"] == "release_escrow"
    assert record["service"] == SERVICE_NAME
    assert record["level"] == "info"


def test_quiets_third_party_loggers(restore_logging) -> None:
    setup_logging(log_level="DEBUG")
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger().level == logging.DEBUG
