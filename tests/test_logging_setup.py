from __future__ import annotations

import io
import json
import logging

import pytest

from gatekeeper.logging_setup import LOGGER_NAME, configure_logging


@pytest.mark.parametrize(
    ("verbose", "level"),
    [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
)
def test_verbosity_maps_to_level(verbose: int, level: int) -> None:
    logger = configure_logging(verbose, stream=io.StringIO())

    assert logger.name == LOGGER_NAME
    assert logger.level == level
    assert len(logger.handlers) == 1


def test_json_logs_emit_one_object_per_record() -> None:
    stream = io.StringIO()
    configure_logging(1, json_logs=True, stream=stream)

    logging.getLogger("gatekeeper.service").info("Loaded %d rules", 3, extra={"source": "builtin"})

    record = json.loads(stream.getvalue())
    assert record["level"] == "info"
    assert record["logger"] == "gatekeeper.service"
    assert record["message"] == "Loaded 3 rules"
    assert record["source"] == "builtin"
    assert "timestamp" in record


def test_text_logs_hide_debug_by_default() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)
    logger = logging.getLogger("gatekeeper.rules")

    logger.debug("hidden")
    logger.warning("shown")

    assert stream.getvalue() == "WARNING gatekeeper.rules: shown\n"
