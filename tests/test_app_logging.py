"""Tests for logging configuration."""

import logging
from dataclasses import replace

from substance_tracker.api.app import create_app
from substance_tracker.app_logging import configure_logging


def test_configure_logging_idempotent() -> None:
    logger = logging.getLogger("substance_tracker")
    logger.handlers.clear()

    configure_logging()
    first_count = len(logger.handlers)

    configure_logging()
    second_count = len(logger.handlers)

    assert first_count == 1
    assert second_count == 1


def test_create_app_applies_configured_level(container, settings) -> None:
    logger = logging.getLogger("substance_tracker")
    quiet_settings = settings.model_copy(update={"log_level": "warning"})

    create_app(replace(container, settings=quiet_settings))

    assert logger.level == logging.WARNING
    configure_logging()
