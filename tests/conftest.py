from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_cli_logging():
    """Drop handlers the CLI installs so they do not outlive a test's capture."""

    yield
    logger = logging.getLogger("tar_template")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
