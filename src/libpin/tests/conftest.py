"""
pytest configuration for libpin tests.

Fixtures live in shared_fixtures so test modules can import the fakes too.
"""
import logging

import pytest

from libpin.tests.shared_fixtures import *  # noqa: F401,F403


@pytest.fixture(autouse=True)
def _debug_logging(caplog):
    """Capture libpin debug logs so failures show resolver decisions."""
    caplog.set_level(logging.DEBUG, logger="libpin")
