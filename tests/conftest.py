"""
Shared fixtures for retryware tests.
"""

import pytest

from tests.helpers import AsyncRecordingSleep, RecordingSleep


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def async_sleeper():
    return AsyncRecordingSleep()
