"""Shared pytest fixtures."""

import pytest

from identity_migration.services.failure_log import FailureLog
from tests.helpers import SleepRecorder


@pytest.fixture
def failure_log(tmp_path):
    return FailureLog(tmp_path / "migration-log.json")


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def live_env():
    return {"CLERK_SECRET_KEY": "sk_live_abc123"}
