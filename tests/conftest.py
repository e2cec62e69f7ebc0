"""Shared fixtures for the correlator test suite."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from correlator.builder.alerts import AlertContext, AlertFactory
from correlator.builder.events import ProcessEvent


ANCHOR = datetime(2025, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def anchor():
    return ANCHOR


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def make_log():
    """Factory for simple process logs placed ``minutes`` after the anchor."""

    def _make(minutes=0, host="host1", user="alice", technique="T1059", action="process-started"):
        return ProcessEvent(
            timestamp=ANCHOR + timedelta(minutes=minutes),
            dataset="endpoint.events.process",
            host=host,
            user=user,
            action=action,
            technique_id=technique,
            process_name="powershell.exe",
            pid=4242,
        )

    return _make


@pytest.fixture
def make_alert(rng):
    """Factory for anchor alerts built by the default alert factory."""
    factory = AlertFactory(rng)

    def _make(technique="T1059", host="host1", user="alice", timestamp=ANCHOR, space="default"):
        return factory.create_alert(AlertContext(
            host=host, user=user, technique_id=technique, timestamp=timestamp, space=space,
        ))

    return _make
