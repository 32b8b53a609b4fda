"""
Shared pytest fixtures.

Every test gets its own SQLite file (DRAFTWISE_DB_PATH points into tmp_path),
fresh connection pool, and zeroed telemetry counters.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

import pytest

from draftwise.infrastructure.database import init_database, reset_pool
from draftwise.observability.telemetry import reset_counters, reset_latencies


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    db_path = tmp_path / "draftwise.db"
    monkeypatch.setenv("DRAFTWISE_DB_PATH", str(db_path))
    reset_pool()
    init_database()
    reset_counters()
    reset_latencies()
    yield db_path
    reset_pool()


class FakeClock:
    """Controllable UTC clock for cache and tracker tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class FakeProvider:
    """
    Scripted LLM provider. Plays ``responses`` in order and repeats the last
    one; an Exception in the script is raised instead of returned.
    """

    name = "fake"

    def __init__(self, responses: Iterable[str | Exception]):
        self.responses = list(responses)
        self.calls: list[tuple[str, str, float]] = []

    def complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        self.calls.append((system_prompt, user_prompt, temperature))
        index = min(len(self.calls), len(self.responses)) - 1
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def make_provider():
    return FakeProvider
