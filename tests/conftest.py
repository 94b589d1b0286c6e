"""Shared fixtures: in-memory event store, controllable clock, cursor codec."""

import time
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, Tuple

import pytest

from app.application.event_store import Conflict, InsertResult
from app.core.clock import as_utc
from app.domain.models.history import HistoryEvent, HistoryFilter, PageCursor
from app.security.cursor import CursorCodec
from app.security.encryption import EncryptionService

BASE_TIME = datetime(2025, 10, 6, 9, 0, tzinfo=timezone.utc)


class FakeEventStore:
    """In-memory EventStore. Insert has no await point, so the key check is atomic on the loop."""

    def __init__(self) -> None:
        self.rows: dict[str, HistoryEvent] = {}
        self._by_key: dict[str, str] = {}
        self.insert_calls = 0

    async def insert(self, event: HistoryEvent) -> InsertResult:
        self.insert_calls += 1
        if event.idempotency_key is not None and event.idempotency_key in self._by_key:
            return Conflict(existing=self.rows[self._by_key[event.idempotency_key]])
        self.rows[event.id] = event
        if event.idempotency_key is not None:
            self._by_key[event.idempotency_key] = event.id
        return event

    async def query_page(
        self,
        event_filter: HistoryFilter,
        after: Optional[PageCursor],
        limit: int,
    ) -> Tuple[Sequence[HistoryEvent], bool]:
        def matches(e: HistoryEvent) -> bool:
            f = event_filter
            return (
                e.company_id == f.company_id
                and (f.target_type is None or e.target_type == f.target_type)
                and (f.target_id is None or e.target_id == f.target_id)
                and (f.user_id is None or e.user_id == f.user_id)
                and (not f.actions or e.action in f.actions)
                and (f.occurred_from is None or e.occurred_at >= as_utc(f.occurred_from))
                and (f.occurred_to is None or e.occurred_at <= as_utc(f.occurred_to))
                and (after is None or e.sort_key < (after.occurred_at, after.id))
            )

        ordered = sorted(
            (e for e in self.rows.values() if matches(e)),
            key=lambda e: e.sort_key,
            reverse=True,
        )
        return ordered[:limit], len(ordered) > limit

    def count_with_key(self, key: str) -> int:
        return sum(1 for e in self.rows.values() if e.idempotency_key == key)


class StepClock:
    """Deterministic clock: each now() advances by `step`. A zero step freezes time."""

    def __init__(self, start: datetime = BASE_TIME, step: timedelta = timedelta(milliseconds=1)) -> None:
        self.current = start
        self.step = step

    def now(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def fake_store():
    return FakeEventStore()


@pytest.fixture
def step_clock():
    return StepClock()


@pytest.fixture
def frozen_clock():
    return StepClock(step=timedelta(0))


@pytest.fixture(scope="session")
def cursor_codec():
    # Few KDF iterations keep the suite fast; production uses the default.
    return CursorCodec(EncryptionService("test-cursor-secret-0123456789abcdef", iterations=1000))


@pytest.fixture
def new_york_local_time(monkeypatch):
    """Run with a non-UTC process timezone so naive datetimes would be misread as local time."""
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
