"""Unit tests for EventRecorder.record_event: lifecycle events, idempotency, validation, failures."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.application.event_recorder import EventRecorder
from app.application.event_store import Conflict
from app.application.exceptions import StorageError
from app.domain.exceptions import DomainValidationError, IdempotencyKeyReuseError
from app.domain.models.history import HistoryAction, TargetType
from app.observability.metrics import MetricsCollector

OWNER = "user-owner"
MANAGER = "user-manager"
COMPANY = "company-1"
ENTRY_ID = "entry-1"


@pytest.fixture
def logger():
    return MagicMock()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def recorder(fake_store, logger, step_clock, metrics):
    return EventRecorder(store=fake_store, logger=logger, clock=step_clock, metrics=metrics)


def _entry_created(**overrides):
    kwargs = dict(
        company_id=COMPANY,
        target_type=TargetType.TIMESHEET_ENTRY,
        target_id=ENTRY_ID,
        action=HistoryAction.CREATED,
        user_id=OWNER,
        actor_user_id=OWNER,
    )
    kwargs.update(overrides)
    return kwargs


# ---------- Lifecycle events ----------


async def test_entry_creation_records_created_event(recorder, fake_store):
    event = await recorder.record_event(**_entry_created())

    assert len(fake_store.rows) == 1
    assert event.action == "created"
    assert event.target_type == TargetType.TIMESHEET_ENTRY
    assert event.target_id == ENTRY_ID
    assert event.user_id == OWNER
    assert event.actor_user_id == OWNER
    assert event.company_id == COMPANY
    assert event.idempotency_key is None


async def test_manager_approval_records_approved_event(recorder):
    event = await recorder.record_event(
        **_entry_created(
            target_type=TargetType.TIMESHEET_APPROVAL,
            target_id="approval-1",
            action=HistoryAction.APPROVED,
            actor_user_id=MANAGER,
        )
    )

    assert event.action == "approved"
    assert event.target_type == TargetType.TIMESHEET_APPROVAL
    assert event.actor_user_id == MANAGER
    assert event.user_id == OWNER


async def test_rejection_stores_reason_verbatim(recorder, fake_store):
    event = await recorder.record_event(
        **_entry_created(
            target_type="TimesheetApproval",
            target_id="approval-1",
            action="rejected",
            actor_user_id=MANAGER,
            reason="Incorrect hours",
        )
    )

    assert event.action == "rejected"
    assert fake_store.rows[event.id].reason == "Incorrect hours"


async def test_same_explicit_key_twice_stores_one_row(recorder, fake_store):
    key = "test-idempotency-hash-123"

    first = await recorder.record_event(**_entry_created(idempotency_key=key))
    second = await recorder.record_event(**_entry_created(idempotency_key=key))

    assert fake_store.count_with_key(key) == 1
    assert second == first


# ---------- Idempotency ----------


async def test_concurrent_writes_with_same_key_store_exactly_one_row(recorder, fake_store):
    key = "retry-key"

    results = await asyncio.gather(
        *(recorder.record_event(**_entry_created(idempotency_key=key)) for _ in range(10))
    )

    assert fake_store.count_with_key(key) == 1
    assert len({e.id for e in results}) == 1


async def test_conflict_returns_existing_row_even_if_payload_differs(recorder, fake_store):
    key = "k-1"
    first = await recorder.record_event(**_entry_created(idempotency_key=key))

    replay = await recorder.record_event(
        **_entry_created(idempotency_key=key, action="updated", diff={"durationMin": 450})
    )

    assert replay == first
    assert replay.action == "created"
    assert replay.diff is None


async def test_without_key_or_nonce_identical_events_are_both_recorded(recorder, fake_store):
    await recorder.record_event(**_entry_created(action="updated", diff={"durationMin": 450}))
    await recorder.record_event(**_entry_created(action="updated", diff={"durationMin": 450}))

    assert len(fake_store.rows) == 2


async def test_nonce_derives_a_stable_key(recorder, fake_store):
    first = await recorder.record_event(**_entry_created(idempotency_nonce="req-42"))
    second = await recorder.record_event(**_entry_created(idempotency_nonce="req-42"))
    other = await recorder.record_event(**_entry_created(idempotency_nonce="req-43"))

    assert first.idempotency_key is not None
    assert second.id == first.id
    assert other.id != first.id
    assert len(fake_store.rows) == 2


async def test_explicit_key_wins_over_nonce(recorder):
    event = await recorder.record_event(
        **_entry_created(idempotency_key="explicit", idempotency_nonce="ignored")
    )
    assert event.idempotency_key == "explicit"


async def test_key_reused_by_another_company_is_rejected(recorder):
    await recorder.record_event(**_entry_created(idempotency_key="shared"))

    with pytest.raises(IdempotencyKeyReuseError):
        await recorder.record_event(**_entry_created(company_id="company-2", idempotency_key="shared"))


async def test_replay_counts_metric(recorder, metrics):
    await recorder.record_event(**_entry_created(idempotency_key="m-1"))
    await recorder.record_event(**_entry_created(idempotency_key="m-1"))

    out = metrics.export_metrics()["counters_by_labels"]
    assert out["history_events_recorded"][f"history_events_recorded:tenant={COMPANY}"] == 1
    assert out["history_idempotent_replays"][f"history_idempotent_replays:tenant={COMPANY}"] == 1


# ---------- Replay cache ----------


async def test_cache_hit_skips_store(fake_store, logger, step_clock):
    cached_store = AsyncMock()
    first = await EventRecorder(store=fake_store, logger=logger, clock=step_clock).record_event(
        **_entry_created(idempotency_key="c-1")
    )
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=first)
    recorder = EventRecorder(store=cached_store, logger=logger, cache=cache, clock=step_clock)

    replay = await recorder.record_event(**_entry_created(idempotency_key="c-1"))

    assert replay == first
    cache.get.assert_awaited_once_with(COMPANY, "c-1")
    cached_store.insert.assert_not_awaited()
    cache.put.assert_not_awaited()


async def test_cache_miss_populates_cache_after_insert(fake_store, logger, step_clock):
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    recorder = EventRecorder(store=fake_store, logger=logger, cache=cache, clock=step_clock)

    event = await recorder.record_event(**_entry_created(idempotency_key="c-2"))

    cache.put.assert_awaited_once_with(event)


async def test_cache_not_consulted_for_unkeyed_writes(fake_store, logger, step_clock):
    cache = AsyncMock()
    recorder = EventRecorder(store=fake_store, logger=logger, cache=cache, clock=step_clock)

    await recorder.record_event(**_entry_created())

    cache.get.assert_not_awaited()
    cache.put.assert_not_awaited()


async def test_cache_read_failure_falls_through_to_store(fake_store, logger, step_clock):
    cache = AsyncMock()
    cache.get = AsyncMock(side_effect=StorageError("Idempotency cache unavailable"))
    recorder = EventRecorder(store=fake_store, logger=logger, cache=cache, clock=step_clock)

    event = await recorder.record_event(**_entry_created(idempotency_key="c-3"))

    assert fake_store.rows[event.id] == event
    logger.error.assert_any_call(
        "history_replay_cache_read_failed",
        extra={"tenant_id": COMPANY, "error": "Idempotency cache unavailable"},
    )


async def test_cache_write_failure_does_not_fail_committed_write(fake_store, logger, step_clock):
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.put = AsyncMock(side_effect=StorageError("Idempotency cache unavailable"))
    recorder = EventRecorder(store=fake_store, logger=logger, cache=cache, clock=step_clock)

    event = await recorder.record_event(**_entry_created(idempotency_key="c-4"))
    replay = await recorder.record_event(**_entry_created(idempotency_key="c-4"))

    assert replay == event
    assert fake_store.count_with_key("c-4") == 1
    assert logger.error.call_count == 2
    assert logger.error.call_args.args[0] == "history_replay_cache_write_failed"


# ---------- Validation ----------


@pytest.mark.parametrize(
    "field",
    ["company_id", "target_type", "target_id", "action", "user_id", "actor_user_id"],
)
async def test_missing_required_field_raises_before_storage(recorder, fake_store, field):
    with pytest.raises(DomainValidationError) as exc_info:
        await recorder.record_event(**_entry_created(**{field: None}))

    assert field in exc_info.value.message
    assert fake_store.insert_calls == 0


async def test_blank_required_field_is_missing(recorder, fake_store):
    with pytest.raises(DomainValidationError):
        await recorder.record_event(**_entry_created(target_id="   "))
    assert fake_store.insert_calls == 0


async def test_unknown_target_type_rejected(recorder, fake_store):
    with pytest.raises(DomainValidationError):
        await recorder.record_event(**_entry_created(target_type="Invoice"))
    assert fake_store.insert_calls == 0


async def test_unserializable_diff_rejected(recorder, fake_store):
    with pytest.raises(DomainValidationError):
        await recorder.record_event(**_entry_created(diff={"when": object()}))
    assert fake_store.insert_calls == 0


async def test_custom_action_is_recorded_as_given(recorder):
    event = await recorder.record_event(**_entry_created(action="reopened"))
    assert event.action == "reopened"


async def test_diff_and_metadata_stored_verbatim(recorder, fake_store):
    diff = {"durationMin": {"before": 480, "after": 450}}
    metadata = {"source": "web_app", "tags": ["bulk"]}

    event = await recorder.record_event(**_entry_created(diff=diff, metadata=metadata))

    assert fake_store.rows[event.id].diff == diff
    assert fake_store.rows[event.id].metadata == metadata


async def test_occurred_at_comes_from_clock(recorder, step_clock):
    expected = step_clock.current
    event = await recorder.record_event(**_entry_created())
    assert event.occurred_at == expected


# ---------- Failures ----------


async def test_storage_error_propagates(logger, step_clock):
    store = AsyncMock()
    store.insert = AsyncMock(side_effect=StorageError("db down"))
    recorder = EventRecorder(store=store, logger=logger, clock=step_clock)

    with pytest.raises(StorageError) as exc_info:
        await recorder.record_event(**_entry_created())

    assert "db down" in exc_info.value.message


async def test_conflict_from_store_is_success(logger, step_clock, fake_store):
    first = await EventRecorder(store=fake_store, logger=logger, clock=step_clock).record_event(
        **_entry_created(idempotency_key="x")
    )
    store = AsyncMock()
    store.insert = AsyncMock(return_value=Conflict(existing=first))
    recorder = EventRecorder(store=store, logger=logger, clock=step_clock)

    event = await recorder.record_event(**_entry_created(idempotency_key="x"))

    assert event == first
    store.insert.assert_awaited_once()
