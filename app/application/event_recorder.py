"""History event recorder: the single write entry point used by domain services."""

import logging
import uuid
from typing import Any, Mapping, Optional, Union

from app.application.event_store import Conflict, EventStore, IdempotencyCache
from app.application.exceptions import StorageError
from app.application.idempotency import resolve_idempotency_key
from app.core.clock import Clock, SystemClock
from app.domain.exceptions import IdempotencyKeyReuseError
from app.domain.models.history import HistoryAction, HistoryEvent, TargetType
from app.domain.validators.history_validator import (
    normalize_action,
    validate_json_mapping,
    validate_required_fields,
    validate_target_type,
)
from app.observability.metrics import EVENTS_RECORDED, IDEMPOTENT_REPLAYS, MetricsCollector


class EventRecorder:
    """
    Validates and appends one history event. Recording the same idempotent event twice is a
    successful no-op returning the first stored row. Never updates or deletes other rows and
    never checks the order of prior actions for the target.
    """

    def __init__(
        self,
        store: EventStore,
        logger: logging.Logger,
        *,
        cache: Optional[IdempotencyCache] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._store = store
        self._logger = logger
        self._cache = cache
        self._clock = clock or SystemClock()
        self._metrics = metrics

    async def record_event(
        self,
        *,
        company_id: str,
        target_type: Union[TargetType, str],
        target_id: str,
        action: Union[HistoryAction, str],
        user_id: str,
        actor_user_id: str,
        reason: Optional[str] = None,
        diff: Optional[Mapping[str, Any]] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        idempotency_key: Optional[str] = None,
        idempotency_nonce: Optional[str] = None,
    ) -> HistoryEvent:
        """
        Append one event and return it, or return the pre-existing event when the resolved
        idempotency key is already stored. Raises DomainValidationError before any storage
        access when a required field is missing.
        """
        # Step 1: Validation (only caller-visible failure under normal operation)
        validate_required_fields(
            company_id=company_id,
            target_type=target_type,
            target_id=target_id,
            action=action,
            user_id=user_id,
            actor_user_id=actor_user_id,
        )
        kind = validate_target_type(target_type)
        action_value = normalize_action(action)
        diff_value = validate_json_mapping("diff", diff)
        metadata_value = validate_json_mapping("metadata", metadata)

        # Step 2: Resolve idempotency key
        key = resolve_idempotency_key(
            explicit_key=idempotency_key,
            nonce=idempotency_nonce,
            company_id=company_id,
            target_type=kind,
            target_id=target_id,
            action=action_value,
            actor_user_id=actor_user_id,
        )

        # Step 3: Replay fast path (secondary; cache failure falls through to the store)
        if key is not None and self._cache is not None:
            try:
                cached = await self._cache.get(company_id, key)
            except StorageError as e:
                self._cache_failed("history_replay_cache_read_failed", company_id, e)
                cached = None
            if cached is not None:
                self._replayed(cached)
                return cached

        # Step 4: Append; the store's unique constraint decides races
        event = HistoryEvent(
            id=str(uuid.uuid4()),
            company_id=company_id,
            user_id=user_id,
            target_type=kind,
            target_id=target_id,
            action=action_value,
            actor_user_id=actor_user_id,
            occurred_at=self._clock.now(),
            reason=reason,
            diff=diff_value,
            metadata=metadata_value,
            idempotency_key=key,
        )
        result = await self._store.insert(event)

        if isinstance(result, Conflict):
            stored = result.existing
            if stored.company_id != company_id:
                self._logger.warning(
                    "history_idempotency_key_reused",
                    extra={"tenant_id": company_id, "owner_tenant_id": stored.company_id},
                )
                raise IdempotencyKeyReuseError(
                    "Idempotency key is already bound to an event of another company"
                )
            self._replayed(stored)
        else:
            stored = result
            self._logger.info(
                "history_event_recorded",
                extra={
                    "tenant_id": stored.company_id,
                    "event_id": stored.id,
                    "target_type": stored.target_type.value,
                    "target_id": stored.target_id,
                    "action": stored.action,
                    "actor_user_id": stored.actor_user_id,
                },
            )
            if self._metrics is not None:
                self._metrics.increment(EVENTS_RECORDED, tenant_id=stored.company_id)

        # Step 5: Populate replay cache; the row is already committed, so failure does NOT fail the write
        if key is not None and self._cache is not None:
            try:
                await self._cache.put(stored)
            except StorageError as e:
                self._cache_failed("history_replay_cache_write_failed", stored.company_id, e)

        return stored

    def _replayed(self, stored: HistoryEvent) -> None:
        self._logger.info(
            "history_idempotent_replay",
            extra={"tenant_id": stored.company_id, "event_id": stored.id},
        )
        if self._metrics is not None:
            self._metrics.increment(IDEMPOTENT_REPLAYS, tenant_id=stored.company_id)

    def _cache_failed(self, message: str, company_id: str, error: StorageError) -> None:
        self._logger.error(message, extra={"tenant_id": company_id, "error": error.message})
