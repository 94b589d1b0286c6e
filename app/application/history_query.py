"""History read service: visibility scoping + keyset pagination over the event store."""

import logging
import time
from dataclasses import replace
from typing import Optional, Union

from app.application.event_store import EventStore
from app.application.visibility import VisibilityScoper
from app.core.clock import as_utc
from app.domain.models.history import (
    Actor,
    HistoryAction,
    HistoryEvent,
    HistoryFilter,
    HistoryPage,
    TargetType,
)
from app.domain.validators.history_validator import normalize_action, validate_target_type
from app.observability.metrics import PAGES_SERVED, QUERY_LATENCY_MS, MetricsCollector
from app.security.cursor import CursorCodec

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    """None -> default; below 1 -> 1; above maximum -> maximum. Never rejects."""
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


def _utc_window(event_filter: HistoryFilter) -> HistoryFilter:
    if event_filter.occurred_from is None and event_filter.occurred_to is None:
        return event_filter
    return replace(
        event_filter,
        occurred_from=as_utc(event_filter.occurred_from) if event_filter.occurred_from else None,
        occurred_to=as_utc(event_filter.occurred_to) if event_filter.occurred_to else None,
    )


class HistoryQuery:
    """Public read surface. Reads are safe to run concurrently with writes."""

    def __init__(
        self,
        store: EventStore,
        scoper: VisibilityScoper,
        cursors: CursorCodec,
        logger: logging.Logger,
        *,
        default_limit: int = DEFAULT_PAGE_SIZE,
        max_limit: int = MAX_PAGE_SIZE,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        if not 1 <= default_limit <= max_limit:
            raise ValueError("default_limit must be between 1 and max_limit")
        self._store = store
        self._scoper = scoper
        self._cursors = cursors
        self._logger = logger
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._metrics = metrics

    async def list(
        self,
        actor: Actor,
        event_filter: HistoryFilter,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> HistoryPage:
        """
        One page of events visible to the actor, newest first. nextCursor is set only when
        more rows exist. Raises InvalidCursorError for a cursor this service did not issue.
        """
        started = time.perf_counter()
        after = self._cursors.decode(cursor) if cursor is not None else None
        effective = self._scoper.scope(actor, _utc_window(event_filter))
        page_size = clamp_limit(limit, self._default_limit, self._max_limit)

        rows, has_more = await self._store.query_page(effective, after, page_size)

        next_cursor = self._cursors.encode(rows[-1]) if has_more and rows else None
        elapsed_ms = (time.perf_counter() - started) * 1000
        self._logger.info(
            "history_page_served",
            extra={
                "tenant_id": effective.company_id,
                "actor_id": actor.id,
                "rows": len(rows),
                "has_more": has_more,
                "latency_ms": round(elapsed_ms, 3),
            },
        )
        if self._metrics is not None:
            self._metrics.increment(PAGES_SERVED, tenant_id=effective.company_id)
            self._metrics.observe_latency(QUERY_LATENCY_MS, elapsed_ms)
        return HistoryPage(data=tuple(rows), next_cursor=next_cursor)

    async def for_entity(
        self,
        actor: Actor,
        target_type: Union[TargetType, str],
        target_id: str,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> HistoryPage:
        """History of one target; same scoping and pagination as list()."""
        event_filter = HistoryFilter(
            target_type=validate_target_type(target_type),
            target_id=target_id,
        )
        return await self.list(actor, event_filter, cursor=cursor, limit=limit)

    async def latest_for_target(
        self,
        actor: Actor,
        target_type: Union[TargetType, str],
        target_id: str,
        action: Optional[Union[HistoryAction, str]] = None,
    ) -> Optional[HistoryEvent]:
        """Most recent visible event for a target, optionally restricted to one action."""
        event_filter = HistoryFilter(
            target_type=validate_target_type(target_type),
            target_id=target_id,
        )
        if action is not None:
            event_filter = replace(event_filter, actions=(normalize_action(action),))
        effective = self._scoper.scope(actor, event_filter)
        rows, _ = await self._store.query_page(effective, None, 1)
        return rows[0] if rows else None
