"""Event store protocol. Application layer depends on this; infrastructure implements it."""

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple, Union

from app.domain.models.history import HistoryEvent, HistoryFilter, PageCursor


@dataclass(frozen=True)
class Conflict:
    """Insert lost to an existing row with the same idempotency key. Carries the stored row."""

    existing: HistoryEvent


InsertResult = Union[HistoryEvent, Conflict]


class EventStore(Protocol):
    """
    Append-only storage for history events. Uniqueness of idempotency_key is enforced by the
    storage layer itself so it holds across processes.
    """

    async def insert(self, event: HistoryEvent) -> InsertResult:
        """Append event. On a duplicate non-null idempotency key return Conflict(existing)."""
        ...

    async def query_page(
        self,
        event_filter: HistoryFilter,
        after: Optional[PageCursor],
        limit: int,
    ) -> Tuple[Sequence[HistoryEvent], bool]:
        """
        Up to `limit` rows matching the filter ordered by (occurred_at DESC, id DESC), strictly
        after `after` in that order. The flag is True only if the page is full and more rows exist.
        """
        ...


class IdempotencyCache(Protocol):
    """Fast-path replay cache for idempotent writes. The store stays authoritative."""

    async def get(self, company_id: str, key: str) -> Optional[HistoryEvent]:
        ...

    async def put(self, event: HistoryEvent) -> None:
        ...
