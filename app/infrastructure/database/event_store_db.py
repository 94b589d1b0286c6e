"""DB-backed event store. Appends history rows to the timesheet_history table."""

from typing import Optional, Sequence, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.application.event_store import Conflict, InsertResult
from app.application.exceptions import StorageError
from app.core.clock import as_utc
from app.domain.models.history import HistoryEvent, HistoryFilter, PageCursor, TargetType
from app.infrastructure.database.models import HistoryEventRow


def _to_domain(row: HistoryEventRow) -> HistoryEvent:
    return HistoryEvent(
        id=row.id,
        company_id=row.company_id,
        user_id=row.user_id,
        target_type=TargetType(row.target_type),
        target_id=row.target_id,
        action=row.action,
        actor_user_id=row.actor_user_id,
        # SQLite hands back naive datetimes; values are always written in UTC.
        occurred_at=as_utc(row.occurred_at),
        reason=row.reason,
        diff=row.diff,
        metadata=row.metadata_,
        idempotency_key=row.idempotency_key,
    )


def _to_row(event: HistoryEvent) -> HistoryEventRow:
    return HistoryEventRow(
        id=event.id,
        company_id=event.company_id,
        user_id=event.user_id,
        target_type=event.target_type.value,
        target_id=event.target_id,
        action=event.action,
        actor_user_id=event.actor_user_id,
        reason=event.reason,
        diff=event.diff,
        metadata_=event.metadata,
        occurred_at=as_utc(event.occurred_at),
        idempotency_key=event.idempotency_key,
    )


class DbEventStore:
    """
    Implements EventStore on SQLAlchemy. One short-lived session per call.
    Rows are only ever inserted; no UPDATE or DELETE statement is issued.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, event: HistoryEvent) -> InsertResult:
        """Insert the row; a unique violation on idempotency_key resolves to Conflict(existing)."""
        try:
            async with self._session_factory() as session:
                session.add(_to_row(event))
                try:
                    await session.commit()
                except IntegrityError as e:
                    await session.rollback()
                    if event.idempotency_key is None:
                        raise StorageError(f"Insert rejected by constraint: {e.orig}") from e
                    existing = await self._get_by_key(session, event.idempotency_key)
                    if existing is None:
                        raise StorageError(f"Insert rejected by constraint: {e.orig}") from e
                    return Conflict(existing=existing)
        except SQLAlchemyError as e:
            raise StorageError(f"Event store unavailable: {e}") from e
        return event

    async def query_page(
        self,
        event_filter: HistoryFilter,
        after: Optional[PageCursor],
        limit: int,
    ) -> Tuple[Sequence[HistoryEvent], bool]:
        """Keyset page ordered by (occurred_at DESC, id DESC). Fetches one extra row to detect more."""
        if event_filter.company_id is None:
            raise ValueError("query_page requires a tenant-scoped filter")

        conditions = [HistoryEventRow.company_id == event_filter.company_id]
        if event_filter.target_type is not None:
            conditions.append(HistoryEventRow.target_type == event_filter.target_type.value)
        if event_filter.target_id is not None:
            conditions.append(HistoryEventRow.target_id == event_filter.target_id)
        if event_filter.user_id is not None:
            conditions.append(HistoryEventRow.user_id == event_filter.user_id)
        if event_filter.actions:
            conditions.append(HistoryEventRow.action.in_(event_filter.actions))
        if event_filter.occurred_from is not None:
            conditions.append(
                HistoryEventRow.occurred_at >= as_utc(event_filter.occurred_from)
            )
        if event_filter.occurred_to is not None:
            conditions.append(
                HistoryEventRow.occurred_at <= as_utc(event_filter.occurred_to)
            )
        if after is not None:
            after_time = as_utc(after.occurred_at)
            conditions.append(
                or_(
                    HistoryEventRow.occurred_at < after_time,
                    and_(
                        HistoryEventRow.occurred_at == after_time,
                        HistoryEventRow.id < after.id,
                    ),
                )
            )

        stmt = (
            select(HistoryEventRow)
            .where(*conditions)
            .order_by(HistoryEventRow.occurred_at.desc(), HistoryEventRow.id.desc())
            .limit(limit + 1)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"Event store unavailable: {e}") from e

        has_more = len(rows) > limit
        return [_to_domain(r) for r in rows[:limit]], has_more

    async def _get_by_key(self, session: AsyncSession, key: str) -> Optional[HistoryEvent]:
        stmt = select(HistoryEventRow).where(HistoryEventRow.idempotency_key == key)
        result = await session.execute(stmt)
        row = result.scalar_one_or_none()
        return _to_domain(row) if row is not None else None
