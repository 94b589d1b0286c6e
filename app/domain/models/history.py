"""Domain model for history events. Pure business semantics, no ORM or infrastructure."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


class TargetType(str, Enum):
    """Kind of entity whose lifecycle is recorded."""

    TIMESHEET = "Timesheet"
    TIMESHEET_ENTRY = "TimesheetEntry"
    TIMESHEET_APPROVAL = "TimesheetApproval"
    ACTION_CODE = "ActionCode"
    LEAVE_REQUEST = "LeaveRequest"


class HistoryAction(str, Enum):
    """
    Well-known lifecycle actions. The log is not limited to these:
    any non-empty action string is recorded as given.
    """

    CREATED = "created"
    UPDATED = "updated"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELETED = "deleted"


@dataclass(frozen=True)
class HistoryEvent:
    """
    Immutable history record: what happened to which target, for whom, by whom, and when.
    Never updated or deleted once stored.
    """

    id: str
    company_id: str
    user_id: str
    target_type: TargetType
    target_id: str
    action: str
    actor_user_id: str
    occurred_at: datetime
    reason: Optional[str] = None
    diff: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    idempotency_key: Optional[str] = None

    @property
    def sort_key(self) -> Tuple[datetime, str]:
        """Composite keyset used for ordering and pagination."""
        return (self.occurred_at, self.id)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape. The idempotency key is internal and never exposed."""
        return {
            "id": self.id,
            "companyId": self.company_id,
            "userId": self.user_id,
            "targetType": self.target_type.value,
            "targetId": self.target_id,
            "action": self.action,
            "actorUserId": self.actor_user_id,
            "reason": self.reason,
            "diff": self.diff,
            "metadata": self.metadata,
            "occurredAt": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class Actor:
    """Authenticated principal as supplied by the API layer. Trusted as given."""

    id: str
    company_id: str
    permissions: FrozenSet[str] = frozenset()

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


@dataclass(frozen=True)
class HistoryFilter:
    """Read filter. company_id is only ever set by visibility scoping, never by clients."""

    company_id: Optional[str] = None
    target_type: Optional[TargetType] = None
    target_id: Optional[str] = None
    user_id: Optional[str] = None
    actions: Tuple[str, ...] = field(default_factory=tuple)
    occurred_from: Optional[datetime] = None
    occurred_to: Optional[datetime] = None


@dataclass(frozen=True)
class PageCursor:
    """Decoded position of the last row of a page."""

    occurred_at: datetime
    id: str


@dataclass(frozen=True)
class HistoryPage:
    """One page of history plus the opaque continuation cursor, if more rows exist."""

    data: Tuple[HistoryEvent, ...]
    next_cursor: Optional[str] = None
