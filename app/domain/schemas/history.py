"""Pydantic schemas for the history API. Wire field names are camelCase and fixed for compatibility."""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.clock import as_utc
from app.domain.models.history import HistoryEvent, HistoryPage, TargetType

_WIRE_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}


def _json_mapping(v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if v is None:
        return v
    try:
        json.dumps(v)
    except (TypeError, ValueError) as e:
        raise ValueError("must be JSON-serializable") from e
    return v


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RecordHistoryRequest(BaseModel):
    """Request schema for recording one history event."""

    model_config = _WIRE_CONFIG

    user_id: str = Field(..., min_length=1, description="Owner of the affected target")
    target_type: TargetType
    target_id: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1, description="Lifecycle action, e.g. created/approved")
    actor_user_id: Optional[str] = Field(None, description="Defaults to the calling user")
    reason: Optional[str] = None
    diff: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    idempotency_nonce: Optional[str] = Field(
        None, description="Derive an idempotency key when no X-Idempotency-Key is sent"
    )

    @field_validator("diff", "metadata")
    @classmethod
    def mapping_must_be_json_serializable(cls, v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return _json_mapping(v)


class HistoryFilterRequest(BaseModel):
    """Filter and pagination parameters for listing history. Tenant is never taken from here."""

    model_config = _WIRE_CONFIG

    target_type: Optional[TargetType] = None
    target_id: Optional[str] = None
    user_id: Optional[str] = None
    actions: List[str] = Field(default_factory=list)
    occurred_from: Optional[datetime] = None
    occurred_to: Optional[datetime] = None
    cursor: Optional[str] = None
    limit: Optional[int] = Field(None, description="Clamped to the configured range")

    @field_validator("occurred_from", "occurred_to")
    @classmethod
    def window_bounds_are_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Bounds sent without an offset are UTC, like every stored occurredAt."""
        return as_utc(v) if v is not None else None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class HistoryEventResponse(BaseModel):
    """One history event on the wire."""

    model_config = _WIRE_CONFIG

    id: str
    company_id: str
    user_id: str
    target_type: TargetType
    target_id: str
    action: str
    actor_user_id: str
    reason: Optional[str] = None
    diff: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    occurred_at: datetime

    @classmethod
    def from_event(cls, event: HistoryEvent) -> "HistoryEventResponse":
        return cls(
            id=event.id,
            company_id=event.company_id,
            user_id=event.user_id,
            target_type=event.target_type,
            target_id=event.target_id,
            action=event.action,
            actor_user_id=event.actor_user_id,
            reason=event.reason,
            diff=event.diff,
            metadata=event.metadata,
            occurred_at=event.occurred_at,
        )


class HistoryPageResponse(BaseModel):
    """Pagination envelope: {data, nextCursor?}."""

    model_config = _WIRE_CONFIG

    data: List[HistoryEventResponse]
    next_cursor: Optional[str] = None

    @classmethod
    def from_page(cls, page: HistoryPage) -> "HistoryPageResponse":
        return cls(
            data=[HistoryEventResponse.from_event(e) for e in page.data],
            next_cursor=page.next_cursor,
        )
