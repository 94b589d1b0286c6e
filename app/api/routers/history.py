"""History API router: record events, filtered listing, per-entity history."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse

from app.api.dependencies import get_actor, get_event_recorder, get_history_query, get_rbac
from app.application.event_recorder import EventRecorder
from app.application.history_query import HistoryQuery
from app.domain.models.history import Actor, HistoryFilter, TargetType
from app.domain.schemas.history import (
    HistoryEventResponse,
    HistoryFilterRequest,
    HistoryPageResponse,
    RecordHistoryRequest,
)
from app.security.rbac import PERMISSION_RECORD, RBACService

router = APIRouter()


@router.post("", response_model=HistoryEventResponse, response_model_exclude_none=True)
async def record_history(
    body: RecordHistoryRequest,
    x_idempotency_key: Annotated[Optional[str], Header(alias="X-Idempotency-Key")] = None,
    actor: Annotated[Actor, Depends(get_actor)] = ...,
    rbac: Annotated[RBACService, Depends(get_rbac)] = ...,
    recorder: Annotated[EventRecorder, Depends(get_event_recorder)] = ...,
):
    """Record one event in the caller's company. Idempotent via X-Idempotency-Key or idempotencyNonce."""
    rbac.check_permission(actor, PERMISSION_RECORD)
    event = await recorder.record_event(
        company_id=actor.company_id,
        target_type=body.target_type,
        target_id=body.target_id,
        action=body.action,
        user_id=body.user_id,
        actor_user_id=body.actor_user_id or actor.id,
        reason=body.reason,
        diff=body.diff,
        metadata=body.metadata,
        idempotency_key=x_idempotency_key,
        idempotency_nonce=body.idempotency_nonce,
    )
    return HistoryEventResponse.from_event(event)


@router.post("/filter", response_model=HistoryPageResponse, response_model_exclude_none=True)
async def list_history(
    body: HistoryFilterRequest,
    actor: Annotated[Actor, Depends(get_actor)] = ...,
    history: Annotated[HistoryQuery, Depends(get_history_query)] = ...,
):
    """Paginated history. Employees see their own rows; org-wide viewers see the whole company."""
    event_filter = HistoryFilter(
        target_type=body.target_type,
        target_id=body.target_id,
        user_id=body.user_id,
        actions=tuple(body.actions),
        occurred_from=body.occurred_from,
        occurred_to=body.occurred_to,
    )
    page = await history.list(actor, event_filter, cursor=body.cursor, limit=body.limit)
    return HistoryPageResponse.from_page(page)


@router.get(
    "/entity/{target_type}/{target_id}",
    response_model=HistoryPageResponse,
    response_model_exclude_none=True,
)
async def history_for_entity(
    target_type: TargetType,
    target_id: str,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
    actor: Annotated[Actor, Depends(get_actor)] = ...,
    history: Annotated[HistoryQuery, Depends(get_history_query)] = ...,
):
    """History of one entity, newest first, with the same visibility rules as /filter."""
    page = await history.for_entity(actor, target_type, target_id, cursor=cursor, limit=limit)
    return HistoryPageResponse.from_page(page)


@router.get(
    "/entity/{target_type}/{target_id}/latest",
    response_model=HistoryEventResponse,
    response_model_exclude_none=True,
)
async def latest_for_entity(
    target_type: TargetType,
    target_id: str,
    action: Annotated[Optional[str], Query()] = None,
    actor: Annotated[Actor, Depends(get_actor)] = ...,
    history: Annotated[HistoryQuery, Depends(get_history_query)] = ...,
):
    """Most recent visible event for an entity, optionally of one action."""
    event = await history.latest_for_target(actor, target_type, target_id, action=action)
    if event is None:
        return JSONResponse(status_code=404, content={"detail": "No history for this entity"})
    return HistoryEventResponse.from_event(event)
