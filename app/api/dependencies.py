"""FastAPI dependency injection: store, cache, services, actor. Built once per app in the lifespan."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request

from app.application.event_recorder import EventRecorder
from app.application.event_store import EventStore, IdempotencyCache
from app.application.history_query import HistoryQuery
from app.application.visibility import VisibilityScoper
from app.config.settings import AppSettings, get_settings
from app.domain.models.history import Actor
from app.observability.metrics import MetricsCollector
from app.security.cursor import CursorCodec
from app.security.rbac import RBACService


def get_event_store(request: Request) -> EventStore:
    """Return the store created at startup."""
    return request.app.state.event_store


def get_idempotency_cache(request: Request) -> Optional[IdempotencyCache]:
    """Return the Redis replay cache, or None when no redis_url is configured."""
    return getattr(request.app.state, "idempotency_cache", None)


def get_cursor_codec(request: Request) -> CursorCodec:
    return request.app.state.cursor_codec


def get_metrics(request: Request) -> MetricsCollector:
    return request.app.state.metrics


def get_rbac() -> RBACService:
    return RBACService()


def get_event_recorder(
    store: Annotated[EventStore, Depends(get_event_store)],
    cache: Annotated[Optional[IdempotencyCache], Depends(get_idempotency_cache)],
    metrics: Annotated[MetricsCollector, Depends(get_metrics)],
) -> EventRecorder:
    """Build EventRecorder with injected store, cache, metrics and logger."""
    return EventRecorder(
        store=store,
        logger=logging.getLogger("app.history.recorder"),
        cache=cache,
        metrics=metrics,
    )


def get_history_query(
    store: Annotated[EventStore, Depends(get_event_store)],
    cursors: Annotated[CursorCodec, Depends(get_cursor_codec)],
    metrics: Annotated[MetricsCollector, Depends(get_metrics)],
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> HistoryQuery:
    """Build HistoryQuery with configured page limits."""
    return HistoryQuery(
        store=store,
        scoper=VisibilityScoper(),
        cursors=cursors,
        logger=logging.getLogger("app.history.query"),
        default_limit=settings.history_page_default,
        max_limit=settings.history_page_max,
        metrics=metrics,
    )


def get_actor(
    request: Request,
    rbac: Annotated[RBACService, Depends(get_rbac)],
    x_user_id: Annotated[Optional[str], Header(alias="X-User-ID")] = None,
    x_user_permissions: Annotated[Optional[str], Header(alias="X-User-Permissions")] = None,
    x_user_role: Annotated[Optional[str], Header(alias="X-User-Role")] = None,
) -> Actor:
    """
    Actor from authenticated session headers. Company comes from the tenant middleware.
    Explicit permissions win over role presets; with neither the actor has no permissions.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="X-User-ID header is required")
    if x_user_permissions is not None:
        permissions = frozenset(p.strip() for p in x_user_permissions.split(",") if p.strip())
    elif x_user_role:
        permissions = rbac.permissions_for(x_user_role)
    else:
        permissions = frozenset()
    return Actor(
        id=x_user_id.strip(),
        company_id=request.state.tenant_id,
        permissions=permissions,
    )
