"""Domain models. Pure business entities."""

from app.domain.models.history import (
    Actor,
    HistoryAction,
    HistoryEvent,
    HistoryFilter,
    HistoryPage,
    PageCursor,
    TargetType,
)

__all__ = [
    "Actor",
    "HistoryAction",
    "HistoryEvent",
    "HistoryFilter",
    "HistoryPage",
    "PageCursor",
    "TargetType",
]
