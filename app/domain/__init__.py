"""Domain layer: models, schemas, validators, exceptions. Pure business logic only."""

from app.domain.exceptions import (
    DomainError,
    DomainValidationError,
    IdempotencyKeyReuseError,
    InvalidCursorError,
)
from app.domain.models import (
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
    "DomainError",
    "DomainValidationError",
    "HistoryAction",
    "HistoryEvent",
    "HistoryFilter",
    "HistoryPage",
    "IdempotencyKeyReuseError",
    "InvalidCursorError",
    "PageCursor",
    "TargetType",
]
