# Application layer: services that orchestrate domain and infrastructure.

from app.application.event_recorder import EventRecorder
from app.application.event_store import Conflict, EventStore, IdempotencyCache, InsertResult
from app.application.exceptions import ApplicationError, StorageError
from app.application.history_query import HistoryQuery
from app.application.visibility import VisibilityScoper

__all__ = [
    "EventRecorder",
    "HistoryQuery",
    "VisibilityScoper",
    "ApplicationError",
    "StorageError",
    "Conflict",
    "EventStore",
    "IdempotencyCache",
    "InsertResult",
]
