"""Domain schemas. Request/response and validation."""

from app.domain.schemas.history import (
    HistoryEventResponse,
    HistoryFilterRequest,
    HistoryPageResponse,
    RecordHistoryRequest,
)

__all__ = [
    "HistoryEventResponse",
    "HistoryFilterRequest",
    "HistoryPageResponse",
    "RecordHistoryRequest",
]
