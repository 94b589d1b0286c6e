"""Opaque keyset cursors. Clients must never parse them."""

from datetime import datetime

from app.core.clock import as_utc
from app.domain.exceptions import InvalidCursorError
from app.domain.models.history import HistoryEvent, PageCursor
from app.security.encryption import EncryptionService
from app.security.exceptions import EncryptionError

_SEPARATOR = "|"


class CursorCodec:
    """Seals an (occurred_at, id) pair so tampered or foreign cursors are rejected."""

    def __init__(self, encryption: EncryptionService) -> None:
        self._encryption = encryption

    def encode(self, event: HistoryEvent) -> str:
        occurred_at = as_utc(event.occurred_at)
        return self._encryption.encrypt(f"{occurred_at.isoformat()}{_SEPARATOR}{event.id}")

    def decode(self, cursor: str) -> PageCursor:
        """Raises InvalidCursorError for anything that is not a cursor issued by encode()."""
        if not cursor or not cursor.strip():
            raise InvalidCursorError("Cursor must not be empty")
        try:
            plain = self._encryption.decrypt(cursor.strip())
        except EncryptionError as e:
            raise InvalidCursorError("Cursor is malformed or has been tampered with") from e

        raw_time, sep, event_id = plain.partition(_SEPARATOR)
        if not sep or not event_id:
            raise InvalidCursorError("Cursor does not encode an (occurredAt, id) pair")
        try:
            occurred_at = datetime.fromisoformat(raw_time)
        except ValueError as e:
            raise InvalidCursorError("Cursor timestamp is not ISO-8601") from e
        return PageCursor(occurred_at=as_utc(occurred_at), id=event_id)
