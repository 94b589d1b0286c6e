"""Domain-specific exceptions. Pure domain layer, no infrastructure."""


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DomainValidationError(DomainError):
    """Raised when a history event is missing a required field or carries an invalid value."""


class InvalidCursorError(DomainError):
    """Raised when a pagination cursor cannot be decoded into an (occurred_at, id) pair."""


class IdempotencyKeyReuseError(DomainError):
    """Raised when an idempotency key is already bound to an event of another company."""
