"""Security-layer exceptions. Typed, no HTTP."""


class SecurityError(Exception):
    """Base for all security-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthorizationError(SecurityError):
    """Raised when the actor lacks the permission an operation requires."""


class EncryptionError(SecurityError):
    """Raised when sealing/unsealing fails (e.g. missing key, wrong key, tampered token)."""
