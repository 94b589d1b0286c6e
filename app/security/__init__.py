"""Security: RBAC, cursor sealing, encryption. No FastAPI."""

from app.security.cursor import CursorCodec
from app.security.encryption import EncryptionService
from app.security.rbac import (
    PERMISSION_RECORD,
    PERMISSION_VIEW_ORG,
    PERMISSION_VIEW_OWN,
    RBACService,
    Role,
)

__all__ = [
    "CursorCodec",
    "EncryptionService",
    "PERMISSION_RECORD",
    "PERMISSION_VIEW_ORG",
    "PERMISSION_VIEW_OWN",
    "RBACService",
    "Role",
]
