"""Role-based access control for the history log. No FastAPI."""

from enum import Enum
from typing import FrozenSet

from app.domain.models.history import Actor
from app.security.exceptions import AuthorizationError

PERMISSION_RECORD = "timesheet_history:record"
PERMISSION_VIEW_OWN = "timesheet_history:view_own"
PERMISSION_VIEW_ORG = "timesheet_history:view_org"


class Role(Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"


# Permission matrix:
# Role      Record  View own  View org
# EMPLOYEE  ✓       ✓         ✗
# MANAGER   ✓       ✓         ✓
# ADMIN     ✓       ✓         ✓

_ROLE_PERMISSIONS: dict[Role, FrozenSet[str]] = {
    Role.EMPLOYEE: frozenset({PERMISSION_RECORD, PERMISSION_VIEW_OWN}),
    Role.MANAGER: frozenset({PERMISSION_RECORD, PERMISSION_VIEW_OWN, PERMISSION_VIEW_ORG}),
    Role.ADMIN: frozenset({PERMISSION_RECORD, PERMISSION_VIEW_OWN, PERMISSION_VIEW_ORG}),
}


class RBACService:
    """Resolve role presets to permissions and check actor permissions."""

    def permissions_for(self, role: str) -> FrozenSet[str]:
        """Default permissions for a role name. Raises AuthorizationError for unknown roles."""
        try:
            return _ROLE_PERMISSIONS[Role(role.strip().lower())]
        except ValueError as e:
            raise AuthorizationError(f"Unknown role '{role}'") from e

    def check_permission(self, actor: Actor, permission: str) -> None:
        """Raises AuthorizationError if actor lacks permission."""
        if not actor.has_permission(permission):
            raise AuthorizationError(
                f"User {actor.id} does not have permission '{permission}'"
            )
