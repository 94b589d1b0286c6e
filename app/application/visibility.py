"""Read scoping: narrow a requested filter to what the actor may see. Never raises for narrowing."""

from dataclasses import replace

from app.domain.models.history import Actor, HistoryFilter
from app.security.rbac import PERMISSION_VIEW_ORG


class VisibilityScoper:
    """
    Tenant isolation: company is always the actor's, whatever was requested.
    Self-scoping: without org-wide visibility the user filter is forced to the actor;
    with it, a requested user is honored as a narrowing filter and omission means org-wide.
    """

    def __init__(self, org_wide_permission: str = PERMISSION_VIEW_ORG) -> None:
        self._org_wide_permission = org_wide_permission

    def scope(self, actor: Actor, requested: HistoryFilter) -> HistoryFilter:
        effective = replace(requested, company_id=actor.company_id)
        if not actor.has_permission(self._org_wide_permission):
            effective = replace(effective, user_id=actor.id)
        return effective
