from __future__ import annotations

from typing import Iterable

from rest_framework.permissions import BasePermission

from crm.permissions import user_can

DEFAULT_ACTION_GATES = {
    'list': 'view',
    'retrieve': 'view',
    'create': 'create',
    'update': 'edit',
    'partial_update': 'edit',
    'destroy': 'delete',
}


class ModulePermission(BasePermission):
    """Maps the viewset action onto the module gate (view/create/edit/delete/approve)."""

    module: str | None = None

    def has_permission(self, request, view) -> bool:
        module = getattr(view, 'module_permission', None) or self.module
        if not module:
            return True
        user = getattr(request, 'user', None)
        if not user or not user.is_authenticated:
            return False
        gates = {**DEFAULT_ACTION_GATES, **(getattr(view, 'action_gates', None) or {})}
        gate = gates.get(getattr(view, 'action', None), 'view')
        return user_can(user, module, gate)


class RolePermission(BasePermission):
    allowed_roles: Iterable[str] | None = None

    def has_permission(self, request, view) -> bool:
        roles = getattr(view, 'allowed_roles', None) or self.allowed_roles
        if not roles:
            return True
        user = getattr(request, 'user', None)
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser:
            return True
        has_any = getattr(user, 'has_any_role', None)
        if callable(has_any):
            return has_any(*roles)
        return getattr(user, 'role', None) in roles
