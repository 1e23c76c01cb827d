from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, FrozenSet, List, Optional

from .models import ModuleAccess, User

MODULE_KEYS = [
    'leads',
    'tasks',
    'projects',
    'leaves',
    'users',
    'reports',
    'announcements',
    'settings',
]

MODULE_LABELS: Dict[str, str] = dict(ModuleAccess.Module.choices)

ACTION_KEYS = ['view', 'create', 'edit', 'delete', 'approve']

_ALL = frozenset(ACTION_KEYS)
_VIEW = frozenset({'view'})
_AUTHOR = frozenset({'view', 'create', 'edit'})

ROLE_MATRIX: Dict[str, Dict[str, FrozenSet[str]]] = {
    User.Roles.ADMIN: {key: _ALL for key in MODULE_KEYS},
    User.Roles.MANAGER: {
        'leads': _VIEW,
        'tasks': _VIEW,
        'projects': _VIEW,
        'leaves': frozenset({'view', 'approve'}),
        'users': _VIEW,
        'reports': _VIEW,
        'announcements': _VIEW,
        'settings': _VIEW,
    },
    User.Roles.STAFF: {
        'leads': _AUTHOR,
        'tasks': _AUTHOR,
        'projects': _VIEW,
        'leaves': _AUTHOR,
        'users': _VIEW,
        'announcements': _VIEW,
        'settings': _VIEW,
    },
}

# Rows written for every new account; they can only narrow ROLE_MATRIX.
DEFAULT_ROLE_PERMS: Dict[str, Dict[str, List[str]]] = {
    User.Roles.ADMIN: {key: list(ACTION_KEYS) for key in MODULE_KEYS},
    User.Roles.MANAGER: {
        'leads': ['view'],
        'tasks': ['view'],
        'leaves': ['view', 'approve'],
        'reports': ['view'],
    },
    User.Roles.STAFF: {
        'leads': ['view', 'create', 'edit'],
        'tasks': ['view', 'create', 'edit'],
        'leaves': ['view', 'create'],
    },
}

OWNED_MODULES = ('leads', 'tasks', 'leaves')
MONITORED_MODULES = ('leads', 'tasks')


def effective_role(user: Optional[User]) -> Optional[str]:
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    return User.Roles.ADMIN if user.is_superuser else user.role


def can_perform(role: Optional[str], module: str, action: str) -> bool:
    """Pure role gate: may ``role`` perform ``action`` inside ``module``?"""
    return action in ROLE_MATRIX.get(role, {}).get(module, frozenset())


def ensure_module_access(user: User) -> None:
    user.__dict__.pop('_module_access_cache', None)
    for module, actions in DEFAULT_ROLE_PERMS.get(user.role, {}).items():
        ModuleAccess.objects.get_or_create(user=user, module=module, defaults={'actions': actions})


def _stored_access(user: User) -> Dict[str, FrozenSet[str]]:
    cached = getattr(user, '_module_access_cache', None)
    if cached is None:
        cached = {
            row.module: frozenset(row.actions or [])
            for row in ModuleAccess.objects.filter(user=user)
        }
        user._module_access_cache = cached
    return cached


def user_can(user: Optional[User], module: str, action: str) -> bool:
    if not user or not user.is_authenticated or not user.is_active:
        return False
    if user.is_superuser:
        return True
    if not can_perform(user.role, module, action):
        return False
    stored = _stored_access(user).get(module)
    if stored is None:
        return True
    return action in stored


def get_permissions_for_user(user: Optional[User]) -> Dict[str, List[str]]:
    return {
        module: [action for action in ACTION_KEYS if user_can(user, module, action)]
        for module in MODULE_KEYS
    }


@dataclass(frozen=True)
class ViewConfig:
    """Flags that drive one list view for one role."""

    module: str
    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_approve: bool = False
    can_convert: bool = False
    is_staff_view: bool = False
    is_manager_view: bool = False
    show_only_pending: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


def _build_view_config(role: Optional[str], module: str, allowed) -> ViewConfig:
    is_manager_view = role == User.Roles.MANAGER and module in MONITORED_MODULES
    return ViewConfig(
        module=module,
        can_view=allowed(module, 'view'),
        can_create=allowed(module, 'create') and not is_manager_view,
        can_edit=allowed(module, 'edit') and not is_manager_view,
        can_delete=allowed(module, 'delete') and not is_manager_view,
        can_approve=allowed(module, 'approve'),
        can_convert=module == 'leads' and allowed('leads', 'edit') and allowed('tasks', 'create'),
        is_staff_view=role == User.Roles.STAFF and module in OWNED_MODULES,
        is_manager_view=is_manager_view,
        show_only_pending=role == User.Roles.MANAGER and module == 'leaves',
    )


def view_config_for(role: Optional[str], module: str) -> ViewConfig:
    return _build_view_config(role, module, lambda mod, act: can_perform(role, mod, act))


def view_config_for_user(user: Optional[User], module: str) -> ViewConfig:
    return _build_view_config(effective_role(user), module, lambda mod, act: user_can(user, mod, act))
