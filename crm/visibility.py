"""In-memory visibility rules for the CRM list views.

Each function takes already-loaded records plus the viewer's role, id and
view configuration, and returns the subset that viewer may see. The ORM
equivalents used by the API live in :mod:`crm.api.access`; both follow the
same rules.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from django.utils import timezone

from .announcements import is_announcement_visible
from .models import Leave, User
from .permissions import ViewConfig


def filter_leads(records: Iterable, *, role: Optional[str], user_id, config: ViewConfig) -> List:
    if config.is_staff_view and role == User.Roles.STAFF:
        return [lead for lead in records if lead.created_by_id == user_id]
    return list(records)


def filter_tasks(records: Iterable, *, role: Optional[str], user_id, config: ViewConfig) -> List:
    if config.is_staff_view and role == User.Roles.STAFF:
        return [task for task in records if task.assigned_to_id == user_id]
    return list(records)


def filter_leaves(
    records: Iterable,
    *,
    role: Optional[str],
    user_id,
    config: ViewConfig,
    report_ids: Optional[Iterable] = None,
) -> List:
    leaves = list(records)
    if config.show_only_pending:
        leaves = [leave for leave in leaves if leave.status == Leave.Status.PENDING]
    if role == User.Roles.STAFF:
        return [leave for leave in leaves if leave.user_id == user_id]
    if role == User.Roles.MANAGER:
        reports = set(report_ids or ())

        def _visible(leave) -> bool:
            if leave.user_id == user_id:
                return True
            if leave.user_role != User.Roles.STAFF:
                return False
            return not reports or leave.user_id in reports

        return [leave for leave in leaves if _visible(leave)]
    if role == User.Roles.ADMIN:
        return leaves
    return []


def filter_users(records: Iterable, *, role: Optional[str]) -> List:
    users = [user for user in records if user.role != User.Roles.ADMIN]
    if role == User.Roles.STAFF:
        return [user for user in users if user.status == User.Status.ACTIVE]
    if role in (User.Roles.ADMIN, User.Roles.MANAGER):
        return users
    return []


def filter_announcements(
    records: Iterable,
    *,
    role: Optional[str],
    dismissed: Iterable[int] = (),
    now: Optional[datetime] = None,
) -> List:
    now = now or timezone.now()
    dismissed = set(dismissed)
    return [item for item in records if is_announcement_visible(item, role, dismissed, now)]


def filter_records(module: str, records: Iterable, *, role: Optional[str], user_id, config: ViewConfig, **extra) -> List:
    if not config.can_view:
        return []
    if module == 'leads':
        return filter_leads(records, role=role, user_id=user_id, config=config)
    if module == 'tasks':
        return filter_tasks(records, role=role, user_id=user_id, config=config)
    if module == 'leaves':
        return filter_leaves(records, role=role, user_id=user_id, config=config, report_ids=extra.get('report_ids'))
    if module == 'users':
        return filter_users(records, role=role)
    if module == 'announcements':
        return filter_announcements(records, role=role, dismissed=extra.get('dismissed', ()), now=extra.get('now'))
    return list(records)
