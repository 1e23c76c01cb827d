from __future__ import annotations

import logging
from typing import Dict, Optional

from django.core.exceptions import PermissionDenied
from django.db import DatabaseError
from django.utils import timezone

from .activity import log_activity
from .models import ActivityLog, Announcement, Lead, Leave, Task, User
from .permissions import effective_role, user_can

logger = logging.getLogger(__name__)


class TransitionError(ValueError):
    """Raised when a record cannot move to the requested state."""


def _require(actor: Optional[User], module: str, action: str) -> None:
    if not user_can(actor, module, action):
        raise PermissionDenied(f"You do not have permission to {action} {module}.")


def _save_or_restore(instance, changes: Dict[str, object]) -> None:
    """Apply ``changes`` and save; on a failed write put the old values back."""
    previous = {field: getattr(instance, field) for field in changes}
    for field, value in changes.items():
        setattr(instance, field, value)
    try:
        instance.save(update_fields=[*changes, 'updated_at'])
    except DatabaseError:
        for field, value in previous.items():
            setattr(instance, field, value)
        logger.warning('Rolled back unsaved %s #%s change', type(instance).__name__, instance.pk)
        raise


def _owns(actor: User, record, owner_field: str) -> bool:
    return getattr(record, owner_field) == actor.pk


def set_lead_status(lead: Lead, status: str, *, actor: User) -> Lead:
    if status not in Lead.Status.values:
        raise TransitionError(f"Unknown lead status: {status}.")
    _require(actor, 'leads', 'edit')
    if effective_role(actor) == User.Roles.STAFF and not _owns(actor, lead, 'created_by_id'):
        raise PermissionDenied('Staff can only update their own leads.')
    if lead.status != status:
        _save_or_restore(lead, {'status': status})
    log_activity(
        actor=actor,
        module='leads',
        action=ActivityLog.Action.UPDATED,
        details=f"Set lead {lead.name} to {lead.get_status_display()}",
    )
    return lead


def set_task_status(task: Task, status: str, *, actor: User) -> Task:
    if status not in Task.Status.values:
        raise TransitionError(f"Unknown task status: {status}.")
    _require(actor, 'tasks', 'edit')
    if effective_role(actor) == User.Roles.STAFF and not _owns(actor, task, 'assigned_to_id'):
        raise PermissionDenied('Staff can only update tasks assigned to them.')
    if task.status != status:
        _save_or_restore(task, {'status': status})
    lead_name = task.lead.name if task.lead_id else f"task #{task.pk}"
    log_activity(
        actor=actor,
        module='tasks',
        action=ActivityLog.Action.UPDATED,
        details=f"Set task for {lead_name} to {task.get_status_display()}",
    )
    return task


def can_decide_leave(actor: Optional[User], leave: Leave) -> bool:
    if leave.status != Leave.Status.PENDING:
        return False
    if not user_can(actor, 'leaves', 'approve'):
        return False
    if actor.is_admin:
        return True
    return (
        effective_role(actor) == User.Roles.MANAGER
        and leave.user_role == User.Roles.STAFF
        and leave.user_id != actor.pk
    )


def _decide_leave(leave: Leave, status: str, *, actor: User, details: str) -> Leave:
    if leave.status != Leave.Status.PENDING:
        raise TransitionError(f"Leave is already {leave.get_status_display().lower()}.")
    _require(actor, 'leaves', 'approve')
    if not can_decide_leave(actor, leave):
        raise PermissionDenied('You cannot decide on this leave request.')
    _save_or_restore(leave, {'status': status, 'approved_by': actor, 'approved_at': timezone.now()})
    log_activity(actor=actor, module='leaves', action=status, details=details)
    return leave


def approve_leave(leave: Leave, *, actor: User) -> Leave:
    return _decide_leave(
        leave,
        Leave.Status.APPROVED,
        actor=actor,
        details=f"Approved {leave.get_leave_type_display().lower()} for {leave.user_name}",
    )


def reject_leave(leave: Leave, *, actor: User, reason: str = '') -> Leave:
    details = f"Rejected {leave.get_leave_type_display().lower()} for {leave.user_name}"
    reason = (reason or '').strip()
    if reason:
        details = f"{details}: {reason}"
    return _decide_leave(leave, Leave.Status.REJECTED, actor=actor, details=details)


def toggle_announcement(announcement: Announcement, *, actor: User) -> Announcement:
    if not (actor and actor.is_authenticated and actor.is_admin):
        raise PermissionDenied('Only admins can activate or deactivate announcements.')
    _require(actor, 'announcements', 'edit')
    _save_or_restore(announcement, {'is_active': not announcement.is_active})
    state = 'Activated' if announcement.is_active else 'Deactivated'
    log_activity(
        actor=actor,
        module='announcements',
        action=ActivityLog.Action.UPDATED,
        details=f"{state} announcement {announcement.title}",
    )
    return announcement
