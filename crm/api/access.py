from __future__ import annotations

from django.db.models import Q
from django.utils import timezone

from crm.models import Announcement, Lead, Leave, Project, Task, User
from crm.permissions import effective_role, view_config_for_user


def visible_leads_for_user(user: User | None, queryset=None):
    qs = Lead.objects.all() if queryset is None else queryset
    config = view_config_for_user(user, 'leads')
    if not config.can_view:
        return qs.none()
    if config.is_staff_view:
        return qs.filter(created_by=user)
    return qs


def visible_tasks_for_user(user: User | None, queryset=None):
    qs = Task.objects.all() if queryset is None else queryset
    config = view_config_for_user(user, 'tasks')
    if not config.can_view:
        return qs.none()
    if config.is_staff_view:
        return qs.filter(assigned_to=user)
    return qs


def visible_leaves_for_user(user: User | None, queryset=None):
    qs = Leave.objects.all() if queryset is None else queryset
    config = view_config_for_user(user, 'leaves')
    if not config.can_view:
        return qs.none()
    if config.show_only_pending:
        qs = qs.filter(status=Leave.Status.PENDING)
    role = effective_role(user)
    if role == User.Roles.ADMIN:
        return qs
    if role == User.Roles.STAFF:
        return qs.filter(user=user)
    if role == User.Roles.MANAGER:
        staff_leaves = Q(user_role=User.Roles.STAFF)
        report_ids = list(user.reports.values_list('pk', flat=True))
        if report_ids:
            staff_leaves &= Q(user_id__in=report_ids)
        return qs.filter(Q(user=user) | staff_leaves)
    return qs.none()


def visible_users_for_user(user: User | None, queryset=None):
    qs = User.objects.all() if queryset is None else queryset
    config = view_config_for_user(user, 'users')
    if not config.can_view:
        return qs.none()
    qs = qs.exclude(role=User.Roles.ADMIN).exclude(is_superuser=True)
    if effective_role(user) == User.Roles.STAFF:
        return qs.filter(status=User.Status.ACTIVE)
    return qs


def visible_projects_for_user(user: User | None, queryset=None):
    qs = Project.objects.all() if queryset is None else queryset
    if not view_config_for_user(user, 'projects').can_view:
        return qs.none()
    return qs


def targeted_announcements(role: str | None, queryset=None, now=None):
    """Active, unexpired announcements whose audience includes ``role``."""
    qs = Announcement.objects.all() if queryset is None else queryset
    now = now or timezone.now()
    live = qs.filter(is_active=True).filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))
    # JSON containment lookups are not portable to SQLite.
    ids = [pk for pk, roles in live.values_list('pk', 'target_roles') if role in (roles or [])]
    return qs.filter(pk__in=ids)


def visible_announcements_for_user(user: User | None, queryset=None):
    qs = Announcement.objects.all() if queryset is None else queryset
    if not view_config_for_user(user, 'announcements').can_view:
        return qs.none()
    role = effective_role(user)
    if role == User.Roles.ADMIN:
        return qs
    return targeted_announcements(role, qs)
