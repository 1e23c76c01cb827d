from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.db.models import Count, Q
from django.utils import timezone

from .models import Lead, Leave, Project, Task, User


def _round(value: float) -> float:
    return round(value, 1)


def status_counts(queryset, choices) -> Dict[str, int]:
    counts = {value: 0 for value, _label in choices}
    for row in queryset.order_by().values('status').annotate(total=Count('id')):
        counts[row['status']] = row['total']
    return counts


def team_members(queryset=None):
    qs = queryset if queryset is not None else User.objects.all()
    return qs.filter(role__in=(User.Roles.MANAGER, User.Roles.STAFF)).order_by('role', 'name', 'username')


def staff_performance(leads, tasks, members=None) -> List[dict]:
    """Per-member lead and task totals against the daily lead target."""
    target = settings.CRM_DAILY_LEAD_TARGET
    lead_totals = dict(
        leads.filter(created_by__isnull=False).order_by().values_list('created_by').annotate(total=Count('id'))
    )
    task_rows = tasks.filter(assigned_to__isnull=False).order_by().values('assigned_to').annotate(
        total=Count('id'),
        completed=Count('id', filter=Q(status=Task.Status.COMPLETED)),
    )
    task_totals = {row['assigned_to']: row for row in task_rows}
    rows = []
    for member in team_members(members):
        lead_count = lead_totals.get(member.pk, 0)
        task_row = task_totals.get(member.pk, {})
        rows.append({
            'user_id': member.pk,
            'name': member.display_name,
            'role': member.role,
            'leads': lead_count,
            'tasks': task_row.get('total', 0),
            'completed_tasks': task_row.get('completed', 0),
            'daily_leads_percentage': _round(min(lead_count / target * 100, 100)) if target else 0.0,
        })
    return rows


def monthly_leaves(leaves, year: int, month: int, members=None) -> List[dict]:
    """Approved leave days that start in the month, per team member."""
    working_days = settings.CRM_WORKING_DAYS_PER_MONTH
    month_start = date(year, month, 1)
    month_end = date(year, month, calendar.monthrange(year, month)[1])
    approved = leaves.filter(
        status=Leave.Status.APPROVED,
        start_date__gte=month_start,
        start_date__lte=month_end,
    )
    days_by_user: Dict[int, int] = {}
    for leave in approved:
        days_by_user[leave.user_id] = days_by_user.get(leave.user_id, 0) + leave.days
    rows = []
    for member in team_members(members):
        leave_days = days_by_user.get(member.pk, 0)
        rows.append({
            'user_id': member.pk,
            'name': member.display_name,
            'role': member.role,
            'leave_days': leave_days,
            'working_days': working_days - leave_days,
            'leave_percentage': _round(leave_days / working_days * 100) if working_days else 0.0,
        })
    return rows


def leave_stats(leaves) -> dict:
    counts = status_counts(leaves, Leave.Status.choices)
    days_by_type = {value: 0 for value, _label in Leave.LeaveType.choices}
    for leave in leaves.filter(status=Leave.Status.APPROVED):
        days_by_type[leave.leave_type] += leave.days
    return {
        'pending': counts[Leave.Status.PENDING],
        'approved': counts[Leave.Status.APPROVED],
        'rejected': counts[Leave.Status.REJECTED],
        'total': sum(counts.values()),
        'approved_days_by_type': days_by_type,
    }


def reminders(leads, tasks, today: Optional[date] = None) -> dict:
    """Upcoming and overdue follow-ups within the reminder horizon."""
    today = today or timezone.localdate()
    horizon = today + timedelta(days=settings.CRM_REMINDER_HORIZON_DAYS)
    reminder_leads = leads.filter(status=Lead.Status.REMINDER, follow_up_date__isnull=False)
    return {
        'upcoming_leads': reminder_leads.filter(
            follow_up_date__gt=today, follow_up_date__lte=horizon
        ).order_by('follow_up_date'),
        'overdue_leads': reminder_leads.filter(follow_up_date__lt=today).order_by('follow_up_date'),
        'upcoming_tasks': tasks.filter(
            next_action_date__gt=today, next_action_date__lte=horizon
        ).exclude(status__in=Task.CLOSED_STATUSES).order_by('next_action_date'),
    }


def dashboard_summary(leads, tasks, projects, leaves, today: Optional[date] = None) -> dict:
    today = today or timezone.localdate()
    return {
        'total_leads': leads.count(),
        'total_tasks': tasks.count(),
        'open_tasks': tasks.exclude(status__in=Task.CLOSED_STATUSES).count(),
        'total_projects': projects.count(),
        'active_projects': projects.filter(status=Project.Status.ONGOING).count(),
        'pending_leaves': leaves.filter(status=Leave.Status.PENDING).count(),
        'follow_ups_today': leads.filter(follow_up_date=today).count(),
        'lead_status_counts': status_counts(leads, Lead.Status.choices),
        'task_status_counts': status_counts(tasks, Task.Status.choices),
        'project_status_counts': status_counts(projects, Project.Status.choices),
    }
