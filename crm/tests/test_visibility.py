from datetime import datetime, timedelta, timezone as dt_timezone
from types import SimpleNamespace

from django.test import SimpleTestCase

from crm.permissions import view_config_for
from crm.visibility import (
    filter_announcements,
    filter_leads,
    filter_leaves,
    filter_records,
    filter_tasks,
    filter_users,
)

ADMIN, MANAGER, STAFF = 'admin', 'manager', 'staff'
NOW = datetime(2024, 3, 1, 12, 0, tzinfo=dt_timezone.utc)


def lead(pk, owner):
    return SimpleNamespace(pk=pk, created_by_id=owner)


def task(pk, assignee):
    return SimpleNamespace(pk=pk, assigned_to_id=assignee)


def leave(pk, user_id, role, status='pending'):
    return SimpleNamespace(pk=pk, user_id=user_id, user_role=role, status=status)


def announcement(pk, roles=(MANAGER, STAFF), active=True, expires_at=None, priority='medium', age=0):
    return SimpleNamespace(
        pk=pk,
        target_roles=list(roles),
        is_active=active,
        expires_at=expires_at,
        priority=priority,
        created_at=NOW - timedelta(hours=age),
    )


class LeadAndTaskVisibilityTests(SimpleTestCase):
    def test_staff_sees_only_own_leads(self):
        records = [lead(1, 'u1'), lead(2, 'u2')]
        visible = filter_leads(records, role=STAFF, user_id='u1', config=view_config_for(STAFF, 'leads'))
        self.assertEqual([item.pk for item in visible], [1])

    def test_manager_and_admin_see_every_lead(self):
        records = [lead(1, 'u1'), lead(2, 'u2')]
        for role in (MANAGER, ADMIN):
            visible = filter_leads(records, role=role, user_id='m1', config=view_config_for(role, 'leads'))
            self.assertEqual(len(visible), 2)

    def test_staff_sees_only_assigned_tasks(self):
        records = [task(1, 5), task(2, 6), task(3, 5)]
        visible = filter_tasks(records, role=STAFF, user_id=5, config=view_config_for(STAFF, 'tasks'))
        self.assertEqual([item.pk for item in visible], [1, 3])

    def test_denied_module_yields_nothing(self):
        visible = filter_records(
            'reports', [object()], role=STAFF, user_id=1, config=view_config_for(STAFF, 'reports')
        )
        self.assertEqual(visible, [])


class LeaveVisibilityTests(SimpleTestCase):
    def setUp(self):
        self.records = [
            leave(1, 10, STAFF),
            leave(2, 11, STAFF, status='approved'),
            leave(3, 20, MANAGER),
            leave(4, 21, MANAGER),
            leave(5, 12, STAFF),
        ]

    def test_staff_sees_own_leaves(self):
        visible = filter_leaves(self.records, role=STAFF, user_id=10, config=view_config_for(STAFF, 'leaves'))
        self.assertEqual([item.pk for item in visible], [1])

    def test_manager_sees_own_and_pending_staff_leaves(self):
        visible = filter_leaves(self.records, role=MANAGER, user_id=20, config=view_config_for(MANAGER, 'leaves'))
        self.assertEqual([item.pk for item in visible], [1, 3, 5])

    def test_manager_with_reports_sees_only_their_staff(self):
        visible = filter_leaves(
            self.records,
            role=MANAGER,
            user_id=20,
            config=view_config_for(MANAGER, 'leaves'),
            report_ids=[12],
        )
        self.assertEqual([item.pk for item in visible], [3, 5])

    def test_admin_sees_everything(self):
        visible = filter_leaves(self.records, role=ADMIN, user_id=1, config=view_config_for(ADMIN, 'leaves'))
        self.assertEqual(len(visible), 5)


class AnnouncementVisibilityTests(SimpleTestCase):
    def test_expired_high_priority_announcement_is_hidden(self):
        expired = announcement(1, priority='high', expires_at=NOW - timedelta(minutes=1))
        self.assertEqual(filter_announcements([expired], role=STAFF, now=NOW), [])

    def test_visibility_formula(self):
        records = [
            announcement(1),
            announcement(2, active=False),
            announcement(3, roles=()),
            announcement(4, roles=(MANAGER,)),
            announcement(5, expires_at=NOW + timedelta(days=1)),
            announcement(6),
        ]
        visible = filter_announcements(records, role=STAFF, dismissed={6}, now=NOW)
        self.assertEqual([item.pk for item in visible], [1, 5])

    def test_admin_is_never_an_audience(self):
        self.assertEqual(filter_announcements([announcement(1)], role=ADMIN, now=NOW), [])


class UserVisibilityTests(SimpleTestCase):
    def test_admins_are_never_listed(self):
        records = [
            SimpleNamespace(pk=1, role=ADMIN, status='active'),
            SimpleNamespace(pk=2, role=MANAGER, status='active'),
            SimpleNamespace(pk=3, role=STAFF, status='inactive'),
        ]
        self.assertEqual([user.pk for user in filter_users(records, role=MANAGER)], [2, 3])
        self.assertEqual([user.pk for user in filter_users(records, role=STAFF)], [2])
