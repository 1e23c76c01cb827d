from datetime import timedelta

from django.core.exceptions import PermissionDenied
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from crm.announcements import (
    SESSION_KEY,
    AnnouncementBanner,
    dismiss_in_session,
    parse_dismissed_param,
    session_dismissed,
)
from crm.models import Announcement
from crm.transitions import toggle_announcement

from .helpers import User, make_user


class AnnouncementBannerTests(TestCase):
    def setUp(self):
        self.admin = make_user('chief', role=User.Roles.ADMIN)
        self.now = timezone.now()
        self.older = Announcement.objects.create(
            title='Older', message='m', target_roles=['staff'], created_by=self.admin
        )
        self.newer = Announcement.objects.create(
            title='Newer', message='m', target_roles=['staff', 'manager'], created_by=self.admin
        )
        Announcement.objects.filter(pk=self.older.pk).update(created_at=self.now - timedelta(days=1))
        self.older.refresh_from_db()
        self.expired = Announcement.objects.create(
            title='Expired',
            message='m',
            priority=Announcement.Priority.HIGH,
            target_roles=['staff'],
            expires_at=self.now - timedelta(hours=1),
        )

    def test_visible_newest_first(self):
        banner = AnnouncementBanner(Announcement.objects.all(), 'staff', now=self.now)
        self.assertEqual([item.pk for item in banner], [self.newer.pk, self.older.pk])
        self.assertEqual(len(banner), 2)

    def test_dismissal_is_isolated_to_one_banner(self):
        records = list(Announcement.objects.all())
        first = AnnouncementBanner(records, 'staff', now=self.now)
        second = AnnouncementBanner(records, 'staff', now=self.now)
        first.dismiss(self.newer.pk)
        self.assertEqual([item.pk for item in first], [self.older.pk])
        self.assertEqual(len(second), 2)
        self.newer.refresh_from_db()
        self.assertTrue(self.newer.is_active)

    def test_manager_only_sees_targeted(self):
        banner = AnnouncementBanner(Announcement.objects.all(), 'manager', now=self.now)
        self.assertEqual([item.pk for item in banner], [self.newer.pk])

    def test_toggle_only_flips_active_flag(self):
        toggle_announcement(self.expired, actor=self.admin)
        self.expired.refresh_from_db()
        self.assertFalse(self.expired.is_active)
        self.assertEqual(self.expired.priority, Announcement.Priority.HIGH)
        self.assertIsNotNone(self.expired.expires_at)

    def test_staff_cannot_toggle(self):
        staff = make_user('staffer')
        with self.assertRaises(PermissionDenied):
            toggle_announcement(self.newer, actor=staff)


class SessionDismissalTests(SimpleTestCase):
    def test_dismiss_in_session_accumulates_ids(self):
        session = {}
        dismiss_in_session(session, 4)
        dismiss_in_session(session, '2')
        self.assertEqual(session[SESSION_KEY], [2, 4])
        self.assertEqual(session_dismissed(session), {2, 4})

    def test_parse_dismissed_param_ignores_junk(self):
        self.assertEqual(parse_dismissed_param('3, 7,,abc,-1'), {3, 7})
        self.assertEqual(parse_dismissed_param(None), set())
