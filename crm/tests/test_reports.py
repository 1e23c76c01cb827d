from datetime import date, timedelta

from django.test import TestCase, override_settings

from crm import reports
from crm.models import Lead, Leave, Project, Task

from .helpers import User, make_lead, make_leave, make_project, make_task, make_user


class StaffPerformanceTests(TestCase):
    def setUp(self):
        self.admin = make_user('chief', role=User.Roles.ADMIN)
        self.manager = make_user('priya', role=User.Roles.MANAGER)
        self.staff = make_user('arun')
        for index in range(3):
            make_lead(self.staff, name=f'Lead {index}', phone=f'90000000{index}')
        make_task(self.staff, status=Task.Status.COMPLETED)
        make_task(self.staff, status=Task.Status.VISIT)

    def test_rows_cover_managers_and_staff_only(self):
        rows = reports.staff_performance(Lead.objects.all(), Task.objects.all())
        self.assertEqual([row['user_id'] for row in rows], [self.manager.pk, self.staff.pk])
        staff_row = rows[1]
        self.assertEqual(staff_row['leads'], 3)
        self.assertEqual(staff_row['tasks'], 2)
        self.assertEqual(staff_row['completed_tasks'], 1)
        self.assertEqual(staff_row['daily_leads_percentage'], 3.0)

    @override_settings(CRM_DAILY_LEAD_TARGET=2)
    def test_daily_percentage_is_capped(self):
        rows = reports.staff_performance(Lead.objects.all(), Task.objects.all())
        self.assertEqual(rows[1]['daily_leads_percentage'], 100.0)


class LeaveReportTests(TestCase):
    def setUp(self):
        self.admin = make_user('chief', role=User.Roles.ADMIN)
        self.staff = make_user('arun')
        make_leave(
            self.staff,
            start=date(2024, 3, 4),
            end=date(2024, 3, 5),
            status=Leave.Status.APPROVED,
            approved_by=self.admin,
        )
        make_leave(self.staff, start=date(2024, 3, 20), end=date(2024, 3, 20))
        make_leave(
            self.staff,
            start=date(2024, 4, 2),
            end=date(2024, 4, 2),
            status=Leave.Status.REJECTED,
            approved_by=self.admin,
        )

    def test_monthly_leaves_counts_approved_days(self):
        rows = reports.monthly_leaves(Leave.objects.all(), 2024, 3)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['leave_days'], 2)
        self.assertEqual(rows[0]['working_days'], 20)
        self.assertEqual(rows[0]['leave_percentage'], 9.1)

    def test_leave_stats(self):
        stats = reports.leave_stats(Leave.objects.all())
        self.assertEqual(stats['pending'], 1)
        self.assertEqual(stats['approved'], 1)
        self.assertEqual(stats['rejected'], 1)
        self.assertEqual(stats['total'], 3)
        self.assertEqual(stats['approved_days_by_type'][Leave.LeaveType.CASUAL], 2)


class ReminderTests(TestCase):
    def setUp(self):
        self.staff = make_user('arun')
        self.today = date(2024, 3, 10)

    def test_reminder_windows(self):
        upcoming = make_lead(self.staff, status=Lead.Status.REMINDER, follow_up_date=self.today + timedelta(days=3))
        overdue = make_lead(self.staff, status=Lead.Status.REMINDER, follow_up_date=self.today - timedelta(days=1))
        make_lead(self.staff, status=Lead.Status.REMINDER, follow_up_date=self.today + timedelta(days=8))
        make_lead(self.staff, status=Lead.Status.PENDING, follow_up_date=self.today + timedelta(days=2))
        open_task = make_task(self.staff, next_action_date=self.today + timedelta(days=7))
        make_task(self.staff, status=Task.Status.COMPLETED, next_action_date=self.today + timedelta(days=1))

        due = reports.reminders(Lead.objects.all(), Task.objects.all(), today=self.today)
        self.assertEqual(list(due['upcoming_leads']), [upcoming])
        self.assertEqual(list(due['overdue_leads']), [overdue])
        self.assertEqual(list(due['upcoming_tasks']), [open_task])


class DashboardSummaryTests(TestCase):
    def test_summary_counts(self):
        staff = make_user('arun')
        make_project(status=Project.Status.ONGOING)
        make_lead(staff, follow_up_date=date(2024, 3, 10))
        make_task(staff)
        summary = reports.dashboard_summary(
            Lead.objects.all(), Task.objects.all(), Project.objects.all(), Leave.objects.all(), today=date(2024, 3, 10)
        )
        self.assertEqual(summary['total_leads'], 1)
        self.assertEqual(summary['open_tasks'], 1)
        self.assertEqual(summary['active_projects'], 1)
        self.assertEqual(summary['follow_ups_today'], 1)
        self.assertEqual(summary['lead_status_counts'][Lead.Status.PENDING], 1)
