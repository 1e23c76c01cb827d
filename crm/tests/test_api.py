from datetime import timedelta
from unittest import mock

from django.db import DatabaseError
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from crm.models import ActivityLog, Announcement, Lead, Leave, Task

from .helpers import PASSWORD, User, make_lead, make_leave, make_project, make_task, make_user


class CrmApiTestCase(APITestCase):
    def setUp(self):
        self.admin = make_user('chief', role=User.Roles.ADMIN)
        self.manager = make_user('priya', role=User.Roles.MANAGER)
        self.u1 = make_user('arun', manager=self.manager)
        self.u2 = make_user('meera', manager=self.manager)

    def login(self, user):
        self.assertTrue(self.client.login(username=user.username, password=PASSWORD))


class TokenTests(CrmApiTestCase):
    def test_login_id_returns_token_pair(self):
        resp = self.client.post(
            reverse('token_obtain_pair'), {'login_id': 'ARUN', 'password': PASSWORD}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn('access', resp.data)
        self.assertEqual(resp.data['user']['login_id'], 'arun')

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")
        me = self.client.get(reverse('me'))
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data['role'], User.Roles.STAFF)

    def test_disabled_account_gets_disabled_message(self):
        self.u1.status = User.Status.INACTIVE
        self.u1.save(update_fields=['status'])
        resp = self.client.post(
            reverse('token_obtain_pair'), {'login_id': 'arun', 'password': PASSWORD}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(
            str(resp.data['detail']), 'Your account has been disabled. Please contact the administrator.'
        )

    def test_anonymous_requests_are_rejected(self):
        resp = self.client.get(reverse('lead-list'))
        self.assertIn(resp.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))


class LeadApiTests(CrmApiTestCase):
    def setUp(self):
        super().setUp()
        self.l1 = make_lead(self.u1, name='L1', phone='9000000001')
        self.l2 = make_lead(self.u2, name='L2', phone='9000000002')

    def test_staff_lists_only_own_leads(self):
        self.login(self.u1)
        resp = self.client.get(reverse('lead-list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in resp.data['results']], [self.l1.pk])

    def test_staff_cannot_open_someone_elses_lead(self):
        self.login(self.u1)
        resp = self.client.get(reverse('lead-detail', args=[self.l2.pk]))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_staff_creates_lead_owned_by_them(self):
        self.login(self.u1)
        resp = self.client.post(reverse('lead-list'), {'name': 'New', 'phone': '9111111111'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Lead.objects.get(pk=resp.data['id']).created_by, self.u1)
        self.assertEqual(ActivityLog.objects.filter(module='leads', action='created').count(), 1)

    def test_budget_order_is_validated(self):
        self.login(self.u1)
        resp = self.client.post(
            reverse('lead-list'),
            {'name': 'New', 'phone': '9111111111', 'budget_min': '500', 'budget_max': '100'},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('budget_max', resp.data)

    def test_manager_sees_all_leads_with_masked_contacts(self):
        self.login(self.manager)
        resp = self.client.get(reverse('lead-list'))
        self.assertEqual(len(resp.data['results']), 2)
        self.assertTrue(all(row['phone'] != '9000000001' for row in resp.data['results']))

    def test_manager_edit_is_rejected(self):
        self.login(self.manager)
        resp = self.client.patch(reverse('lead-detail', args=[self.l1.pk]), {'name': 'X'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        resp = self.client.post(
            reverse('lead-set-status', args=[self.l1.pk]), {'status': 'interested'}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.l1.refresh_from_db()
        self.assertEqual(self.l1.name, 'L1')
        self.assertEqual(self.l1.status, Lead.Status.PENDING)

    def test_set_status_and_unknown_status(self):
        self.login(self.u1)
        url = reverse('lead-set-status', args=[self.l1.pk])
        resp = self.client.post(url, {'status': 'reminder'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['status'], 'reminder')
        resp = self.client.post(url, {'status': 'won'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_add_note(self):
        self.login(self.u1)
        resp = self.client.post(reverse('lead-add-note', args=[self.l1.pk]), {'content': 'Called'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(self.l1.notes.get().author, self.u1)

    def test_staff_converts_own_lead_to_task(self):
        self.login(self.u1)
        resp = self.client.post(reverse('lead-convert', args=[self.l1.pk]), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        task = Task.objects.get(pk=resp.data['id'])
        self.assertEqual(task.lead, self.l1)
        self.assertEqual(task.assigned_to, self.u1)
        self.assertEqual(task.status, Task.Status.PENDING)
        self.assertEqual(ActivityLog.objects.filter(module='tasks', action='created').count(), 1)

    def test_read_error_lists_nothing(self):
        self.login(self.u1)
        with mock.patch('crm.api.views.visible_leads_for_user', side_effect=DatabaseError('connection lost')):
            resp = self.client.get(reverse('lead-list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['count'], 0)
        self.assertEqual(resp.data['results'], [])

    def test_export_downloads_workbook(self):
        self.login(self.u1)
        resp = self.client.get(reverse('lead-export-excel'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn('spreadsheetml', resp['Content-Type'])


class TaskApiTests(CrmApiTestCase):
    def test_staff_sees_assigned_tasks_only(self):
        mine = make_task(self.u1)
        make_task(self.u2)
        self.login(self.u1)
        resp = self.client.get(reverse('task-list'))
        self.assertEqual([row['id'] for row in resp.data['results']], [mine.pk])

    def test_staff_created_task_is_assigned_to_them(self):
        self.login(self.u1)
        resp = self.client.post(
            reverse('task-list'), {'status': 'visit', 'assigned_to': self.u2.pk}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Task.objects.get(pk=resp.data['id']).assigned_to, self.u1)

    def test_admin_bulk_delete_logs_each_task(self):
        tasks = [make_task(self.u1), make_task(self.u2)]
        self.login(self.admin)
        resp = self.client.post(reverse('task-bulk-delete'), {'ids': [t.pk for t in tasks]}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['deleted'], 2)
        self.assertEqual(ActivityLog.objects.filter(module='tasks', action='deleted').count(), 2)

    def test_staff_cannot_bulk_delete(self):
        task = make_task(self.u1)
        self.login(self.u1)
        resp = self.client.post(reverse('task-bulk-delete'), {'ids': [task.pk]}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Task.objects.filter(pk=task.pk).exists())

    def test_staff_cannot_link_task_to_someone_elses_lead(self):
        hidden = make_lead(self.u2, name='Private Buyer', phone='9111111111')
        task = make_task(self.u1)
        self.login(self.u1)
        resp = self.client.post(reverse('task-list'), {'lead': hidden.pk, 'status': 'visit'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('lead', resp.data)
        self.assertFalse(Task.objects.filter(lead=hidden).exists())

        resp = self.client.patch(reverse('task-detail', args=[task.pk]), {'lead': hidden.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        task.refresh_from_db()
        self.assertIsNone(task.lead)

    def test_staff_links_task_to_own_lead(self):
        lead = make_lead(self.u1)
        self.login(self.u1)
        resp = self.client.post(reverse('task-list'), {'lead': lead.pk, 'status': 'visit'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['lead_detail']['name'], lead.name)


class LeaveApiTests(CrmApiTestCase):
    def test_manager_approves_staff_leave(self):
        leave = make_leave(self.u1)
        self.login(self.manager)
        url = reverse('leave-approve', args=[leave.pk])
        resp = self.client.post(url, {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['status'], Leave.Status.APPROVED)
        self.assertEqual(resp.data['approved_by'], self.manager.pk)

    def test_deciding_twice_is_a_bad_request(self):
        leave = make_leave(self.u1)
        self.login(self.admin)
        self.client.post(reverse('leave-approve', args=[leave.pk]), {}, format='json')
        resp = self.client.post(reverse('leave-reject', args=[leave.pk]), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already', resp.data['detail'])

    def test_reject_without_reason(self):
        leave = make_leave(self.u1)
        self.login(self.manager)
        resp = self.client.post(reverse('leave-reject', args=[leave.pk]), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        leave.refresh_from_db()
        self.assertEqual(leave.status, Leave.Status.REJECTED)
        self.assertEqual(leave.approved_by, self.manager)

    def test_manager_only_sees_pending_leaves(self):
        pending = make_leave(self.u1)
        make_leave(self.u2, status=Leave.Status.APPROVED, approved_by=self.admin)
        self.login(self.manager)
        resp = self.client.get(reverse('leave-list'))
        self.assertEqual([row['id'] for row in resp.data['results']], [pending.pk])

    def test_second_request_needs_document(self):
        self.login(self.u1)
        payload = {
            'leave_type': 'sick',
            'start_date': '2024-05-02',
            'end_date': '2024-05-03',
            'reason': 'Fever',
        }
        first = self.client.post(reverse('leave-list'), payload, format='json')
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data['user_name'], self.u1.display_name)
        second = self.client.post(reverse('leave-list'), payload, format='json')
        self.assertEqual(second.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('document_url', second.data)

    def test_staff_cannot_approve(self):
        leave = make_leave(self.u2)
        self.login(self.u1)
        resp = self.client.post(reverse('leave-approve', args=[leave.pk]), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)


class AnnouncementApiTests(CrmApiTestCase):
    def setUp(self):
        super().setUp()
        now = timezone.now()
        self.live = Announcement.objects.create(
            title='Weekend visits', message='m', target_roles=['staff'], created_by=self.admin
        )
        self.expired = Announcement.objects.create(
            title='Old promo',
            message='m',
            priority=Announcement.Priority.HIGH,
            target_roles=['staff'],
            expires_at=now - timedelta(hours=1),
            created_by=self.admin,
        )

    def test_banner_hides_expired_and_dismissed(self):
        self.login(self.u1)
        resp = self.client.get(reverse('announcement-banner'))
        self.assertEqual([row['id'] for row in resp.data], [self.live.pk])

        self.client.post(reverse('announcement-dismiss'), {'announcement': self.live.pk}, format='json')
        resp = self.client.get(reverse('announcement-banner'))
        self.assertEqual(resp.data, [])

        feed = self.client.get(reverse('announcement-feed'))
        self.assertEqual([row['id'] for row in feed.data], [self.live.pk])
        self.live.refresh_from_db()
        self.assertTrue(self.live.is_active)

    def test_dismissal_does_not_leak_to_other_sessions(self):
        self.login(self.u1)
        self.client.post(reverse('announcement-dismiss'), {'announcement': self.live.pk}, format='json')
        self.client.logout()
        self.login(self.u2)
        resp = self.client.get(reverse('announcement-banner'))
        self.assertEqual([row['id'] for row in resp.data], [self.live.pk])

    def test_staff_cannot_create_announcements(self):
        self.login(self.u1)
        resp = self.client.post(
            reverse('announcement-list'), {'title': 'x', 'message': 'y', 'target_roles': ['staff']}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_rejects_admin_audience(self):
        self.login(self.admin)
        resp = self.client.post(
            reverse('announcement-list'), {'title': 'x', 'message': 'y', 'target_roles': ['admin']}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)


class AdminSurfaceTests(CrmApiTestCase):
    def test_activity_log_is_admin_only(self):
        self.login(self.u1)
        self.assertEqual(self.client.get(reverse('activity-log-list')).status_code, status.HTTP_403_FORBIDDEN)
        self.client.logout()
        self.login(self.admin)
        self.assertEqual(self.client.get(reverse('activity-log-list')).status_code, status.HTTP_200_OK)

    def test_users_list_excludes_admins(self):
        self.login(self.manager)
        resp = self.client.get(reverse('user-list'))
        ids = [row['id'] for row in resp.data['results']]
        self.assertNotIn(self.admin.pk, ids)
        self.assertIn(self.u1.pk, ids)

    def test_admin_creates_user_with_login_id(self):
        self.login(self.admin)
        resp = self.client.post(
            reverse('user-list'),
            {'name': 'Ravi Das', 'email': 'ravi@example.com', 'password': 'secret-12', 'role': 'staff'},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['login_id'], 'ravi_das_staff_01')

    def test_reports_require_permission(self):
        self.login(self.u1)
        self.assertEqual(self.client.get(reverse('reports')).status_code, status.HTTP_403_FORBIDDEN)
        self.client.logout()
        self.login(self.manager)
        resp = self.client.get(reverse('reports'), {'year': 2024, 'month': 3})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data['staff_performance']), 3)

    def test_view_config_for_manager(self):
        self.login(self.manager)
        resp = self.client.get(reverse('view_config'))
        self.assertFalse(resp.data['leads']['can_edit'])
        self.assertTrue(resp.data['leads']['is_manager_view'])
        self.assertTrue(resp.data['leaves']['can_approve'])

    def test_branding_read_and_update(self):
        resp = self.client.get(reverse('branding'))
        self.assertEqual(resp.data['app_name'], 'ESWARI CRM')

        self.login(self.u1)
        resp = self.client.patch(reverse('branding'), {'app_name': 'Hack'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.client.logout()

        self.login(self.admin)
        resp = self.client.patch(reverse('branding'), {'app_name': 'Skyline CRM'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['app_name'], 'Skyline CRM')
        self.assertEqual(ActivityLog.objects.filter(module='settings').count(), 1)

    def test_reminders_are_scoped(self):
        today = timezone.localdate()
        mine = make_lead(self.u1, status=Lead.Status.REMINDER, follow_up_date=today + timedelta(days=2))
        make_lead(self.u2, status=Lead.Status.REMINDER, follow_up_date=today + timedelta(days=2), phone='9000000009')
        self.login(self.u1)
        resp = self.client.get(reverse('reminders'))
        self.assertEqual([row['id'] for row in resp.data['upcoming_leads']], [mine.pk])

    def test_dashboard(self):
        make_project()
        make_lead(self.u1)
        self.login(self.u1)
        resp = self.client.get(reverse('dashboard'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['total_leads'], 1)
        self.assertEqual(resp.data['total_projects'], 1)
        self.assertEqual(resp.data['role'], User.Roles.STAFF)

    def test_manager_with_reports_cannot_become_staff(self):
        self.login(self.admin)
        resp = self.client.patch(reverse('user-detail', args=[self.manager.pk]), {'role': 'staff'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('role', resp.data)
        self.u1.refresh_from_db()
        self.assertEqual(self.u1.manager.role, User.Roles.MANAGER)

    def test_manager_without_reports_can_become_staff(self):
        lone = make_user('kiran', role=User.Roles.MANAGER)
        self.login(self.admin)
        resp = self.client.patch(reverse('user-detail', args=[lone.pk]), {'role': 'staff'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        lone.refresh_from_db()
        self.assertEqual(lone.role, User.Roles.STAFF)

    def test_status_update_goes_through_account_rules(self):
        self.login(self.admin)
        resp = self.client.patch(reverse('user-detail', args=[self.u1.pk]), {'status': 'inactive'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.u1.refresh_from_db()
        self.assertFalse(self.u1.is_active)
        self.assertTrue(ActivityLog.objects.filter(module='users', details='Marked arun as inactive').exists())

        resp = self.client.patch(reverse('user-detail', args=[self.admin.pk]), {'status': 'inactive'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.is_active)
