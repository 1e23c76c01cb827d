from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from crm.models import Announcement, Lead, Leave, Project, Task, User

DEMO_USERS = [
    ('admin_admin_01', 'Admin', 'admin@example.com', User.Roles.ADMIN),
    ('priya_manager_01', 'Priya Menon', 'priya@example.com', User.Roles.MANAGER),
    ('arun_staff_01', 'Arun Kumar', 'arun@example.com', User.Roles.STAFF),
    ('meera_staff_02', 'Meera Nair', 'meera@example.com', User.Roles.STAFF),
]


class Command(BaseCommand):
    help = "Seed the database with sample data for demos."

    def add_arguments(self, parser):
        parser.add_argument('--password', default='demo1234', help='Password for every demo account.')

    def _user(self, login_id, name, email, role, password, manager=None):
        user = User.objects.filter(username=login_id).first()
        if user:
            return user
        user = User(username=login_id, name=name, email=email, role=role, manager=manager)
        if role == User.Roles.ADMIN:
            user.is_staff = True
            user.is_superuser = True
        user.set_password(password)
        user.save()
        return user

    def handle(self, *args, **options):
        password = options['password']
        today = timezone.localdate()
        admin_login, admin_name, admin_email, admin_role = DEMO_USERS[0]
        admin = self._user(admin_login, admin_name, admin_email, admin_role, password)
        manager_login, manager_name, manager_email, manager_role = DEMO_USERS[1]
        manager = self._user(manager_login, manager_name, manager_email, manager_role, password)
        staff = [
            self._user(login_id, name, email, role, password, manager=manager)
            for login_id, name, email, role in DEMO_USERS[2:]
        ]

        skyline, _ = Project.objects.get_or_create(
            name='Skyline Residency',
            defaults={
                'location': 'Kakkanad',
                'project_type': Project.ProjectType.APARTMENT,
                'price_min': 4500000,
                'price_max': 9500000,
                'launch_date': today - timedelta(days=90),
                'possession_date': today + timedelta(days=540),
                'amenities': ['Pool', 'Gym', 'Clubhouse'],
                'nearby_landmarks': ['Infopark', 'Lulu Mall'],
                'status': Project.Status.ONGOING,
            },
        )
        Project.objects.get_or_create(
            name='Palm Grove Villas',
            defaults={
                'location': 'Aluva',
                'project_type': Project.ProjectType.VILLA,
                'price_min': 12000000,
                'price_max': 18000000,
                'launch_date': today + timedelta(days=60),
                'amenities': ['Private garden', 'Security'],
                'status': Project.Status.UPCOMING,
            },
        )

        first_staff, second_staff = staff
        lead, _ = Lead.objects.get_or_create(
            phone='9876543210',
            defaults={
                'name': 'Rahul Varma',
                'email': 'rahul@example.com',
                'requirement_type': Lead.RequirementType.APARTMENT,
                'bhk_requirement': Lead.BHK.THREE,
                'budget_min': 5000000,
                'budget_max': 8000000,
                'preferred_location': 'Kakkanad',
                'source': Lead.Source.WEBSITE,
                'status': Lead.Status.INTERESTED,
                'created_by': first_staff,
                'assigned_project': skyline,
            },
        )
        Lead.objects.get_or_create(
            phone='9123456789',
            defaults={
                'name': 'Anita George',
                'requirement_type': Lead.RequirementType.VILLA,
                'bhk_requirement': Lead.BHK.FOUR,
                'budget_min': 11000000,
                'budget_max': 16000000,
                'source': Lead.Source.REFERRAL,
                'status': Lead.Status.REMINDER,
                'follow_up_date': today + timedelta(days=3),
                'created_by': second_staff,
            },
        )
        Task.objects.get_or_create(
            lead=lead,
            defaults={
                'status': Task.Status.VISIT,
                'next_action_date': today + timedelta(days=2),
                'assigned_to': first_staff,
                'assigned_project': skyline,
            },
        )

        if not Leave.objects.filter(user=second_staff).exists():
            Leave.objects.create(
                user=second_staff,
                user_name=second_staff.display_name,
                user_role=second_staff.role,
                leave_type=Leave.LeaveType.CASUAL,
                start_date=today + timedelta(days=7),
                end_date=today + timedelta(days=8),
                reason='Family function',
            )

        Announcement.objects.get_or_create(
            title='Site visit weekend',
            defaults={
                'message': 'Skyline Residency site visits are open this weekend.',
                'priority': Announcement.Priority.HIGH,
                'target_roles': [User.Roles.MANAGER, User.Roles.STAFF],
                'created_by': admin,
                'expires_at': timezone.now() + timedelta(days=14),
            },
        )

        self.stdout.write(self.style.SUCCESS("Demo data ready."))
        for login_id, _name, _email, role in DEMO_USERS:
            self.stdout.write(f"  {role:<8} {login_id}")
