from datetime import date

from django.contrib.auth import get_user_model

from crm.models import Lead, Leave, Project, Task

User = get_user_model()

PASSWORD = 'test-pass-123'


def make_user(username, role=None, **extra):
    role = role or User.Roles.STAFF
    return User.objects.create_user(
        username=username,
        password=PASSWORD,
        name=extra.pop('name', username.title()),
        role=role,
        **extra,
    )


def make_project(name='Skyline Residency', **extra):
    extra.setdefault('location', 'Kakkanad')
    return Project.objects.create(name=name, **extra)


def make_lead(created_by, name='Rahul', phone='9876543210', **extra):
    return Lead.objects.create(name=name, phone=phone, created_by=created_by, **extra)


def make_task(assigned_to, lead=None, **extra):
    return Task.objects.create(assigned_to=assigned_to, lead=lead, **extra)


def make_leave(user, start=date(2024, 3, 4), end=date(2024, 3, 5), **extra):
    extra.setdefault('reason', 'Family function')
    return Leave.objects.create(
        user=user,
        user_name=user.display_name,
        user_role=user.role,
        start_date=start,
        end_date=end,
        **extra,
    )
