import django_filters
from django.contrib.auth import get_user_model
from django.db.models import Q

from .models import ActivityLog, Announcement, Lead, Leave, ModuleAccess, Project, Task

User = get_user_model()


class LeadFilter(django_filters.FilterSet):
    q = django_filters.CharFilter(method='filter_q', label='Search')
    status = django_filters.ChoiceFilter(choices=Lead.Status.choices)
    requirement_type = django_filters.ChoiceFilter(choices=Lead.RequirementType.choices)
    source = django_filters.ChoiceFilter(choices=Lead.Source.choices)
    follow_up_date = django_filters.DateFromToRangeFilter()
    created_by = django_filters.ModelChoiceFilter(queryset=User.objects.all())

    def filter_q(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) | Q(phone__icontains=value) | Q(preferred_location__icontains=value)
        )

    class Meta:
        model = Lead
        fields = ['status', 'requirement_type', 'bhk_requirement', 'source', 'assigned_project', 'created_by']


class TaskFilter(django_filters.FilterSet):
    q = django_filters.CharFilter(method='filter_q', label='Search')
    status = django_filters.ChoiceFilter(choices=Task.Status.choices)
    next_action_date = django_filters.DateFromToRangeFilter()
    assigned_to = django_filters.ModelChoiceFilter(queryset=User.objects.all())
    is_open = django_filters.BooleanFilter(method='filter_is_open', label='Open')

    def filter_q(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(lead__name__icontains=value) | Q(lead__phone__icontains=value))

    def filter_is_open(self, queryset, name, value):
        if value is None:
            return queryset
        if value:
            return queryset.exclude(status__in=Task.CLOSED_STATUSES)
        return queryset.filter(status__in=Task.CLOSED_STATUSES)

    class Meta:
        model = Task
        fields = ['status', 'assigned_to', 'assigned_project', 'lead']


class ProjectFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Project.Status.choices)
    project_type = django_filters.ChoiceFilter(choices=Project.ProjectType.choices)
    location = django_filters.CharFilter(lookup_expr='icontains')

    class Meta:
        model = Project
        fields = ['status', 'project_type', 'location']


class LeaveFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Leave.Status.choices)
    leave_type = django_filters.ChoiceFilter(choices=Leave.LeaveType.choices)
    user_role = django_filters.ChoiceFilter(choices=User.Roles.choices)
    start_date = django_filters.DateFromToRangeFilter()

    class Meta:
        model = Leave
        fields = ['status', 'leave_type', 'user', 'user_role']


class UserFilter(django_filters.FilterSet):
    q = django_filters.CharFilter(method='filter_q', label='Search')
    role = django_filters.ChoiceFilter(choices=User.Roles.choices)
    status = django_filters.ChoiceFilter(choices=User.Status.choices)

    def filter_q(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) | Q(username__icontains=value) | Q(email__icontains=value)
        )

    class Meta:
        model = User
        fields = ['role', 'status', 'manager']


class AnnouncementFilter(django_filters.FilterSet):
    priority = django_filters.ChoiceFilter(choices=Announcement.Priority.choices)
    is_active = django_filters.BooleanFilter()

    class Meta:
        model = Announcement
        fields = ['priority', 'is_active']


class ActivityLogFilter(django_filters.FilterSet):
    q = django_filters.CharFilter(method='filter_q', label='Search')
    user = django_filters.ModelChoiceFilter(queryset=User.objects.all())
    module = django_filters.ChoiceFilter(choices=ModuleAccess.Module.choices)
    action = django_filters.ChoiceFilter(choices=ActivityLog.Action.choices)
    from_date = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte', label='From')
    to_date = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte', label='To')

    def filter_q(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(details__icontains=value) | Q(user_name__icontains=value))

    class Meta:
        model = ActivityLog
        fields = ['q', 'user', 'module', 'action', 'from_date', 'to_date']
