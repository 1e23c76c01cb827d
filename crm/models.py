from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.db import models


class User(AbstractUser):
    """Account record. ``username`` holds the generated login id."""

    class Roles(models.TextChoices):
        ADMIN = 'admin', 'Admin'
        MANAGER = 'manager', 'Manager'
        STAFF = 'staff', 'Staff'

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'

    name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    address = models.TextField(blank=True)
    role = models.CharField(max_length=16, choices=Roles.choices, default=Roles.STAFF)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    manager = models.ForeignKey(
        'self', on_delete=models.SET_NULL, null=True, blank=True, related_name='reports'
    )

    class Meta:
        indexes = [
            models.Index(fields=['role', 'status'], name='crm_user_role_status_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.display_name} ({self.get_role_display()})"

    @property
    def login_id(self) -> str:
        return self.username

    @property
    def display_name(self) -> str:
        return self.name or self.get_full_name() or self.username

    @property
    def is_admin(self) -> bool:
        return self.is_superuser or self.role == self.Roles.ADMIN

    def has_any_role(self, *roles: str) -> bool:
        if self.is_superuser and self.Roles.ADMIN in roles:
            return True
        return self.role in roles

    def clean(self):
        super().clean()
        if self.manager_id:
            if self.pk and self.manager_id == self.pk:
                raise ValidationError({'manager': 'A user cannot report to themselves.'})
            if self.manager.role == self.Roles.STAFF:
                raise ValidationError({'manager': 'Reporting manager must be a manager or an admin.'})
        if self.pk and self.role == self.Roles.STAFF and type(self).objects.filter(manager_id=self.pk).exists():
            raise ValidationError({'role': "Reassign this user's direct reports before making them staff."})

    def save(self, *args, **kwargs):
        self.is_active = self.status == self.Status.ACTIVE
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'status' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'is_active'}
        super().save(*args, **kwargs)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ModuleAccess(TimeStampedModel):
    """Per-user narrowing of what the role allows inside one module."""

    class Module(models.TextChoices):
        LEADS = 'leads', 'Leads'
        TASKS = 'tasks', 'Tasks'
        PROJECTS = 'projects', 'Projects'
        LEAVES = 'leaves', 'Leaves'
        USERS = 'users', 'Users'
        REPORTS = 'reports', 'Reports'
        ANNOUNCEMENTS = 'announcements', 'Announcements'
        SETTINGS = 'settings', 'Settings'

    class Action(models.TextChoices):
        VIEW = 'view', 'View'
        CREATE = 'create', 'Create'
        EDIT = 'edit', 'Edit'
        DELETE = 'delete', 'Delete'
        APPROVE = 'approve', 'Approve'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='module_access')
    module = models.CharField(max_length=32, choices=Module.choices)
    actions = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ['module']
        constraints = [
            models.UniqueConstraint(fields=['user', 'module'], name='unique_module_access_per_user'),
        ]

    def __str__(self) -> str:
        return f"{self.user} · {self.module}: {', '.join(self.actions) or '-'}"

    def clean(self):
        super().clean()
        unknown = [action for action in (self.actions or []) if action not in self.Action.values]
        if unknown:
            raise ValidationError({'actions': f"Unknown actions: {', '.join(unknown)}."})


class Project(TimeStampedModel):
    class ProjectType(models.TextChoices):
        VILLA = 'villa', 'Villa'
        APARTMENT = 'apartment', 'Apartment'
        PLOTS = 'plots', 'Plots'

    class Status(models.TextChoices):
        UPCOMING = 'upcoming', 'Upcoming'
        ONGOING = 'ongoing', 'Ongoing'
        COMPLETED = 'completed', 'Completed'

    name = models.CharField(max_length=255)
    location = models.CharField(max_length=255)
    project_type = models.CharField(max_length=16, choices=ProjectType.choices, default=ProjectType.APARTMENT)
    price_min = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    price_max = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    launch_date = models.DateField(null=True, blank=True)
    possession_date = models.DateField(null=True, blank=True)
    amenities = models.JSONField(default=list, blank=True)
    description = models.TextField(blank=True)
    tower_details = models.TextField(blank=True)
    nearby_landmarks = models.JSONField(default=list, blank=True)
    photos = models.JSONField(default=list, blank=True)
    cover_image = models.URLField(max_length=500, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.UPCOMING)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='crm_project_status_idx'),
            models.Index(fields=['project_type'], name='crm_project_type_idx'),
        ]

    def __str__(self) -> str:
        return self.name

    def clean(self):
        super().clean()
        if self.price_min and self.price_max and self.price_max < self.price_min:
            raise ValidationError({'price_max': 'Maximum price cannot be lower than the minimum price.'})
        if self.launch_date and self.possession_date and self.possession_date < self.launch_date:
            raise ValidationError({'possession_date': 'Possession date cannot be earlier than the launch date.'})


class Lead(TimeStampedModel):
    class Status(models.TextChoices):
        INTERESTED = 'interested', 'Interested'
        NOT_INTERESTED = 'not_interested', 'Not Interested'
        PENDING = 'pending', 'Pending'
        REMINDER = 'reminder', 'Reminder'

    class RequirementType(models.TextChoices):
        VILLA = 'villa', 'Villa'
        APARTMENT = 'apartment', 'Apartment'
        HOUSE = 'house', 'House'
        PLOT = 'plot', 'Plot'

    class BHK(models.TextChoices):
        ONE = '1', '1 BHK'
        TWO = '2', '2 BHK'
        THREE = '3', '3 BHK'
        FOUR = '4', '4 BHK'
        FIVE_PLUS = '5+', '5+ BHK'

    class Source(models.TextChoices):
        CALL = 'call', 'Call'
        WALK_IN = 'walk_in', 'Walk-in'
        WEBSITE = 'website', 'Website'
        REFERRAL = 'referral', 'Referral'

    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    requirement_type = models.CharField(
        max_length=16, choices=RequirementType.choices, default=RequirementType.APARTMENT
    )
    bhk_requirement = models.CharField(max_length=4, choices=BHK.choices, default=BHK.TWO)
    budget_min = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    budget_max = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    description = models.TextField(blank=True)
    preferred_location = models.CharField(max_length=255, blank=True)
    source = models.CharField(max_length=16, choices=Source.choices, default=Source.WEBSITE)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    follow_up_date = models.DateField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='leads'
    )
    assigned_project = models.ForeignKey(
        Project, on_delete=models.SET_NULL, null=True, blank=True, related_name='leads'
    )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['created_by', 'status'], name='crm_lead_owner_status_idx'),
            models.Index(fields=['status', 'follow_up_date'], name='crm_lead_followup_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.phone})"

    def clean(self):
        super().clean()
        if self.budget_min and self.budget_max and self.budget_max < self.budget_min:
            raise ValidationError({'budget_max': 'Maximum budget cannot be lower than the minimum budget.'})


class LeadNote(TimeStampedModel):
    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='notes')
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='lead_notes'
    )
    content = models.TextField()

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self) -> str:
        return f"Note on {self.lead}"


class Task(TimeStampedModel):
    class Status(models.TextChoices):
        VISIT = 'visit', 'Visit'
        FAMILY_VISIT = 'family_visit', 'Family Visit'
        PENDING = 'pending', 'Pending'
        COMPLETED = 'completed', 'Completed'
        REJECTED = 'rejected', 'Rejected'

    CLOSED_STATUSES = (Status.COMPLETED, Status.REJECTED)

    # Weak reference: deleting a lead keeps its tasks.
    lead = models.ForeignKey(Lead, on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks')
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    next_action_date = models.DateField(null=True, blank=True)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks'
    )
    assigned_project = models.ForeignKey(
        Project, on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks'
    )
    attachments = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['assigned_to', 'status', 'next_action_date'], name='crm_task_assignee_idx'),
        ]

    def __str__(self) -> str:
        lead_name = self.lead.name if self.lead_id else 'Unlinked lead'
        return f"{lead_name} · {self.get_status_display()}"

    @property
    def is_open(self) -> bool:
        return self.status not in self.CLOSED_STATUSES


class TaskNote(TimeStampedModel):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='notes')
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='task_notes'
    )
    content = models.TextField()

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self) -> str:
        return f"Note on task #{self.task_id}"


class Leave(TimeStampedModel):
    class LeaveType(models.TextChoices):
        SICK = 'sick', 'Sick Leave'
        CASUAL = 'casual', 'Casual Leave'
        ANNUAL = 'annual', 'Annual Leave'
        OTHER = 'other', 'Other'

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='leaves'
    )
    # Snapshot of the requester at submission time.
    user_name = models.CharField(max_length=255)
    user_role = models.CharField(max_length=16, choices=User.Roles.choices)
    leave_type = models.CharField(max_length=16, choices=LeaveType.choices, default=LeaveType.CASUAL)
    start_date = models.DateField()
    end_date = models.DateField()
    reason = models.TextField()
    document_url = models.URLField(max_length=500, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='leaves_decided',
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'start_date'], name='crm_leave_status_start_idx'),
            models.Index(fields=['user', 'status'], name='crm_leave_user_status_idx'),
            models.Index(fields=['user_role', 'status'], name='crm_leave_role_status_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.user_name} · {self.get_leave_type_display()} · {self.start_date}"

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def is_decided(self) -> bool:
        return self.status != self.Status.PENDING

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': 'End date cannot be earlier than the start date.'})
        if self.is_decided and not self.approved_by_id:
            raise ValidationError({'approved_by': 'A decided leave must record who decided it.'})
        if not self.is_decided and self.approved_by_id:
            raise ValidationError({'approved_by': 'A pending leave cannot have an approver.'})
        if self._state.adding and self.user_id and not self.document_url:
            if Leave.objects.filter(user_id=self.user_id).exists():
                raise ValidationError(
                    {'document_url': 'A supporting document is required from the second leave request onwards.'}
                )


class Announcement(TimeStampedModel):
    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'

    AUDIENCE_ROLES = (User.Roles.MANAGER, User.Roles.STAFF)

    title = models.CharField(max_length=255)
    message = models.TextField()
    priority = models.CharField(max_length=8, choices=Priority.choices, default=Priority.MEDIUM)
    target_roles = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='announcements'
    )
    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'expires_at'], name='crm_announcement_active_idx'),
        ]

    def __str__(self) -> str:
        return self.title

    def clean(self):
        super().clean()
        invalid = [role for role in (self.target_roles or []) if role not in self.AUDIENCE_ROLES]
        if invalid:
            raise ValidationError({'target_roles': 'Announcements can only target managers and staff.'})


class ActivityLog(models.Model):
    """Append-only audit trail of every mutation made through the CRM."""

    class Action(models.TextChoices):
        CREATED = 'created', 'Created'
        UPDATED = 'updated', 'Updated'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'
        DELETED = 'deleted', 'Deleted'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='activity_logs'
    )
    user_name = models.CharField(max_length=255)
    user_role = models.CharField(max_length=16, choices=User.Roles.choices)
    module = models.CharField(max_length=32, choices=ModuleAccess.Module.choices)
    action = models.CharField(max_length=16, choices=Action.choices)
    details = models.CharField(max_length=500)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['created_at'], name='crm_activity_created_idx'),
            models.Index(fields=['user', 'created_at'], name='crm_activity_user_idx'),
            models.Index(fields=['module', 'created_at'], name='crm_activity_module_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.user_name}: {self.action} {self.module} · {self.details}"


class AppSettings(TimeStampedModel):
    app_name = models.CharField(max_length=120, default='ESWARI CRM')
    logo_url = models.URLField(max_length=500, blank=True)
    primary_color = models.CharField(max_length=32, default='215 80% 35%')
    accent_color = models.CharField(max_length=32, default='38 95% 55%')
    sidebar_color = models.CharField(max_length=32, default='220 30% 12%')
    custom_css = models.TextField(blank=True)
    singleton = models.BooleanField(default=True, unique=True)

    class Meta:
        verbose_name = 'App Settings'
        verbose_name_plural = 'App Settings'

    def __str__(self) -> str:
        return self.app_name or 'App Settings'
