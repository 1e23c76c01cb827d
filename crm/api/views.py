from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.db import transaction as db_transaction
from django.utils import timezone
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from crm import reports, spreadsheets
from crm.accounts import reset_password, set_user_status, toggle_user_status
from crm.activity import log_activity
from crm.announcements import (
    AnnouncementBanner,
    dismiss_in_session,
    parse_dismissed_param,
    session_dismissed,
)
from crm.api.access import (
    targeted_announcements,
    visible_announcements_for_user,
    visible_leads_for_user,
    visible_leaves_for_user,
    visible_projects_for_user,
    visible_tasks_for_user,
    visible_users_for_user,
)
from crm.api.permissions import ModulePermission, RolePermission
from crm.api.serializers import (
    ActivityLogSerializer,
    AnnouncementSerializer,
    BrandingSerializer,
    BulkDeleteSerializer,
    ConvertLeadSerializer,
    DismissSerializer,
    LeadNoteSerializer,
    LeadSerializer,
    LeaveDecisionSerializer,
    LeaveSerializer,
    LoginIdTokenObtainPairSerializer,
    ModuleAccessSerializer,
    NoteSerializer,
    PasswordResetSerializer,
    ProjectSerializer,
    SpreadsheetUploadSerializer,
    StatusSerializer,
    TaskNoteSerializer,
    TaskSerializer,
    UserCreateSerializer,
    UserSerializer,
    validation_error_detail,
)
from crm.branding import load_branding, update_branding
from crm.filters import (
    ActivityLogFilter,
    AnnouncementFilter,
    LeadFilter,
    LeaveFilter,
    ProjectFilter,
    TaskFilter,
    UserFilter,
)
from crm.models import (
    ActivityLog,
    Announcement,
    Lead,
    LeadNote,
    Leave,
    ModuleAccess,
    Project,
    Task,
    TaskNote,
    User,
)
from crm.permissions import (
    MODULE_KEYS,
    effective_role,
    ensure_module_access,
    get_permissions_for_user,
    user_can,
    view_config_for_user,
)
from crm.transitions import (
    TransitionError,
    approve_leave,
    reject_leave,
    set_lead_status,
    set_task_status,
    toggle_announcement,
)

logger = logging.getLogger(__name__)

ADMIN_ONLY = (User.Roles.ADMIN,)


def _bad_request(exc: Exception) -> Response:
    return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)


class LoginIdTokenObtainPairView(TokenObtainPairView):
    permission_classes = (AllowAny,)
    serializer_class = LoginIdTokenObtainPairSerializer


class CustomTokenRefreshView(TokenRefreshView):
    permission_classes = (AllowAny,)


class MeView(APIView):
    def get(self, request):
        return Response({
            'user': UserSerializer(request.user).data,
            'role': effective_role(request.user),
            'permissions': get_permissions_for_user(request.user),
        })


class ViewConfigView(APIView):
    def get(self, request):
        return Response({module: view_config_for_user(request.user, module).as_dict() for module in MODULE_KEYS})


class DashboardView(APIView):
    def get(self, request):
        user = request.user
        try:
            summary = reports.dashboard_summary(
                visible_leads_for_user(user),
                visible_tasks_for_user(user),
                visible_projects_for_user(user),
                visible_leaves_for_user(user),
            )
        except DatabaseError:
            logger.exception('Dashboard summary failed for user %s', user.pk)
            summary = {}
        summary['role'] = effective_role(user)
        return Response(summary)


class ReportsView(APIView):
    def get(self, request):
        if not user_can(request.user, 'reports', 'view'):
            raise PermissionDenied('You do not have permission to view reports.')
        today = timezone.localdate()
        try:
            year = int(request.query_params.get('year') or today.year)
            month = int(request.query_params.get('month') or today.month)
        except ValueError:
            return Response({'detail': 'Year and month must be numbers.'}, status=status.HTTP_400_BAD_REQUEST)
        if not 1 <= month <= 12:
            return Response({'detail': 'Month must be between 1 and 12.'}, status=status.HTTP_400_BAD_REQUEST)
        leads, tasks, leaves = Lead.objects.all(), Task.objects.all(), Leave.objects.all()
        return Response({
            'year': year,
            'month': month,
            'staff_performance': reports.staff_performance(leads, tasks),
            'monthly_leaves': reports.monthly_leaves(leaves, year, month),
            'leave_stats': reports.leave_stats(leaves),
            'lead_status_counts': reports.status_counts(leads, Lead.Status.choices),
            'task_status_counts': reports.status_counts(tasks, Task.Status.choices),
            'project_status_counts': reports.status_counts(Project.objects.all(), Project.Status.choices),
        })


class RemindersView(APIView):
    def get(self, request):
        user = request.user
        due = reports.reminders(visible_leads_for_user(user), visible_tasks_for_user(user))
        context = {'request': request, 'mask_contacts': view_config_for_user(user, 'leads').is_manager_view}
        return Response({
            'upcoming_leads': LeadSerializer(due['upcoming_leads'], many=True, context=context).data,
            'overdue_leads': LeadSerializer(due['overdue_leads'], many=True, context=context).data,
            'upcoming_tasks': TaskSerializer(due['upcoming_tasks'], many=True, context=context).data,
        })


class BrandingView(APIView):
    def get_permissions(self):
        if self.request.method == 'GET':
            return [AllowAny()]
        return [IsAuthenticated()]

    def get(self, request):
        return Response(BrandingSerializer(load_branding()).data)

    def patch(self, request):
        serializer = BrandingSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            branding = update_branding(actor=request.user, **serializer.validated_data)
        except ValidationError as exc:
            raise serializers.ValidationError(validation_error_detail(exc)) from exc
        return Response(BrandingSerializer(branding).data)


class BaseModelViewSet(viewsets.ModelViewSet):
    permission_classes = (ModulePermission, RolePermission)
    module_permission: str | None = None
    role_map: dict[str, tuple[str, ...] | None] | None = None
    action_gates: dict[str, str] | None = None
    noun = 'record'

    def get_permissions(self):
        if self.role_map:
            roles = self.role_map.get(self.action)
            self.allowed_roles = roles
        return super().get_permissions()

    def describe(self, instance) -> str:
        return str(instance)

    def log(self, action_name: str, details: str, module: str | None = None):
        return log_activity(
            actor=self.request.user,
            module=module or self.module_permission,
            action=action_name,
            details=details,
        )

    def list(self, request, *args, **kwargs):
        try:
            return super().list(request, *args, **kwargs)
        except DatabaseError:
            logger.exception('Listing %s failed', self.module_permission)
            if self.paginator is not None:
                return Response({'count': 0, 'next': None, 'previous': None, 'results': []})
            return Response([])

    def perform_create(self, serializer):
        instance = serializer.save(**self.get_create_kwargs())
        self.log(ActivityLog.Action.CREATED, f"Created {self.noun} {self.describe(instance)}")

    def get_create_kwargs(self) -> dict:
        return {}

    def perform_update(self, serializer):
        instance = serializer.save()
        self.log(ActivityLog.Action.UPDATED, f"Updated {self.noun} {self.describe(instance)}")

    def perform_destroy(self, instance):
        description = self.describe(instance)
        instance.delete()
        self.log(ActivityLog.Action.DELETED, f"Deleted {self.noun} {description}")


class SpreadsheetActionsMixin:
    """Template download, .xlsx import and export of the visible list."""

    template_builder = None
    exporter = None
    importer = None
    export_name = 'export'

    def _mask_contacts(self) -> bool:
        return view_config_for_user(self.request.user, 'leads').is_manager_view

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['mask_contacts'] = self._mask_contacts()
        return context

    @action(detail=False, methods=['get'])
    def template(self, request):
        workbook = type(self).template_builder()
        return spreadsheets.workbook_response(workbook, f"{self.export_name}_template.xlsx")

    @action(detail=False, methods=['get'], url_path='export')
    def export_excel(self, request):
        records = self.filter_queryset(self.get_queryset())
        workbook = type(self).exporter(records, mask_contacts=self._mask_contacts())
        filename = f"{self.export_name}_{timezone.localdate():%Y-%m-%d}.xlsx"
        return spreadsheets.workbook_response(workbook, filename)

    @action(detail=False, methods=['post'], url_path='import')
    def import_excel(self, request):
        upload = SpreadsheetUploadSerializer(data=request.data)
        upload.is_valid(raise_exception=True)
        try:
            result = type(self).importer(upload.validated_data['file'], actor=request.user)
        except spreadsheets.SpreadsheetError as exc:
            return _bad_request(exc)
        return Response(result.as_dict(), status=status.HTTP_201_CREATED if result.imported else status.HTTP_200_OK)


class LeadViewSet(SpreadsheetActionsMixin, BaseModelViewSet):
    serializer_class = LeadSerializer
    module_permission = 'leads'
    noun = 'lead'
    filterset_class = LeadFilter
    search_fields = ('name', 'phone', 'email', 'preferred_location')
    ordering_fields = ('created_at', 'updated_at', 'name', 'status', 'follow_up_date', 'budget_max')
    action_gates = {
        'set_status': 'edit',
        'add_note': 'edit',
        'convert': 'edit',
        'import_excel': 'create',
    }
    template_builder = spreadsheets.lead_template
    exporter = spreadsheets.export_leads
    importer = spreadsheets.import_leads
    export_name = 'leads'

    def get_queryset(self):
        qs = Lead.objects.select_related('created_by', 'assigned_project').prefetch_related('notes__author')
        return visible_leads_for_user(self.request.user, qs)

    def describe(self, instance) -> str:
        return instance.name

    def get_create_kwargs(self) -> dict:
        return {'created_by': self.request.user}

    @action(detail=True, methods=['post'])
    def set_status(self, request, pk=None):
        lead = self.get_object()
        payload = StatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            set_lead_status(lead, payload.validated_data['status'], actor=request.user)
        except TransitionError as exc:
            return _bad_request(exc)
        return Response(self.get_serializer(lead).data)

    @action(detail=True, methods=['post'])
    def add_note(self, request, pk=None):
        lead = self.get_object()
        payload = NoteSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        note = LeadNote.objects.create(lead=lead, author=request.user, content=payload.validated_data['content'])
        self.log(ActivityLog.Action.UPDATED, f"Added note to lead {lead.name}")
        return Response(LeadNoteSerializer(note).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def convert(self, request, pk=None):
        if not view_config_for_user(request.user, 'leads').can_convert:
            raise PermissionDenied('You do not have permission to convert leads.')
        lead = self.get_object()
        payload = ConvertLeadSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        assignee = request.user
        if effective_role(request.user) == User.Roles.ADMIN and data.get('assigned_to'):
            assignee = data['assigned_to']
        task = Task.objects.create(
            lead=lead,
            status=Task.Status.PENDING,
            assigned_to=assignee,
            assigned_project=data.get('assigned_project') or lead.assigned_project,
            next_action_date=data.get('next_action_date') or lead.follow_up_date,
        )
        self.log(
            ActivityLog.Action.CREATED,
            f"Converted lead {lead.name} to a task for {assignee.display_name}",
            module='tasks',
        )
        return Response(TaskSerializer(task, context=self.get_serializer_context()).data, status=status.HTTP_201_CREATED)


class TaskViewSet(SpreadsheetActionsMixin, BaseModelViewSet):
    serializer_class = TaskSerializer
    module_permission = 'tasks'
    noun = 'task'
    filterset_class = TaskFilter
    search_fields = ('lead__name', 'lead__phone')
    ordering_fields = ('created_at', 'updated_at', 'status', 'next_action_date')
    action_gates = {
        'set_status': 'edit',
        'add_note': 'edit',
        'bulk_delete': 'delete',
        'import_excel': 'create',
    }
    role_map = {'bulk_delete': ADMIN_ONLY}
    template_builder = spreadsheets.task_template
    exporter = spreadsheets.export_tasks
    importer = spreadsheets.import_tasks
    export_name = 'tasks'

    def get_queryset(self):
        qs = Task.objects.select_related('lead', 'assigned_to', 'assigned_project').prefetch_related('notes__author')
        return visible_tasks_for_user(self.request.user, qs)

    def _mask_contacts(self) -> bool:
        return view_config_for_user(self.request.user, 'tasks').is_manager_view

    def describe(self, instance) -> str:
        return f"for {instance.lead.name}" if instance.lead_id else f"#{instance.pk}"

    def get_create_kwargs(self) -> dict:
        if effective_role(self.request.user) == User.Roles.STAFF:
            return {'assigned_to': self.request.user}
        return {}

    def perform_update(self, serializer):
        if effective_role(self.request.user) == User.Roles.STAFF:
            instance = serializer.save(assigned_to=self.request.user)
        else:
            instance = serializer.save()
        self.log(ActivityLog.Action.UPDATED, f"Updated task {self.describe(instance)}")

    @action(detail=True, methods=['post'])
    def set_status(self, request, pk=None):
        task = self.get_object()
        payload = StatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            set_task_status(task, payload.validated_data['status'], actor=request.user)
        except TransitionError as exc:
            return _bad_request(exc)
        return Response(self.get_serializer(task).data)

    @action(detail=True, methods=['post'])
    def add_note(self, request, pk=None):
        task = self.get_object()
        payload = NoteSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        note = TaskNote.objects.create(task=task, author=request.user, content=payload.validated_data['content'])
        self.log(ActivityLog.Action.UPDATED, f"Added note to task {self.describe(task)}")
        return Response(TaskNoteSerializer(note).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def bulk_delete(self, request):
        payload = BulkDeleteSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        deleted = 0
        with db_transaction.atomic():
            for task in self.get_queryset().filter(pk__in=payload.validated_data['ids']):
                self.perform_destroy(task)
                deleted += 1
        return Response({'deleted': deleted})


class ProjectViewSet(BaseModelViewSet):
    serializer_class = ProjectSerializer
    module_permission = 'projects'
    noun = 'project'
    filterset_class = ProjectFilter
    search_fields = ('name', 'location', 'description')
    ordering_fields = ('created_at', 'name', 'price_min', 'launch_date', 'possession_date')

    def get_queryset(self):
        return visible_projects_for_user(self.request.user, Project.objects.all())

    def describe(self, instance) -> str:
        return instance.name


class LeaveViewSet(BaseModelViewSet):
    serializer_class = LeaveSerializer
    module_permission = 'leaves'
    noun = 'leave request'
    filterset_class = LeaveFilter
    search_fields = ('user_name', 'reason')
    ordering_fields = ('created_at', 'start_date', 'end_date', 'status')
    action_gates = {'approve': 'approve', 'reject': 'approve'}

    def get_queryset(self):
        qs = Leave.objects.select_related('user', 'approved_by')
        return visible_leaves_for_user(self.request.user, qs)

    def describe(self, instance) -> str:
        return f"{instance.get_leave_type_display().lower()} for {instance.user_name} ({instance.start_date} to {instance.end_date})"

    def get_create_kwargs(self) -> dict:
        user = self.request.user
        return {'user': user, 'user_name': user.display_name, 'user_role': effective_role(user)}

    def perform_update(self, serializer):
        if serializer.instance.is_decided:
            raise serializers.ValidationError({'detail': 'Approved or rejected leaves cannot be edited.'})
        super().perform_update(serializer)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        leave = self.get_object()
        try:
            approve_leave(leave, actor=request.user)
        except TransitionError as exc:
            return _bad_request(exc)
        return Response(self.get_serializer(leave).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        leave = self.get_object()
        payload = LeaveDecisionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            reject_leave(leave, actor=request.user, reason=payload.validated_data['reason'])
        except TransitionError as exc:
            return _bad_request(exc)
        return Response(self.get_serializer(leave).data)


class UserViewSet(BaseModelViewSet):
    serializer_class = UserSerializer
    module_permission = 'users'
    noun = 'user'
    filterset_class = UserFilter
    search_fields = ('name', 'username', 'email', 'phone')
    ordering_fields = ('name', 'username', 'role', 'status', 'date_joined')
    action_gates = {'toggle_status': 'edit', 'reset_password': 'edit', 'module_access': 'view'}
    role_map = {
        'create': ADMIN_ONLY,
        'update': ADMIN_ONLY,
        'partial_update': ADMIN_ONLY,
        'destroy': ADMIN_ONLY,
        'toggle_status': ADMIN_ONLY,
        'reset_password': ADMIN_ONLY,
        'module_access': ADMIN_ONLY,
    }

    def get_queryset(self):
        qs = User.objects.select_related('manager').order_by('role', 'name', 'username')
        return visible_users_for_user(self.request.user, qs)

    def get_serializer_class(self):
        if self.action == 'create':
            return UserCreateSerializer
        return UserSerializer

    def describe(self, instance) -> str:
        return instance.username

    def perform_create(self, serializer):
        # create_user() records its own activity entry.
        serializer.save()

    def perform_update(self, serializer):
        previous_role = serializer.instance.role
        new_status = serializer.validated_data.pop('status', None)
        with db_transaction.atomic():
            instance = serializer.save()
            if instance.role != previous_role:
                instance.module_access.all().delete()
                ensure_module_access(instance)
            if new_status and new_status != instance.status:
                try:
                    set_user_status(instance, new_status, actor=self.request.user)
                except ValidationError as exc:
                    raise serializers.ValidationError(validation_error_detail(exc)) from exc
        self.log(ActivityLog.Action.UPDATED, f"Updated user {instance.username}")

    def perform_destroy(self, instance):
        if instance.pk == self.request.user.pk:
            raise serializers.ValidationError({'detail': 'You cannot delete your own account.'})
        super().perform_destroy(instance)

    @action(detail=True, methods=['post'])
    def toggle_status(self, request, pk=None):
        user = self.get_object()
        try:
            toggle_user_status(user, actor=request.user)
        except ValidationError as exc:
            raise serializers.ValidationError(validation_error_detail(exc)) from exc
        return Response(UserSerializer(user).data)

    @action(detail=True, methods=['post'])
    def reset_password(self, request, pk=None):
        user = self.get_object()
        payload = PasswordResetSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        reset_password(user, payload.validated_data['password'], actor=request.user)
        return Response({'detail': 'Password updated.'})

    @action(detail=True, methods=['get', 'post'])
    def module_access(self, request, pk=None):
        user = self.get_object()
        if request.method == 'POST':
            payload = ModuleAccessSerializer(data=request.data)
            payload.is_valid(raise_exception=True)
            row, _ = ModuleAccess.objects.get_or_create(user=user, module=payload.validated_data['module'])
            row.actions = payload.validated_data['actions']
            try:
                row.full_clean()
            except ValidationError as exc:
                raise serializers.ValidationError(validation_error_detail(exc)) from exc
            row.save()
            self.log(
                ActivityLog.Action.UPDATED,
                f"Set {row.module} permissions for {user.username} to {', '.join(row.actions) or 'none'}",
            )
        rows = ModuleAccess.objects.filter(user=user)
        return Response({
            'stored': ModuleAccessSerializer(rows, many=True).data,
            'effective': get_permissions_for_user(user),
        })


class AnnouncementViewSet(BaseModelViewSet):
    serializer_class = AnnouncementSerializer
    module_permission = 'announcements'
    noun = 'announcement'
    filterset_class = AnnouncementFilter
    search_fields = ('title', 'message')
    ordering_fields = ('created_at', 'priority', 'expires_at')
    action_gates = {'toggle': 'edit'}
    role_map = {
        'create': ADMIN_ONLY,
        'update': ADMIN_ONLY,
        'partial_update': ADMIN_ONLY,
        'destroy': ADMIN_ONLY,
        'toggle': ADMIN_ONLY,
    }

    def get_queryset(self):
        qs = Announcement.objects.select_related('created_by')
        return visible_announcements_for_user(self.request.user, qs)

    def describe(self, instance) -> str:
        return instance.title

    def get_create_kwargs(self) -> dict:
        return {'created_by': self.request.user}

    def _dismissed(self, request):
        return session_dismissed(request.session) | parse_dismissed_param(request.query_params.get('dismissed'))

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        announcement = self.get_object()
        toggle_announcement(announcement, actor=request.user)
        return Response(self.get_serializer(announcement).data)

    @action(detail=False, methods=['get'])
    def banner(self, request):
        role = effective_role(request.user)
        banner = AnnouncementBanner(targeted_announcements(role), role, self._dismissed(request))
        return Response(self.get_serializer(banner.visible, many=True).data)

    @action(detail=False, methods=['post'])
    def dismiss(self, request):
        payload = DismissSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        dismissed = dismiss_in_session(request.session, payload.validated_data['announcement'])
        return Response({'dismissed': sorted(dismissed)})

    @action(detail=False, methods=['get'])
    def feed(self, request):
        role = effective_role(request.user)
        announcements = targeted_announcements(role).select_related('created_by').order_by('-created_at', '-id')
        return Response(self.get_serializer(announcements, many=True).data)


class ActivityLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = ActivityLog.objects.select_related('user').order_by('-created_at', '-id')
    serializer_class = ActivityLogSerializer
    permission_classes = (RolePermission,)
    allowed_roles = ADMIN_ONLY
    filterset_class = ActivityLogFilter
    search_fields = ('details', 'user_name')
    ordering_fields = ('created_at', 'module', 'action')
