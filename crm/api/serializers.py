from __future__ import annotations

from django.contrib.auth.models import update_last_login
from django.core.exceptions import ValidationError
from rest_framework import exceptions, serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.settings import api_settings as jwt_settings

from crm.accounts import LoginError, check_credentials, create_user
from crm.api.access import visible_leads_for_user
from crm.branding import Branding
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

MASKED = '••••••'


def validation_error_detail(exc: ValidationError):
    if hasattr(exc, 'message_dict'):
        return exc.message_dict
    return {'detail': exc.messages}


def _string_list(value, label: str):
    if value in (None, ''):
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise serializers.ValidationError(f'{label} must be a list of strings.')
    return [item.strip() for item in value if item.strip()]


class CleanModelSerializer(serializers.ModelSerializer):
    """ModelSerializer that runs full_clean before saving."""

    full_clean_exclude: tuple = ()

    def _perform_full_clean(self, instance):
        try:
            instance.full_clean(exclude=list(self.full_clean_exclude) or None)
        except ValidationError as exc:
            raise serializers.ValidationError(validation_error_detail(exc)) from exc

    def create(self, validated_data, **kwargs):
        validated_data.update(kwargs)
        instance = self.Meta.model(**validated_data)
        self._perform_full_clean(instance)
        instance.save()
        return instance

    def update(self, instance, validated_data, **kwargs):
        validated_data.update(kwargs)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        self._perform_full_clean(instance)
        instance.save()
        return instance


class MaskedContactMixin:
    """Blanks contact fields when the serializer context asks for it (manager view)."""

    masked_fields: tuple = ('phone', 'email', 'address')

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if self.context.get('mask_contacts'):
            for name in self.masked_fields:
                if data.get(name):
                    data[name] = MASKED
        return data


class UserSummarySerializer(serializers.ModelSerializer):
    login_id = serializers.CharField(source='username', read_only=True)
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ('id', 'login_id', 'display_name', 'role')


class ModuleAccessSerializer(serializers.ModelSerializer):
    class Meta:
        model = ModuleAccess
        fields = ('module', 'actions')


class UserSerializer(CleanModelSerializer):
    login_id = serializers.CharField(source='username', read_only=True)
    display_name = serializers.CharField(read_only=True)
    manager_detail = UserSummarySerializer(source='manager', read_only=True)

    full_clean_exclude = ('password',)

    class Meta:
        model = User
        fields = (
            'id',
            'login_id',
            'name',
            'display_name',
            'email',
            'phone',
            'address',
            'role',
            'status',
            'manager',
            'manager_detail',
            'is_active',
            'date_joined',
            'last_login',
        )
        read_only_fields = ('is_active', 'date_joined', 'last_login')


class UserCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(choices=User.Roles.choices)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    address = serializers.CharField(required=False, allow_blank=True, default='')
    manager = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), required=False, allow_null=True)

    def create(self, validated_data):
        try:
            return create_user(actor=self.context['request'].user, **validated_data)
        except ValidationError as exc:
            raise serializers.ValidationError(validation_error_detail(exc)) from exc

    def to_representation(self, instance):
        return UserSerializer(instance, context=self.context).data


class PasswordResetSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True, min_length=6)


class ProjectSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Project
        fields = ('id', 'name', 'location', 'project_type', 'status')


class ProjectSerializer(CleanModelSerializer):
    class Meta:
        model = Project
        fields = (
            'id',
            'name',
            'location',
            'project_type',
            'price_min',
            'price_max',
            'launch_date',
            'possession_date',
            'amenities',
            'description',
            'tower_details',
            'nearby_landmarks',
            'photos',
            'cover_image',
            'status',
            'created_at',
            'updated_at',
        )

    def validate_amenities(self, value):
        return _string_list(value, 'Amenities')

    def validate_nearby_landmarks(self, value):
        return _string_list(value, 'Nearby landmarks')

    def validate_photos(self, value):
        return _string_list(value, 'Photos')


class NoteSerializer(serializers.Serializer):
    content = serializers.CharField()


class LeadNoteSerializer(serializers.ModelSerializer):
    author_detail = UserSummarySerializer(source='author', read_only=True)

    class Meta:
        model = LeadNote
        fields = ('id', 'lead', 'author', 'author_detail', 'content', 'created_at')
        read_only_fields = ('lead', 'author')


class TaskNoteSerializer(serializers.ModelSerializer):
    author_detail = UserSummarySerializer(source='author', read_only=True)

    class Meta:
        model = TaskNote
        fields = ('id', 'task', 'author', 'author_detail', 'content', 'created_at')
        read_only_fields = ('task', 'author')


class LeadSerializer(MaskedContactMixin, CleanModelSerializer):
    created_by_detail = UserSummarySerializer(source='created_by', read_only=True)
    assigned_project_detail = ProjectSummarySerializer(source='assigned_project', read_only=True)
    notes = LeadNoteSerializer(many=True, read_only=True)

    class Meta:
        model = Lead
        fields = (
            'id',
            'name',
            'phone',
            'email',
            'address',
            'requirement_type',
            'bhk_requirement',
            'budget_min',
            'budget_max',
            'description',
            'preferred_location',
            'source',
            'status',
            'follow_up_date',
            'created_by',
            'created_by_detail',
            'assigned_project',
            'assigned_project_detail',
            'notes',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('created_by',)


class LeadSummarySerializer(MaskedContactMixin, serializers.ModelSerializer):
    masked_fields = ('phone', 'email')

    class Meta:
        model = Lead
        fields = ('id', 'name', 'phone', 'email', 'requirement_type', 'bhk_requirement', 'status')


class TaskSerializer(CleanModelSerializer):
    lead_detail = LeadSummarySerializer(source='lead', read_only=True)
    assigned_to_detail = UserSummarySerializer(source='assigned_to', read_only=True)
    assigned_project_detail = ProjectSummarySerializer(source='assigned_project', read_only=True)
    notes = TaskNoteSerializer(many=True, read_only=True)
    is_open = serializers.BooleanField(read_only=True)

    class Meta:
        model = Task
        fields = (
            'id',
            'lead',
            'lead_detail',
            'status',
            'next_action_date',
            'assigned_to',
            'assigned_to_detail',
            'assigned_project',
            'assigned_project_detail',
            'attachments',
            'notes',
            'is_open',
            'created_at',
            'updated_at',
        )

    def get_fields(self):
        fields = super().get_fields()
        request = self.context.get('request')
        if request is not None:
            fields['lead'].queryset = visible_leads_for_user(request.user, Lead.objects.all())
        return fields

    def validate_attachments(self, value):
        return _string_list(value, 'Attachments')


class StatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class ConvertLeadSerializer(serializers.Serializer):
    assigned_to = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(role=User.Roles.STAFF), required=False, allow_null=True
    )
    assigned_project = serializers.PrimaryKeyRelatedField(
        queryset=Project.objects.all(), required=False, allow_null=True
    )
    next_action_date = serializers.DateField(required=False, allow_null=True)


class BulkDeleteSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)


class SpreadsheetUploadSerializer(serializers.Serializer):
    file = serializers.FileField()

    def validate_file(self, value):
        if not (value.name or '').lower().endswith('.xlsx'):
            raise serializers.ValidationError('Only .xlsx files are supported.')
        return value


class LeaveSerializer(CleanModelSerializer):
    user_detail = UserSummarySerializer(source='user', read_only=True)
    approved_by_detail = UserSummarySerializer(source='approved_by', read_only=True)
    days = serializers.IntegerField(read_only=True)

    class Meta:
        model = Leave
        fields = (
            'id',
            'user',
            'user_detail',
            'user_name',
            'user_role',
            'leave_type',
            'start_date',
            'end_date',
            'days',
            'reason',
            'document_url',
            'status',
            'approved_by',
            'approved_by_detail',
            'approved_at',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('user', 'user_name', 'user_role', 'status', 'approved_by', 'approved_at')


class LeaveDecisionSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class AnnouncementSerializer(CleanModelSerializer):
    created_by_detail = UserSummarySerializer(source='created_by', read_only=True)

    class Meta:
        model = Announcement
        fields = (
            'id',
            'title',
            'message',
            'priority',
            'target_roles',
            'created_by',
            'created_by_detail',
            'expires_at',
            'is_active',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('created_by',)

    def validate_target_roles(self, value):
        return _string_list(value, 'Target roles')


class DismissSerializer(serializers.Serializer):
    announcement = serializers.IntegerField(min_value=1)


class ActivityLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = ActivityLog
        fields = ('id', 'user', 'user_name', 'user_role', 'module', 'action', 'details', 'created_at')
        read_only_fields = fields


class BrandingSerializer(serializers.Serializer):
    app_name = serializers.CharField(max_length=100, required=False)
    logo_url = serializers.CharField(max_length=500, required=False, allow_blank=True)
    primary_color = serializers.CharField(max_length=50, required=False)
    accent_color = serializers.CharField(max_length=50, required=False)
    sidebar_color = serializers.CharField(max_length=50, required=False)
    custom_css = serializers.CharField(required=False, allow_blank=True)
    css_variables = serializers.SerializerMethodField()

    def get_css_variables(self, obj: Branding) -> str:
        return obj.css_variables()


class LoginIdTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Issues a JWT pair for ``login_id`` + password with the CRM's sign-in messages."""

    username_field = 'login_id'

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['login_id'] = user.username
        token['role'] = User.Roles.ADMIN if user.is_superuser else user.role
        return token

    def validate(self, attrs):
        try:
            user = check_credentials(attrs.get('login_id'), attrs.get('password'))
        except LoginError as exc:
            raise exceptions.AuthenticationFailed(exc.message, exc.code) from exc
        self.user = user
        refresh = self.get_token(user)
        if jwt_settings.UPDATE_LAST_LOGIN:
            update_last_login(None, user)
        return {
            'refresh': str(refresh),
            'access': str(refresh.access_token),
            'user': UserSerializer(user).data,
        }
