from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import (
    ActivityLog,
    Announcement,
    AppSettings,
    Lead,
    LeadNote,
    Leave,
    ModuleAccess,
    Project,
    Task,
    TaskNote,
    User,
)


class ModuleAccessInline(admin.TabularInline):
    model = ModuleAccess
    extra = 0


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = DjangoUserAdmin.fieldsets + (
        ('CRM Profile', {'fields': ('name', 'role', 'status', 'manager', 'phone', 'address')}),
    )
    list_display = ('username', 'name', 'email', 'role', 'status', 'manager')
    list_filter = ('role', 'status')
    search_fields = ('username', 'name', 'email', 'phone')
    inlines = [ModuleAccessInline]


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('name', 'location', 'project_type', 'status', 'price_min', 'price_max', 'possession_date')
    search_fields = ('name', 'location')
    list_filter = ('project_type', 'status')


class LeadNoteInline(admin.TabularInline):
    model = LeadNote
    extra = 0


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ('name', 'phone', 'requirement_type', 'status', 'source', 'follow_up_date', 'created_by')
    list_filter = ('status', 'requirement_type', 'source')
    search_fields = ('name', 'phone', 'email', 'preferred_location')
    inlines = [LeadNoteInline]


class TaskNoteInline(admin.TabularInline):
    model = TaskNote
    extra = 0


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ('lead', 'status', 'next_action_date', 'assigned_to', 'assigned_project')
    list_filter = ('status',)
    search_fields = ('lead__name', 'lead__phone')
    inlines = [TaskNoteInline]


@admin.register(Leave)
class LeaveAdmin(admin.ModelAdmin):
    list_display = ('user_name', 'user_role', 'leave_type', 'start_date', 'end_date', 'status', 'approved_by')
    list_filter = ('status', 'leave_type', 'user_role')
    search_fields = ('user_name', 'reason')


@admin.register(Announcement)
class AnnouncementAdmin(admin.ModelAdmin):
    list_display = ('title', 'priority', 'is_active', 'expires_at', 'created_by', 'created_at')
    list_filter = ('priority', 'is_active')
    search_fields = ('title', 'message')


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user_name', 'user_role', 'module', 'action', 'details')
    list_filter = ('module', 'action', 'user_role')
    search_fields = ('details', 'user_name')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AppSettings)
class AppSettingsAdmin(admin.ModelAdmin):
    list_display = ('app_name', 'primary_color', 'accent_color', 'sidebar_color')
