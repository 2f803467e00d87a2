from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Setting, AuditLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['custom_id', 'email', 'name', 'role', 'status', 'last_login', 'created_at']
    list_filter = ['role', 'status', 'is_staff', 'is_superuser']
    search_fields = ['custom_id', 'email', 'name', 'username']
    ordering = ['role', 'custom_id']
    readonly_fields = ['custom_id', 'created_by', 'last_token_update', 'created_at', 'updated_at']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Workshop', {'fields': ('name', 'role', 'status', 'phone', 'custom_id', 'created_by',
                                 'fcm_tokens', 'last_token_update', 'created_at', 'updated_at')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'username', 'name', 'role', 'password1', 'password2'),
        }),
    )


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'updated_at']
    search_fields = ['key', 'description']
    ordering = ['key']
    readonly_fields = ['updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'model_name', 'object_reference', 'object_name', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__email', 'user__name', 'details', 'object_reference', 'object_name']
    ordering = ['-created_at']
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'object_name', 'object_reference',
                       'details', 'changes', 'ip_address', 'created_at']
