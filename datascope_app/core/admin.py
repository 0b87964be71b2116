from django.contrib import admin

from .models import ActivityLog, Company, ModulePermission, Profile


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "cnpj", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "cnpj")


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "full_name", "role", "company", "status")
    list_filter = ("role", "status")
    search_fields = ("full_name", "user__email")


@admin.register(ModulePermission)
class ModulePermissionAdmin(admin.ModelAdmin):
    list_display = ("role", "module_name", "enabled")
    list_filter = ("role",)


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "level", "module", "user_email", "company")
    list_filter = ("level", "module")
    search_fields = ("message", "user_email")
