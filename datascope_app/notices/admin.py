from django.contrib import admin

from .models import Notice, UserNotice


@admin.register(Notice)
class NoticeAdmin(admin.ModelAdmin):
    list_display = ("created_at", "sender_email", "company", "target_roles")
    list_filter = ("company",)
    search_fields = ("message", "sender_email")


@admin.register(UserNotice)
class UserNoticeAdmin(admin.ModelAdmin):
    list_display = ("notice", "user", "read_at")
