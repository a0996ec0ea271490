# notifications/admin.py
from django.contrib import admin
from django.utils import timezone
from .models import Notification
from .services import NotificationCacheService


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("recipient", "title", "type", "from_user", "is_read", "created_at")
    list_filter = ("type", "is_read")
    search_fields = ("recipient__username", "title", "message")
    readonly_fields = ("created_at", "trigger_key")
    actions = ["mark_as_read"]

    def mark_as_read(self, request, queryset):
        recipient_ids = set(queryset.values_list("recipient_id", flat=True))
        queryset.filter(is_read=False).update(is_read=True, read_at=timezone.now())
        for recipient_id in recipient_ids:
            NotificationCacheService.invalidate_cache(recipient_id)

    mark_as_read.short_description = "Mark selected notifications as read"
