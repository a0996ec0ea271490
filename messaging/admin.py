from django.contrib import admin
from django.utils.html import format_html

from .models import Conversation, Message


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ("id", "participant_low", "participant_high", "last_message_at", "created_at")
    search_fields = ("participant_low__username", "participant_high__username")
    raw_id_fields = ("participant_low", "participant_high")
    readonly_fields = ("created_at", "last_message_at")
    list_per_page = 20


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "formatted_preview", "sender", "conversation", "message_type", "created_at")
    list_filter = ("message_type", "created_at")
    search_fields = ("content", "sender__username")
    raw_id_fields = ("sender", "conversation")
    readonly_fields = ("created_at",)
    list_per_page = 50

    def formatted_preview(self, obj):
        preview = obj.preview()
        short = preview[:50] + "..." if len(preview) > 50 else preview
        return format_html('<span title="{}">{}</span>', preview, short)

    formatted_preview.short_description = "Preview"
