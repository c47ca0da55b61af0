"""
Django admin configuration for chat models.
"""

from django.contrib import admin

from chat.models import Message


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for message moderation."""

    list_display = ["id", "sender", "recipient", "content_preview", "is_read", "created_at"]
    list_filter = ["is_read", "created_at"]
    search_fields = ["content", "sender__handle", "recipient__handle"]
    readonly_fields = ["created_at", "updated_at", "read_at", "client_id"]
    raw_id_fields = ["sender", "recipient"]
    ordering = ["-created_at"]

    @admin.display(description="Content")
    def content_preview(self, obj):
        if len(obj.content) > 50:
            return obj.content[:50] + "..."
        return obj.content
