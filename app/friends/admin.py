"""
Django admin configuration for friend requests.
"""

from django.contrib import admin

from friends.models import FriendRequest


@admin.register(FriendRequest)
class FriendRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "from_user", "to_user", "status", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("from_user__handle", "to_user__handle")
    raw_id_fields = ("from_user", "to_user")
    ordering = ("-created_at",)
