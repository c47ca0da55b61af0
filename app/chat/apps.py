"""
Chat application configuration.

This app provides the real-time chat core:
- Durable direct messages between two users
- Per-user rooms for live connections
- Delivery of messages, typing signals and read receipts
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
