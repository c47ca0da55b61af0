"""
Django admin configuration for authentication models.

Related files:
    - models.py: Model definitions
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.forms import BaseUserCreationForm

from authentication.models import User


class UserCreationForm(BaseUserCreationForm):
    """Admin add form; assigns the handle like UserManager.create_user does."""

    class Meta:
        model = User
        fields = ("email", "username")

    def save(self, commit=True):
        user = super().save(commit=False)
        user.handle = User.objects.generate_handle(user.username)
        if commit:
            user.save()
        return user


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin configuration for User model.

    Customized for email-based authentication. The handle is generated and
    shown read-only.
    """

    list_display = (
        "email",
        "username",
        "handle",
        "is_active",
        "is_staff",
        "date_joined",
    )
    list_filter = (
        "is_active",
        "is_staff",
        "is_superuser",
        "date_joined",
    )
    search_fields = ("email", "username", "handle")
    ordering = ("-date_joined",)
    add_form = UserCreationForm
    readonly_fields = ("handle", "date_joined", "last_login")

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Directory", {"fields": ("username", "handle")}),
        (
            "Status",
            {"fields": ("is_active", "is_staff", "is_superuser")},
        ),
        (
            "Permissions",
            {"fields": ("groups", "user_permissions")},
        ),
        (
            "Important dates",
            {"fields": ("date_joined", "last_login")},
        ),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "username", "password1", "password2"),
            },
        ),
    )
