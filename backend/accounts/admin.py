from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class CustomUserAdmin(UserAdmin):
    fieldsets = UserAdmin.fieldsets + (
        (
            "Club",
            {
                "fields": (
                    "role",
                    "deleted_at",
                )
            },
        ),
    )
    list_display = (
        "username",
        "email",
        "role",
        "is_active",
        "deleted_at",
    )
    list_filter = ("role", "is_active")
