from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from accounts.models import Member


@admin.register(Member)
class MemberAdmin(BaseUserAdmin):
    """Admin panel for carpool members"""

    list_display = [
        "username",
        "email",
        "role",
        "gender",
        "phone_number",
        "is_active",
        "is_staff",
    ]

    list_filter = [
        "role",
        "is_active",
        "is_staff",
        "date_joined",
    ]

    search_fields = [
        "username",
        "first_name",
        "last_name",
        "email",
        "phone_number",
    ]

    ordering = ("username",)

    fieldsets = BaseUserAdmin.fieldsets + (
        (
            "Carpool Info",
            {
                "fields": (
                    "role",
                    "phone_number",
                    "gender",
                    "pronouns",
                )
            },
        ),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        (
            "Carpool Info",
            {
                "fields": (
                    "role",
                    "phone_number",
                    "gender",
                    "pronouns",
                )
            },
        ),
    )
