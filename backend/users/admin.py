from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class IdentityUserAdmin(UserAdmin):
    list_display = ("username", "email", "email_verified", "role", "is_staff")
    list_filter = ("role", "email_verified", "is_staff", "is_active")
    fieldsets = UserAdmin.fieldsets + (
        ("Identité", {"fields": ("role", "email_verified")}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ("Identité", {"fields": ("email", "role")}),
    )
