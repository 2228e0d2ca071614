from django.contrib import admin

from .models import Member, Section


@admin.register(Section)
class SectionAdmin(admin.ModelAdmin):
    list_display = ("name", "city", "region", "member_count", "updated_at")
    search_fields = ("name", "city", "region")
    readonly_fields = ("member_count", "created_at", "updated_at")


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ("email", "first_name", "last_name", "section", "role", "status", "contribution_up_to_date")
    list_filter = ("role", "status", "contribution_up_to_date", "registration_source")
    search_fields = ("email", "first_name", "last_name", "phone")
    list_select_related = ("section",)
    # Role, section and counters only change through the service layer.
    readonly_fields = ("user", "role", "section", "contribution_up_to_date", "created_at", "updated_at")
