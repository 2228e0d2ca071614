from django.contrib import admin

from .models import Condition, MemberCondition


@admin.register(Condition)
class ConditionAdmin(admin.ModelAdmin):
    list_display = ("name", "type", "validity_duration", "is_active", "updated_at")
    list_filter = ("type", "is_active")
    search_fields = ("name", "description")


@admin.register(MemberCondition)
class MemberConditionAdmin(admin.ModelAdmin):
    list_display = ("id", "member", "condition", "validated", "validated_at", "expires_at")
    list_filter = ("validated", "condition")
    search_fields = ("member__email", "condition__name")
    list_select_related = ("member", "condition")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
