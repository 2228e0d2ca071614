from django.contrib import admin

from .models import ContributionPolicy, PaymentRecord


@admin.register(ContributionPolicy)
class ContributionPolicyAdmin(admin.ModelAdmin):
    list_display = ("name", "amount", "currency", "periodicity", "grace_period_days", "is_active", "created_at")
    list_filter = ("is_active", "periodicity")

    def has_add_permission(self, request):
        # Activation must go through set_active_policy to keep a single active row.
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    list_display = ("member", "policy", "amount", "currency", "period_start", "period_end", "recorded_at")
    list_filter = ("policy", "currency")
    search_fields = ("member__email", "reference")
    list_select_related = ("member", "policy")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
