from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
	list_display = ("timestamp", "action", "actor", "actor_role", "target_type", "target_id")
	list_filter = ("action", "target_type", "actor_role")
	search_fields = ("actor__username", "target_type", "target_id")
	readonly_fields = (
		"timestamp",
		"action",
		"actor",
		"actor_role",
		"target_type",
		"target_id",
		"details",
	)

	def has_add_permission(self, request):
		return False

	def has_change_permission(self, request, obj=None):
		return False

	def has_delete_permission(self, request, obj=None):
		return False
