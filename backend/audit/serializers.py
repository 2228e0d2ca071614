from __future__ import annotations

from rest_framework import serializers

from .models import AuditLog


class AuditLogSerializer(serializers.ModelSerializer):
	actor_username = serializers.CharField(source="actor.username", read_only=True, default="")

	class Meta:
		model = AuditLog
		fields = [
			"id",
			"timestamp",
			"action",
			"actor",
			"actor_username",
			"actor_role",
			"target_type",
			"target_id",
			"details",
		]
		read_only_fields = fields
