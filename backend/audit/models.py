from __future__ import annotations

from django.conf import settings
from django.db import models


class AuditLog(models.Model):
	"""Append-only trail of state-changing actions.

	Rows are never updated; keep payloads small and put specifics in `details`.
	"""

	action = models.CharField(max_length=80)
	actor = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name="audit_logs",
	)
	actor_role = models.CharField(max_length=20, blank=True, default="")
	target_type = models.CharField(max_length=80, blank=True, default="")
	target_id = models.CharField(max_length=80, blank=True, default="")
	details = models.JSONField(default=dict, blank=True)
	timestamp = models.DateTimeField()

	class Meta:
		ordering = ["-timestamp", "-id"]
		indexes = [
			models.Index(fields=["timestamp"], name="auditlog_ts_idx"),
			models.Index(fields=["action", "timestamp"], name="auditlog_action_ts_idx"),
			models.Index(fields=["target_type", "target_id", "timestamp"], name="auditlog_target_ts_idx"),
			models.Index(fields=["actor", "timestamp"], name="auditlog_actor_ts_idx"),
		]

	def __str__(self) -> str:
		target = f"{self.target_type}:{self.target_id}" if self.target_type or self.target_id else "-"
		return f"{self.timestamp:%Y-%m-%d %H:%M:%S} {self.action} {target}"

	def save(self, *args, **kwargs):
		if self.pk is not None:
			raise ValueError("Audit log entries are immutable.")
		return super().save(*args, **kwargs)
