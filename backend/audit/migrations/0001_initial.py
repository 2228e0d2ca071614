import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name="AuditLog",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("action", models.CharField(max_length=80)),
				("actor_role", models.CharField(blank=True, default="", max_length=20)),
				("target_type", models.CharField(blank=True, default="", max_length=80)),
				("target_id", models.CharField(blank=True, default="", max_length=80)),
				("details", models.JSONField(blank=True, default=dict)),
				("timestamp", models.DateTimeField()),
				(
					"actor",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="audit_logs",
						to=settings.AUTH_USER_MODEL,
					),
				),
			],
			options={
				"ordering": ["-timestamp", "-id"],
				"indexes": [
					models.Index(fields=["timestamp"], name="auditlog_ts_idx"),
					models.Index(fields=["action", "timestamp"], name="auditlog_action_ts_idx"),
					models.Index(fields=["target_type", "target_id", "timestamp"], name="auditlog_target_ts_idx"),
					models.Index(fields=["actor", "timestamp"], name="auditlog_actor_ts_idx"),
				],
			},
		),
	]
