from __future__ import annotations

from django.conf import settings
from django.db import models


class Condition(models.Model):
    class Type(models.TextChoices):
        CHECKBOX = "checkbox", "Case à cocher"
        DATE = "date", "Date"
        AMOUNT = "amount", "Montant"
        FILE = "file", "Fichier"
        TEXT = "text", "Texte"

    name = models.CharField(max_length=160)
    description = models.TextField(blank=True, default="")
    type = models.CharField(max_length=20, choices=Type.choices)
    # Days a validation stays valid; NULL means it never expires.
    validity_duration = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name


class MemberCondition(models.Model):
    id = models.CharField(max_length=64, primary_key=True, editable=False)
    member = models.ForeignKey("members.Member", on_delete=models.CASCADE, related_name="condition_records")
    condition = models.ForeignKey(Condition, on_delete=models.CASCADE, related_name="member_records")
    validated = models.BooleanField(default=False)
    validated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="condition_validations",
    )
    validated_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    note = models.TextField(blank=True, default="")
    evidence = models.TextField(blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["member_id", "condition_id"]
        constraints = [
            models.UniqueConstraint(fields=["member", "condition"], name="uniq_member_condition"),
        ]

    def __str__(self) -> str:
        return self.id

    @staticmethod
    def composite_id(member_id, condition_id) -> str:
        return f"{member_id}_{condition_id}"

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = self.composite_id(self.member_id, self.condition_id)
        return super().save(*args, **kwargs)

    def is_satisfied(self, now) -> bool:
        if not self.validated:
            return False
        return self.expires_at is None or self.expires_at >= now
