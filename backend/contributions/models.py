from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q


class ContributionPolicy(models.Model):
    class Periodicity(models.TextChoices):
        MONTHLY = "monthly", "Mensuelle"
        QUARTERLY = "quarterly", "Trimestrielle"
        YEARLY = "yearly", "Annuelle"

    name = models.CharField(max_length=160)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="EUR")
    periodicity = models.CharField(max_length=20, choices=Periodicity.choices)
    grace_period_days = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=False)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="contribution_policies_created",
    )
    created_at = models.DateTimeField()

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "contribution policies"
        constraints = [
            models.UniqueConstraint(
                fields=["is_active"],
                condition=Q(is_active=True),
                name="uniq_active_contribution_policy",
            ),
        ]

    def __str__(self) -> str:
        flag = " (active)" if self.is_active else ""
        return f"{self.name} {self.amount} {self.currency}/{self.periodicity}{flag}"


class PaymentRecord(models.Model):
    member = models.ForeignKey("members.Member", on_delete=models.PROTECT, related_name="payments")
    policy = models.ForeignKey(ContributionPolicy, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3)
    period_start = models.DateField()
    period_end = models.DateField()
    reference = models.CharField(max_length=120, blank=True, default="")
    note = models.TextField(blank=True, default="")
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments_recorded",
    )
    recorded_at = models.DateTimeField()

    class Meta:
        ordering = ["-recorded_at", "-id"]
        indexes = [
            models.Index(fields=["member", "period_end"], name="payment_member_end_idx"),
        ]

    def __str__(self) -> str:
        return f"payment:{self.member_id}:{self.period_start}..{self.period_end}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Payment records are append-only.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Payment records are append-only.")
