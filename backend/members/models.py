from __future__ import annotations

from django.conf import settings
from django.db import models


class Section(models.Model):
    name = models.CharField(max_length=160)
    city = models.CharField(max_length=120)
    region = models.CharField(max_length=120, blank=True, default="")
    # Cached count of members referencing this section; only adjusted inside
    # the transaction that moves a member in or out.
    member_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return f"{self.name} ({self.city})"


class Member(models.Model):
    class Role(models.TextChoices):
        MEMBER = "member", "Adhérent"
        ADMIN = "admin", "Administrateur"
        SUPERADMIN = "superadmin", "Super-administrateur"

    class Status(models.TextChoices):
        PENDING = "pending", "En attente"
        ACTIVE = "active", "Actif"
        SUSPENDED = "suspended", "Suspendu"

    class RegistrationSource(models.TextChoices):
        SELF_REGISTRATION = "self_registration", "Inscription autonome"
        ADMIN_CREATED = "admin_created", "Créé par un administrateur"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="member",
    )
    email = models.EmailField()
    first_name = models.CharField(max_length=120, blank=True, default="")
    last_name = models.CharField(max_length=120, blank=True, default="")
    phone = models.CharField(max_length=40, blank=True, default="")
    section = models.ForeignKey(
        Section,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="members",
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.MEMBER)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    registration_source = models.CharField(
        max_length=30,
        choices=RegistrationSource.choices,
        default=RegistrationSource.SELF_REGISTRATION,
    )
    email_verified = models.BooleanField(default=False)
    password_change_required = models.BooleanField(default=False)
    contribution_up_to_date = models.BooleanField(default=False)
    joined_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["section", "status"], name="member_section_status_idx"),
        ]

    def __str__(self) -> str:
        full_name = f"{self.first_name} {self.last_name}".strip()
        return f"{full_name or self.email} ({self.get_role_display()})"

    @property
    def uid(self) -> str:
        return str(self.pk)
