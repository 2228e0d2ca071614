from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Identity-provider account.

    `role` is the claim carried by the identity provider (and embedded into
    issued tokens). The stored `members.Member.role` is authoritative once a
    member profile exists; the claim only matters before that.
    """

    ROLE_SUPERADMIN = "superadmin"
    ROLE_ADMIN = "admin"
    ROLE_MEMBER = "member"

    ROLES = (
        (ROLE_SUPERADMIN, "Super-administrateur"),
        (ROLE_ADMIN, "Administrateur"),
        (ROLE_MEMBER, "Adhérent"),
    )

    role = models.CharField(max_length=20, choices=ROLES, blank=True, default="")
    email = models.EmailField(unique=True, blank=True, null=True, verbose_name="Adresse e-mail")
    email_verified = models.BooleanField(default=False)

    REQUIRED_FIELDS = ["email"]

    def __str__(self) -> str:
        return f"{self.username} ({self.get_role_display() or '-'})"
