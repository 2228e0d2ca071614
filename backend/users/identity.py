"""Adapter over the identity provider.

Accounts live in `users.User`; the rest of the code base only goes through
these functions so the provider can be swapped without touching the
membership rules.
"""

from __future__ import annotations

import secrets
import string

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from core.exceptions import AlreadyExists, Internal


# Every temporary password holds at least one character of each class.
_PASSWORD_CLASSES = (string.ascii_lowercase, string.ascii_uppercase, string.digits, "@#$%*!?")
_MIN_PASSWORD_LENGTH = 12


def generate_temporary_password(length: int = 14) -> str:
    """One-time password handed to an admin-created member, who changes it at first login."""
    rng = secrets.SystemRandom()
    alphabet = "".join(_PASSWORD_CLASSES)
    chars = [rng.choice(group) for group in _PASSWORD_CLASSES]
    chars += [rng.choice(alphabet) for _ in range(max(length, _MIN_PASSWORD_LENGTH) - len(chars))]
    rng.shuffle(chars)
    return "".join(chars)


def email_in_use(email: str) -> bool:
    return get_user_model().objects.filter(email__iexact=(email or "").strip()).exists()


def create_account(*, email: str, password: str, first_name: str = "", last_name: str = ""):
    """Create an account and commit it immediately, outside any caller transaction."""
    user_model = get_user_model()
    normalized = (email or "").strip().lower()
    if email_in_use(normalized):
        raise AlreadyExists("Un compte existe déjà pour cet e-mail.", reason="email_in_use", field="email")

    try:
        with transaction.atomic():
            return user_model.objects.create_user(
                username=normalized,
                email=normalized,
                password=password,
                first_name=first_name,
                last_name=last_name,
            )
    except IntegrityError as exc:
        raise AlreadyExists("Un compte existe déjà pour cet e-mail.", reason="email_in_use", field="email") from exc


def delete_account(user_id) -> None:
    deleted, _ = get_user_model().objects.filter(pk=user_id).delete()
    if not deleted:
        raise Internal("Compte d'identité introuvable pour suppression.", reason="account_missing")


def set_role_claim(user_id, role: str) -> None:
    updated = get_user_model().objects.filter(pk=user_id).update(role=role)
    if not updated:
        raise Internal("Compte d'identité introuvable.", reason="account_missing")
