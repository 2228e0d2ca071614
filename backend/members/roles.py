from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from core.exceptions import PermissionDenied, Unauthenticated

from .models import Member


VALID_ROLES = frozenset(Member.Role.values)
ADMIN_ROLES = frozenset({Member.Role.ADMIN, Member.Role.SUPERADMIN})
SUPERADMIN_ROLES = frozenset({Member.Role.SUPERADMIN})


def resolve_role(principal_id, *, token_role: str | None = None) -> Optional[str]:
    """Map a principal to its role.

    The stored member role wins once a member record exists. Before that, the
    identity provider's claim is used when it names a known role.
    """

    stored = Member.objects.filter(pk=principal_id).values_list("role", flat=True).first()
    if stored is not None:
        return stored
    if token_role in VALID_ROLES:
        return token_role
    return None


def require_role(role: Optional[str], allowed: Iterable[str]) -> str:
    if role is None or role not in set(allowed):
        raise PermissionDenied("Rôle insuffisant pour cette opération.", reason="role_required")
    return role


def _token_claim(auth, name: str):
    getter = getattr(auth, "get", None)
    if getter is None:
        return None
    try:
        return getter(name)
    except (KeyError, TypeError):
        return None


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation, with its resolved role."""

    user: object
    role: Optional[str]

    @property
    def id(self):
        return self.user.pk

    @property
    def email(self) -> str:
        return (getattr(self.user, "email", "") or "").strip()

    @property
    def email_verified(self) -> bool:
        return bool(getattr(self.user, "email_verified", False))

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def is_self(self, member_id) -> bool:
        return str(self.id) == str(member_id)

    @classmethod
    def for_user(cls, user, *, token_role: str | None = None) -> "Actor":
        if user is None or not getattr(user, "is_authenticated", False):
            raise Unauthenticated()
        if token_role is None:
            token_role = getattr(user, "role", None) or None
        return cls(user=user, role=resolve_role(user.pk, token_role=token_role))

    @classmethod
    def from_request(cls, request) -> "Actor":
        user = getattr(request, "user", None)
        return cls.for_user(user, token_role=_token_claim(getattr(request, "auth", None), "role"))


def require_self_or_admin(actor: Actor, member_id) -> None:
    if actor.is_self(member_id):
        return
    require_role(actor.role, ADMIN_ROLES)
