from __future__ import annotations

from typing import Any, Optional

from django.utils import timezone

from .models import AuditLog


class Actions:
	MEMBER_PROFILE_CREATE = "member.profile_create"
	MEMBER_CREATE = "member.create"
	MEMBER_UPDATE = "member.update"
	MEMBER_ROLE_CHANGE = "member.role_change"
	AUDIT_ACCESS = "audit.access"
	SECTION_CREATE = "section.create"
	SECTION_UPDATE = "section.update"
	SECTION_DELETE = "section.delete"
	POLICY_CREATE = "policy.create"
	POLICY_UPDATE = "policy.update"
	PAYMENT_RECORD = "payment.record"
	CONDITION_CREATE = "condition.create"
	CONDITION_UPDATE = "condition.update"
	CONDITION_VALIDATE = "condition.validate"
	CONDITION_INVALIDATE = "condition.invalidate"


def record_action(
	*,
	action: str,
	actor=None,
	actor_role: str = "",
	target_type: str = "",
	target_id: str | int = "",
	details: Optional[dict[str, Any]] = None,
	timestamp=None,
) -> AuditLog:
	"""Append one audit row.

	Call it inside the transaction of the change being recorded so the entry
	commits (or rolls back) with it. `actor` may be an `Actor` or a user.
	"""

	user = getattr(actor, "user", actor)
	if not actor_role:
		actor_role = getattr(actor, "role", "") or ""
	return AuditLog.objects.create(
		action=action,
		actor=user if getattr(user, "pk", None) is not None else None,
		actor_role=actor_role,
		target_type=target_type or "",
		target_id=str(target_id) if target_id is not None else "",
		details=details or {},
		timestamp=timestamp or timezone.now(),
	)
