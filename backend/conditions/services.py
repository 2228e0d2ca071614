from __future__ import annotations

from datetime import timedelta
from typing import Iterable, Optional

from django.db import transaction
from django.utils import timezone

from audit.services import Actions, record_action
from core.exceptions import NotFound
from core.validation import coerce_id, validate_payload
from members.models import Member
from members.roles import ADMIN_ROLES, SUPERADMIN_ROLES, Actor, require_role

from .models import Condition, MemberCondition
from .serializers import ConditionCreateInputSerializer, ConditionUpdateInputSerializer, ValidateConditionInputSerializer


def is_condition_satisfied(record: Optional[MemberCondition], now=None) -> bool:
    if record is None:
        return False
    return record.is_satisfied(now or timezone.now())


def satisfied_condition_ids(member_id, condition_ids: Iterable[int], *, now=None) -> set[int]:
    now = now or timezone.now()
    records = MemberCondition.objects.filter(member_id=member_id, condition_id__in=list(condition_ids))
    return {record.condition_id for record in records if record.is_satisfied(now)}


def create_condition(actor: Actor, payload) -> Condition:
    require_role(actor.role, SUPERADMIN_ROLES)
    data = validate_payload(ConditionCreateInputSerializer, payload)

    now = timezone.now()
    with transaction.atomic():
        condition = Condition.objects.create(
            name=data["name"].strip(),
            description=(data.get("description") or "").strip(),
            type=data["type"],
            validity_duration=data.get("validity_duration"),
            is_active=data.get("is_active", True),
        )
        record_action(
            action=Actions.CONDITION_CREATE,
            actor=actor,
            target_type="condition",
            target_id=condition.pk,
            details={
                "name": condition.name,
                "type": condition.type,
                "validity_duration": condition.validity_duration,
                "is_active": condition.is_active,
            },
            timestamp=now,
        )
    return condition


def update_condition(actor: Actor, condition_id, payload) -> Condition:
    require_role(actor.role, SUPERADMIN_ROLES)
    condition_id = coerce_id(condition_id, "condition_id")
    data = validate_payload(ConditionUpdateInputSerializer, payload)

    now = timezone.now()
    with transaction.atomic():
        condition = Condition.objects.select_for_update().filter(pk=condition_id).first()
        if condition is None:
            raise NotFound("Condition introuvable.", reason="condition_not_found")

        changes = {}
        for field, value in data.items():
            if isinstance(value, str):
                value = value.strip()
            if getattr(condition, field) != value:
                changes[field] = {"from": getattr(condition, field), "to": value}
                setattr(condition, field, value)

        if changes:
            condition.save(update_fields=[*changes.keys(), "updated_at"])
            record_action(
                action=Actions.CONDITION_UPDATE,
                actor=actor,
                target_type="condition",
                target_id=condition.pk,
                details={"changes": changes},
                timestamp=now,
            )
    return condition


def validate_condition(actor: Actor, payload) -> MemberCondition:
    """Record (or withdraw) a condition validation for a member.

    The expiry is recomputed from the condition's current validity duration
    on every call; an invalidation never carries an expiry.
    """

    require_role(actor.role, ADMIN_ROLES)
    data = validate_payload(ValidateConditionInputSerializer, payload)

    now = timezone.now()
    with transaction.atomic():
        member = Member.objects.filter(pk=data["member_id"]).first()
        if member is None:
            raise NotFound("Adhérent introuvable.", reason="member_not_found", field="member_id")
        condition = Condition.objects.filter(pk=data["condition_id"]).first()
        if condition is None:
            raise NotFound("Condition introuvable.", reason="condition_not_found", field="condition_id")

        validated = data["validated"]
        expires_at = None
        if validated and condition.validity_duration:
            expires_at = now + timedelta(days=int(condition.validity_duration))

        record, _ = MemberCondition.objects.update_or_create(
            id=MemberCondition.composite_id(member.pk, condition.pk),
            defaults={
                "member": member,
                "condition": condition,
                "validated": validated,
                "validated_by": actor.user,
                "validated_at": now,
                "expires_at": expires_at,
                "note": (data.get("note") or "").strip(),
                "evidence": (data.get("evidence") or "").strip(),
            },
        )
        record_action(
            action=Actions.CONDITION_VALIDATE if validated else Actions.CONDITION_INVALIDATE,
            actor=actor,
            target_type="member_condition",
            target_id=record.pk,
            details={
                "member_id": member.pk,
                "condition_id": condition.pk,
                "validated": validated,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
            timestamp=now,
        )
    return record
