from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone

from audit.services import Actions, record_action
from core.exceptions import FailedPrecondition, NotFound
from core.validation import validate_payload
from members.models import Member
from members.roles import ADMIN_ROLES, SUPERADMIN_ROLES, Actor, require_role

from .models import ContributionPolicy, PaymentRecord
from .serializers import RecordPaymentInputSerializer, SetContributionPolicyInputSerializer


def get_active_policy() -> Optional[ContributionPolicy]:
    return ContributionPolicy.objects.filter(is_active=True).order_by("-created_at", "-id").first()


def _is_current(policy: Optional[ContributionPolicy], latest_period_end: Optional[date], today: date) -> bool:
    if policy is None or latest_period_end is None:
        return False
    return today <= latest_period_end + timedelta(days=int(policy.grace_period_days))


def is_contribution_up_to_date(member_id, *, now=None) -> bool:
    """True iff an active policy exists and the member's latest covered period,
    extended by the grace period, has not ended yet (the last day counts)."""

    policy = get_active_policy()
    if policy is None:
        return False
    latest = PaymentRecord.objects.filter(member_id=member_id).aggregate(latest=Max("period_end"))["latest"]
    return _is_current(policy, latest, timezone.localdate(now or timezone.now()))


def refresh_contribution_flag(member_id, *, now=None) -> bool:
    up_to_date = is_contribution_up_to_date(member_id, now=now)
    Member.objects.filter(pk=member_id).update(contribution_up_to_date=up_to_date)
    return up_to_date


@dataclass
class RefreshSummary:
    checked: int = 0
    changed: int = 0


def refresh_all_contribution_flags(*, now=None, dry_run: bool = False) -> RefreshSummary:
    policy = get_active_policy()
    today = timezone.localdate(now or timezone.now())
    summary = RefreshSummary()

    members = Member.objects.annotate(latest_period_end=Max("payments__period_end")).only(
        "pk", "contribution_up_to_date"
    )
    for member in members.iterator():
        summary.checked += 1
        up_to_date = _is_current(policy, member.latest_period_end, today)
        if up_to_date == member.contribution_up_to_date:
            continue
        summary.changed += 1
        if not dry_run:
            Member.objects.filter(pk=member.pk).update(contribution_up_to_date=up_to_date)
    return summary


def set_active_policy(actor: Actor, payload) -> ContributionPolicy:
    """Create a policy and make it the only active one, atomically."""

    require_role(actor.role, SUPERADMIN_ROLES)
    data = validate_payload(SetContributionPolicyInputSerializer, payload)

    now = timezone.now()
    try:
        with transaction.atomic():
            previous_ids = list(
                ContributionPolicy.objects.select_for_update()
                .filter(is_active=True)
                .order_by("pk")
                .values_list("pk", flat=True)
            )
            if previous_ids:
                ContributionPolicy.objects.filter(pk__in=previous_ids).update(is_active=False)

            policy = ContributionPolicy.objects.create(
                name=data["name"].strip(),
                amount=data["amount"],
                currency=data["currency"],
                periodicity=data["periodicity"],
                grace_period_days=data["grace_period_days"],
                is_active=True,
                created_by=actor.user,
                created_at=now,
            )
            record_action(
                action=Actions.POLICY_CREATE,
                actor=actor,
                target_type="contribution_policy",
                target_id=policy.pk,
                details={
                    "name": policy.name,
                    "amount": str(policy.amount),
                    "currency": policy.currency,
                    "periodicity": policy.periodicity,
                    "grace_period_days": policy.grace_period_days,
                },
                timestamp=now,
            )
            if previous_ids:
                record_action(
                    action=Actions.POLICY_UPDATE,
                    actor=actor,
                    target_type="contribution_policy",
                    target_id=previous_ids[0],
                    details={"deactivated_ids": previous_ids, "replaced_by": policy.pk, "is_active": False},
                    timestamp=now,
                )
    except IntegrityError as exc:
        # Partial unique index on is_active: another activation committed first.
        raise FailedPrecondition(
            "Une autre politique vient d'être activée, réessayez.",
            reason="concurrent_policy_activation",
        ) from exc
    return policy


def record_payment(actor: Actor, payload) -> PaymentRecord:
    """Append a payment against the active policy, then refresh the member's cached flag.

    The flag refresh is a second write after the payment transaction commits;
    concurrent recordings for one member may leave it briefly stale.
    """

    require_role(actor.role, ADMIN_ROLES)
    data = validate_payload(RecordPaymentInputSerializer, payload)

    now = timezone.now()
    with transaction.atomic():
        policy = get_active_policy()
        if policy is None:
            raise FailedPrecondition("Aucune politique de cotisation active.", reason="no_active_policy")

        member = Member.objects.filter(pk=data["member_id"]).first()
        if member is None:
            raise NotFound("Adhérent introuvable.", reason="member_not_found", field="member_id")

        payment = PaymentRecord.objects.create(
            member=member,
            policy=policy,
            amount=data["amount"],
            currency=data["currency"],
            period_start=data["period_start"],
            period_end=data["period_end"],
            reference=(data.get("reference") or "").strip(),
            note=(data.get("note") or "").strip(),
            recorded_by=actor.user,
            recorded_at=now,
        )
        record_action(
            action=Actions.PAYMENT_RECORD,
            actor=actor,
            target_type="member",
            target_id=member.pk,
            details={
                "payment_id": payment.pk,
                "policy_id": policy.pk,
                "amount": str(payment.amount),
                "currency": payment.currency,
                "period_start": payment.period_start.isoformat(),
                "period_end": payment.period_end.isoformat(),
            },
            timestamp=now,
        )

    refresh_contribution_flag(member.pk, now=now)
    return payment
