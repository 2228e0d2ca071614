"""Voter eligibility: a read-only composition of independent checks.

Each check yields one reason; a member is eligible only when every reason is
met. Without an election the member's general standing is evaluated (status,
contribution and every active condition); with an election its seniority,
section allow-list and voter conditions apply instead of the active set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from django.utils import timezone

from conditions.models import Condition
from conditions.services import satisfied_condition_ids
from contributions.services import is_contribution_up_to_date
from core.exceptions import NotFound
from core.validation import coerce_id
from members.models import Member
from members.roles import Actor, require_self_or_admin

from .models import Election


REASON_MEMBER_STATUS = "member_status"
REASON_CONTRIBUTION = "contribution"
REASON_SENIORITY = "seniority"
REASON_SECTION = "section"


@dataclass(frozen=True)
class EligibilityReason:
    condition: str
    met: bool
    detail: str = ""

    def as_dict(self) -> dict:
        return {"condition": self.condition, "met": self.met, "detail": self.detail}


@dataclass
class EligibilityResult:
    member_id: int
    election_id: Optional[int] = None
    reasons: list[EligibilityReason] = field(default_factory=list)

    @property
    def eligible(self) -> bool:
        return all(reason.met for reason in self.reasons)

    def as_dict(self) -> dict:
        return {
            "member_id": self.member_id,
            "election_id": self.election_id,
            "eligible": self.eligible,
            "reasons": [reason.as_dict() for reason in self.reasons],
        }


def _status_reason(member: Member) -> EligibilityReason:
    return EligibilityReason(
        REASON_MEMBER_STATUS,
        member.status == Member.Status.ACTIVE,
        f"Statut : {member.status}",
    )


def _contribution_reason(member: Member, now) -> EligibilityReason:
    up_to_date = is_contribution_up_to_date(member.pk, now=now)
    return EligibilityReason(
        REASON_CONTRIBUTION,
        up_to_date,
        "Cotisation à jour" if up_to_date else "Cotisation non à jour",
    )


def _seniority_reason(member: Member, min_seniority: int, now) -> EligibilityReason:
    if min_seniority <= 0:
        return EligibilityReason(REASON_SENIORITY, True, "Aucune ancienneté requise")
    if member.joined_at is None:
        return EligibilityReason(REASON_SENIORITY, False, "Date d'adhésion inconnue")
    age_days = (now - member.joined_at).days
    return EligibilityReason(
        REASON_SENIORITY,
        age_days >= min_seniority,
        f"Ancienneté : {age_days} j / {min_seniority} j requis",
    )


def _section_reason(member: Member, allowed_section_ids: list[int]) -> EligibilityReason:
    if not allowed_section_ids:
        return EligibilityReason(REASON_SECTION, True, "Toutes les sections sont autorisées")
    met = member.section_id is not None and member.section_id in allowed_section_ids
    return EligibilityReason(
        REASON_SECTION,
        met,
        "Section autorisée" if met else "Section non autorisée pour ce scrutin",
    )


def evaluate_member(member: Member, election: Optional[Election] = None, *, now=None) -> EligibilityResult:
    now = now or timezone.now()
    result = EligibilityResult(member_id=member.pk, election_id=election.pk if election is not None else None)
    result.reasons.append(_status_reason(member))
    result.reasons.append(_contribution_reason(member, now))

    if election is not None:
        result.reasons.append(_seniority_reason(member, int(election.min_seniority or 0), now))
        allowed_section_ids = list(election.allowed_sections.values_list("pk", flat=True))
        result.reasons.append(_section_reason(member, allowed_section_ids))
        conditions = election.voter_conditions.order_by("pk")
    else:
        conditions = Condition.objects.filter(is_active=True).order_by("pk")

    condition_names = dict(conditions.values_list("pk", "name"))
    satisfied = satisfied_condition_ids(member.pk, condition_names.keys(), now=now)
    for condition_id, name in condition_names.items():
        met = condition_id in satisfied
        result.reasons.append(
            EligibilityReason(f"condition_{condition_id}", met, f"{name} : {'validée' if met else 'non validée ou expirée'}")
        )
    return result


def compute_eligibility(actor: Actor, member_id, election_id=None, *, now=None) -> EligibilityResult:
    """Eligibility verdict for a member, optionally scoped to one election.

    Callable by the member themselves or an admin. Never writes anything.
    """

    member_id = coerce_id(member_id, "member_id")
    require_self_or_admin(actor, member_id)

    member = Member.objects.filter(pk=member_id).first()
    if member is None:
        raise NotFound("Adhérent introuvable.", reason="member_not_found", field="member_id")

    election = None
    if election_id not in (None, ""):
        election = Election.objects.filter(pk=coerce_id(election_id, "election_id")).first()
        if election is None:
            raise NotFound("Élection introuvable.", reason="election_not_found", field="election_id")

    return evaluate_member(member, election, now=now)
