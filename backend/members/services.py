from __future__ import annotations

import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework import serializers
from rest_framework.exceptions import APIException

from audit.services import Actions, record_action
from core.exceptions import AlreadyExists, FailedPrecondition, Internal, InvalidArgument, NotFound, PermissionDenied
from core.validation import coerce_id, validate_payload
from users import identity

from .models import Member, Section
from .roles import ADMIN_ROLES, SUPERADMIN_ROLES, Actor, require_role
from .serializers import (
    ADMIN_MUTABLE_FIELDS,
    SELF_MUTABLE_FIELDS,
    ChangeRoleInputSerializer,
    MemberAdminUpdateInputSerializer,
    MemberCreateInputSerializer,
    MemberSelfUpdateInputSerializer,
    SectionCreateInputSerializer,
    SectionUpdateInputSerializer,
)


logger = logging.getLogger(__name__)

ADMIN_ONLY_MEMBER_FIELDS = frozenset({"section_id", "status", "role"})


# --- Profile bootstrap ----------------------------------------------------


def ensure_member_profile(actor: Actor) -> tuple[Member, bool]:
    """Create the caller's member record on first login; otherwise refresh email data.

    Returns `(member, created)`.
    """

    if not actor.email:
        raise FailedPrecondition("Aucun e-mail associé au compte.", reason="email_missing")

    now = timezone.now()
    existing = Member.objects.filter(pk=actor.id).first()
    if existing is None:
        try:
            with transaction.atomic():
                member = Member.objects.create(
                    user=actor.user,
                    email=actor.email,
                    first_name=getattr(actor.user, "first_name", "") or "",
                    last_name=getattr(actor.user, "last_name", "") or "",
                    role=Member.Role.MEMBER,
                    status=Member.Status.PENDING,
                    registration_source=Member.RegistrationSource.SELF_REGISTRATION,
                    email_verified=actor.email_verified,
                    joined_at=now,
                )
                record_action(
                    action=Actions.MEMBER_PROFILE_CREATE,
                    actor=actor,
                    actor_role=member.role,
                    target_type="member",
                    target_id=member.pk,
                    details={"email": member.email, "source": member.registration_source},
                    timestamp=now,
                )
            return member, True
        except IntegrityError:
            # A concurrent first login created it; fall through to the refresh.
            existing = Member.objects.get(pk=actor.id)

    with transaction.atomic():
        member = Member.objects.select_for_update().get(pk=existing.pk)
        member.email = actor.email
        member.email_verified = actor.email_verified
        member.save(update_fields=["email", "email_verified", "updated_at"])
    return member, False


def _bootstrap_config() -> tuple[bool, set[str]]:
    config = getattr(settings, "MEMBERSHIP_BOOTSTRAP", {}) or {}
    locked = bool(config.get("LOCKED", False))
    allowed = {str(email).strip().lower() for email in config.get("SUPERADMIN_EMAILS", ()) if str(email).strip()}
    return locked, allowed


def bootstrap_role(actor: Actor) -> Member:
    """Break-glass escalation of an allow-listed principal to superadmin."""

    if not actor.email:
        raise FailedPrecondition("Aucun e-mail associé au compte.", reason="email_missing")
    locked, allowed_emails = _bootstrap_config()
    if locked:
        raise PermissionDenied("L'amorçage est verrouillé.", reason="bootstrap_locked")
    if actor.email.lower() not in allowed_emails:
        raise PermissionDenied("E-mail non autorisé pour l'amorçage.", reason="email_not_allowed")

    now = timezone.now()
    with transaction.atomic():
        member = Member.objects.select_for_update().filter(pk=actor.id).first()
        if member is None:
            previous_role = Member.Role.MEMBER
            member = Member.objects.create(
                user=actor.user,
                email=actor.email,
                first_name=getattr(actor.user, "first_name", "") or "",
                last_name=getattr(actor.user, "last_name", "") or "",
                role=Member.Role.SUPERADMIN,
                status=Member.Status.ACTIVE,
                registration_source=Member.RegistrationSource.SELF_REGISTRATION,
                email_verified=actor.email_verified,
                joined_at=now,
            )
        else:
            previous_role = member.role
            member.email = actor.email
            member.email_verified = actor.email_verified
            member.role = Member.Role.SUPERADMIN
            member.status = Member.Status.ACTIVE
            member.save(update_fields=["email", "email_verified", "role", "status", "updated_at"])

        record_action(
            action=Actions.MEMBER_ROLE_CHANGE,
            actor=actor,
            actor_role=Member.Role.SUPERADMIN,
            target_type="member",
            target_id=member.pk,
            details={"previous_role": previous_role, "new_role": Member.Role.SUPERADMIN, "reason": "bootstrap"},
            timestamp=now,
        )
        record_action(
            action=Actions.AUDIT_ACCESS,
            actor=actor,
            actor_role=Member.Role.SUPERADMIN,
            target_type="audit",
            target_id="bootstrap",
            details={"scope": "bootstrap", "reason": "Initial superadmin provisioning"},
            timestamp=now,
        )

    identity.set_role_claim(actor.id, Member.Role.SUPERADMIN)
    logger.info("bootstrap_role success", extra={"uid": actor.id, "email": actor.email})
    return member


# --- Roles ----------------------------------------------------------------


def _requested_member_id(payload):
    """The target id as the input serializer will coerce it, or None if it cannot be coerced."""
    raw = payload.get("member_id") if isinstance(payload, dict) else None
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return ChangeRoleInputSerializer().fields["member_id"].to_internal_value(raw)
    except serializers.ValidationError:
        return None


def change_role(actor: Actor, payload) -> Member:
    require_role(actor.role, SUPERADMIN_ROLES)

    target_id = _requested_member_id(payload)
    if target_id is not None and actor.is_self(target_id):
        raise FailedPrecondition("Impossible de modifier votre propre rôle.", reason="self_role_change")

    data = validate_payload(ChangeRoleInputSerializer, payload)
    new_role = data["new_role"]

    now = timezone.now()
    with transaction.atomic():
        member = Member.objects.select_for_update().filter(pk=data["member_id"]).first()
        if member is None:
            raise NotFound("Adhérent introuvable.", reason="member_not_found")
        previous_role = member.role
        member.role = new_role
        member.save(update_fields=["role", "updated_at"])
        record_action(
            action=Actions.MEMBER_ROLE_CHANGE,
            actor=actor,
            target_type="member",
            target_id=member.pk,
            details={"previous_role": previous_role, "new_role": new_role},
            timestamp=now,
        )

    identity.set_role_claim(member.pk, new_role)
    return member


# --- Sections -------------------------------------------------------------


def create_section(actor: Actor, payload) -> Section:
    require_role(actor.role, ADMIN_ROLES)
    data = validate_payload(SectionCreateInputSerializer, payload)

    now = timezone.now()
    with transaction.atomic():
        section = Section.objects.create(
            name=data["name"].strip(),
            city=data["city"].strip(),
            region=(data.get("region") or "").strip(),
        )
        record_action(
            action=Actions.SECTION_CREATE,
            actor=actor,
            target_type="section",
            target_id=section.pk,
            details={"name": section.name, "city": section.city, "region": section.region},
            timestamp=now,
        )
    return section


def update_section(actor: Actor, section_id, payload) -> Section:
    require_role(actor.role, ADMIN_ROLES)
    section_id = coerce_id(section_id, "section_id")
    data = validate_payload(SectionUpdateInputSerializer, payload)

    now = timezone.now()
    with transaction.atomic():
        section = Section.objects.select_for_update().filter(pk=section_id).first()
        if section is None:
            raise NotFound("Section introuvable.", reason="section_not_found")

        changes = {}
        for field, value in data.items():
            value = value.strip()
            if getattr(section, field) != value:
                changes[field] = {"from": getattr(section, field), "to": value}
                setattr(section, field, value)

        if changes:
            section.save(update_fields=[*changes.keys(), "updated_at"])
            record_action(
                action=Actions.SECTION_UPDATE,
                actor=actor,
                target_type="section",
                target_id=section.pk,
                details={"changes": changes},
                timestamp=now,
            )
    return section


def delete_section(actor: Actor, section_id) -> None:
    require_role(actor.role, SUPERADMIN_ROLES)
    section_id = coerce_id(section_id, "section_id")

    now = timezone.now()
    with transaction.atomic():
        section = Section.objects.select_for_update().filter(pk=section_id).first()
        if section is None:
            raise NotFound("Section introuvable.", reason="section_not_found")

        # Live query: member_count may be stale.
        if Member.objects.filter(section_id=section.pk).exists():
            raise FailedPrecondition("La section contient encore des adhérents.", reason="section_not_empty")

        snapshot = {"name": section.name, "city": section.city, "region": section.region}
        section.delete()
        record_action(
            action=Actions.SECTION_DELETE,
            actor=actor,
            target_type="section",
            target_id=section_id,
            details=snapshot,
            timestamp=now,
        )


# --- Members --------------------------------------------------------------


def _discard_orphan_account(user_id) -> None:
    try:
        identity.delete_account(user_id)
    except Exception:
        logger.exception("Failed to delete orphaned identity account %s", user_id)


def create_member(actor: Actor, payload) -> tuple[Member, str]:
    """Create an identity account plus its member record.

    Returns `(member, temporary_password)`. If the member transaction fails
    the freshly created account is deleted again.
    """

    require_role(actor.role, ADMIN_ROLES)
    data = validate_payload(MemberCreateInputSerializer, payload)

    if not Section.objects.filter(pk=data["section_id"]).exists():
        raise NotFound("Section introuvable.", reason="section_not_found", field="section_id")
    if Member.objects.filter(email__iexact=data["email"]).exists():
        raise AlreadyExists("Un adhérent existe déjà pour cet e-mail.", reason="email_in_use", field="email")

    temporary_password = identity.generate_temporary_password()
    user = identity.create_account(
        email=data["email"],
        password=temporary_password,
        first_name=data["first_name"],
        last_name=data["last_name"],
    )

    try:
        with transaction.atomic():
            now = timezone.now()
            section = Section.objects.select_for_update().filter(pk=data["section_id"]).first()
            if section is None:
                raise NotFound("Section introuvable.", reason="section_not_found", field="section_id")

            member = Member.objects.create(
                user=user,
                email=data["email"],
                first_name=data["first_name"].strip(),
                last_name=data["last_name"].strip(),
                phone=(data.get("phone") or "").strip(),
                section=section,
                role=Member.Role.MEMBER,
                status=data["status"],
                registration_source=Member.RegistrationSource.ADMIN_CREATED,
                password_change_required=True,
                joined_at=now,
            )
            Section.objects.filter(pk=section.pk).update(member_count=F("member_count") + 1)
            record_action(
                action=Actions.MEMBER_CREATE,
                actor=actor,
                target_type="member",
                target_id=member.pk,
                details={"email": member.email, "section_id": section.pk, "status": member.status},
                timestamp=now,
            )
    except Exception as exc:
        _discard_orphan_account(user.pk)
        if isinstance(exc, APIException):
            raise
        raise Internal("La création de l'adhérent a échoué.", reason="member_create_failed") from exc

    return member, temporary_password


def _move_member_section(member: Member, new_section_id: int) -> dict:
    """Re-point a locked member to another section and adjust both counters."""
    previous_section_id = member.section_id
    sections = {
        section.pk: section
        for section in Section.objects.select_for_update()
        .filter(pk__in=[pk for pk in (previous_section_id, new_section_id) if pk is not None])
        .order_by("pk")
    }
    new_section = sections.get(new_section_id)
    if new_section is None:
        raise NotFound("Section introuvable.", reason="section_not_found", field="section_id")

    Section.objects.filter(pk=new_section.pk).update(member_count=F("member_count") + 1)
    if previous_section_id is not None:
        Section.objects.filter(pk=previous_section_id, member_count__gt=0).update(member_count=F("member_count") - 1)

    member.section = new_section
    return {"from": previous_section_id, "to": new_section.pk}


def update_member(actor: Actor, member_id, payload) -> Member:
    member_id = coerce_id(member_id, "member_id")
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidArgument("Le contenu de la requête doit être un objet.", reason="invalid_payload")

    if actor.is_self(member_id):
        forbidden = sorted(set(payload) & ADMIN_ONLY_MEMBER_FIELDS)
        if forbidden:
            raise PermissionDenied(
                "Ce champ ne peut pas être modifié sur votre propre profil.",
                reason="self_field_forbidden",
                field=forbidden[0],
            )
        allowed_fields, input_serializer = SELF_MUTABLE_FIELDS, MemberSelfUpdateInputSerializer
    else:
        require_role(actor.role, ADMIN_ROLES)
        if "role" in payload:
            raise PermissionDenied(
                "Le rôle se modifie via l'opération dédiée.",
                reason="role_not_updatable",
                field="role",
            )
        allowed_fields, input_serializer = ADMIN_MUTABLE_FIELDS, MemberAdminUpdateInputSerializer

    unknown = sorted(set(payload) - allowed_fields)
    if unknown:
        raise InvalidArgument("Champ non modifiable.", reason="unknown_field", field=unknown[0])

    data = validate_payload(input_serializer, payload)

    now = timezone.now()
    with transaction.atomic():
        member = Member.objects.select_for_update().filter(pk=member_id).first()
        if member is None:
            raise NotFound("Adhérent introuvable.", reason="member_not_found")

        changes = {}
        for field in ("first_name", "last_name", "phone", "status"):
            if field not in data:
                continue
            value = data[field].strip() if field != "status" else data[field]
            if getattr(member, field) != value:
                changes[field] = {"from": getattr(member, field), "to": value}
                setattr(member, field, value)

        update_fields = list(changes.keys())
        if "section_id" in data and data["section_id"] != member.section_id:
            changes["section_id"] = _move_member_section(member, data["section_id"])
            update_fields.append("section")

        if changes:
            member.save(update_fields=[*update_fields, "updated_at"])
            record_action(
                action=Actions.MEMBER_UPDATE,
                actor=actor,
                target_type="member",
                target_id=member.pk,
                details={"changes": changes, "self_service": actor.is_self(member_id)},
                timestamp=now,
            )
    return member
