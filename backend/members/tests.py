from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APITestCase

from audit.models import AuditLog
from members.models import Member, Section
from members.roles import Actor, resolve_role


def make_user(email, role="", **extra):
    return get_user_model().objects.create_user(
        username=email,
        email=email,
        password="pass1234",
        role=role,
        **extra,
    )


def make_member(user, *, role=Member.Role.MEMBER, section=None, status=Member.Status.ACTIVE):
    return Member.objects.create(
        user=user,
        email=user.email,
        role=role,
        section=section,
        status=status,
        joined_at=timezone.now(),
    )


class ResolveRoleTests(TestCase):
    def test_stored_member_role_wins_over_claim(self):
        user = make_user("stored@example.org", role="superadmin")
        make_member(user, role=Member.Role.ADMIN)

        self.assertEqual(resolve_role(user.pk, token_role="superadmin"), "admin")

    def test_claim_used_until_member_exists(self):
        user = make_user("claim@example.org")

        self.assertEqual(resolve_role(user.pk, token_role="admin"), "admin")
        self.assertIsNone(resolve_role(user.pk, token_role="owner"))
        self.assertIsNone(resolve_role(user.pk))

    def test_actor_falls_back_to_account_role(self):
        user = make_user("fallback@example.org", role="admin")

        actor = Actor.for_user(user)

        self.assertEqual(actor.role, "admin")
        self.assertTrue(actor.is_admin)
        self.assertTrue(actor.is_self(str(user.pk)))


class EnsureMemberProfileTests(APITestCase):
    url = "/api/members/ensure-profile/"

    def test_first_call_creates_pending_member_then_refreshes(self):
        user = make_user("new@example.org", email_verified=True)
        self.client.force_authenticate(user=user)

        first = self.client.post(self.url, {}, format="json")
        self.assertEqual(first.status_code, 201)
        self.assertTrue(first.data["success"])
        self.assertTrue(first.data["data"]["created"])
        member = Member.objects.get(pk=user.pk)
        self.assertEqual(member.role, Member.Role.MEMBER)
        self.assertEqual(member.status, Member.Status.PENDING)
        self.assertEqual(member.registration_source, Member.RegistrationSource.SELF_REGISTRATION)
        self.assertTrue(member.email_verified)

        user.email = "renamed@example.org"
        user.save(update_fields=["email"])

        second = self.client.post(self.url, {}, format="json")
        self.assertEqual(second.status_code, 200)
        self.assertFalse(second.data["data"]["created"])
        self.assertEqual(Member.objects.filter(pk=user.pk).count(), 1)
        self.assertEqual(Member.objects.get(pk=user.pk).email, "renamed@example.org")
        self.assertEqual(AuditLog.objects.filter(action="member.profile_create").count(), 1)

    def test_account_without_email_is_rejected(self):
        user = get_user_model().objects.create_user(username="noemail", password="pass1234")
        self.client.force_authenticate(user=user)

        res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "failed-precondition")
        self.assertEqual(res.data["error"]["reason"], "email_missing")
        self.assertFalse(Member.objects.exists())

    def test_anonymous_gets_unauthenticated_envelope(self):
        res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 401)
        self.assertFalse(res.data["success"])
        self.assertEqual(res.data["error"]["code"], "unauthenticated")


class BootstrapRoleTests(APITestCase):
    url = "/api/members/bootstrap-role/"

    def setUp(self):
        self.user = make_user("boot@example.org")
        self.client.force_authenticate(user=self.user)

    @override_settings(MEMBERSHIP_BOOTSTRAP={"SUPERADMIN_EMAILS": ["boot@example.org"], "LOCKED": True})
    def test_locked_bootstrap_refuses_everyone(self):
        res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["error"]["reason"], "bootstrap_locked")
        self.assertFalse(Member.objects.exists())

    @override_settings(MEMBERSHIP_BOOTSTRAP={"SUPERADMIN_EMAILS": ["someone-else@example.org"], "LOCKED": False})
    def test_email_outside_allow_list_is_refused(self):
        res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["error"]["code"], "permission-denied")
        self.assertEqual(res.data["error"]["reason"], "email_not_allowed")

    @override_settings(MEMBERSHIP_BOOTSTRAP={"SUPERADMIN_EMAILS": ["boot@example.org"], "LOCKED": False})
    def test_account_without_email_fails_precondition(self):
        self.user.email = ""
        self.user.save(update_fields=["email"])

        res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["reason"], "email_missing")

    @override_settings(MEMBERSHIP_BOOTSTRAP={"SUPERADMIN_EMAILS": ["boot@example.org"], "LOCKED": True})
    def test_missing_email_is_reported_before_lock(self):
        self.user.email = ""
        self.user.save(update_fields=["email"])

        res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "failed-precondition")
        self.assertEqual(res.data["error"]["reason"], "email_missing")

    @override_settings(MEMBERSHIP_BOOTSTRAP={"SUPERADMIN_EMAILS": ["Boot@Example.org"], "LOCKED": False})
    def test_allow_listed_caller_becomes_active_superadmin(self):
        make_member(self.user, status=Member.Status.PENDING)

        res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["role"], "superadmin")
        member = Member.objects.get(pk=self.user.pk)
        self.assertEqual(member.role, Member.Role.SUPERADMIN)
        self.assertEqual(member.status, Member.Status.ACTIVE)
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, "superadmin")

        actions = set(AuditLog.objects.filter(actor=self.user).values_list("action", flat=True))
        self.assertEqual(actions, {"member.role_change", "audit.access"})
        role_change = AuditLog.objects.get(action="member.role_change")
        self.assertEqual(role_change.details["previous_role"], "member")
        self.assertEqual(role_change.details["new_role"], "superadmin")


class ChangeRoleTests(APITestCase):
    url = "/api/members/change-role/"

    def setUp(self):
        self.superadmin = make_user("super@example.org", role="superadmin")
        make_member(self.superadmin, role=Member.Role.SUPERADMIN)
        self.target = make_user("target@example.org")
        make_member(self.target)

    def test_superadmin_changes_role_and_claim(self):
        self.client.force_authenticate(user=self.superadmin)

        res = self.client.post(self.url, {"member_id": self.target.pk, "new_role": "admin"}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(Member.objects.get(pk=self.target.pk).role, "admin")
        self.target.refresh_from_db()
        self.assertEqual(self.target.role, "admin")
        log = AuditLog.objects.get(action="member.role_change")
        self.assertEqual(log.target_id, str(self.target.pk))
        self.assertEqual(log.details, {"previous_role": "member", "new_role": "admin"})

    def test_superadmin_cannot_change_own_role(self):
        self.client.force_authenticate(user=self.superadmin)

        res = self.client.post(self.url, {"member_id": self.superadmin.pk, "new_role": "superadmin"}, format="json")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["reason"], "self_role_change")
        self.assertEqual(Member.objects.get(pk=self.superadmin.pk).role, "superadmin")

    def test_own_id_in_another_spelling_is_still_self(self):
        self.client.force_authenticate(user=self.superadmin)

        for member_id in (f" {self.superadmin.pk}", f"0{self.superadmin.pk}", float(self.superadmin.pk)):
            res = self.client.post(self.url, {"member_id": member_id, "new_role": "member"}, format="json")
            self.assertEqual(res.status_code, 409)
            self.assertEqual(res.data["error"]["reason"], "self_role_change")

        self.assertEqual(Member.objects.get(pk=self.superadmin.pk).role, "superadmin")
        self.assertFalse(AuditLog.objects.filter(action="member.role_change").exists())

    def test_self_check_comes_before_role_validation(self):
        self.client.force_authenticate(user=self.superadmin)

        res = self.client.post(self.url, {"member_id": self.superadmin.pk, "new_role": "owner"}, format="json")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "failed-precondition")

    def test_admin_cannot_change_roles(self):
        admin = make_user("admin@example.org", role="admin")
        make_member(admin, role=Member.Role.ADMIN)
        self.client.force_authenticate(user=admin)

        res = self.client.post(self.url, {"member_id": self.target.pk, "new_role": "admin"}, format="json")

        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["error"]["reason"], "role_required")

    def test_unknown_role_is_invalid_argument(self):
        self.client.force_authenticate(user=self.superadmin)

        res = self.client.post(self.url, {"member_id": self.target.pk, "new_role": "owner"}, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "invalid-argument")
        self.assertEqual(res.data["error"]["field"], "new_role")

    def test_missing_target_is_not_found(self):
        self.client.force_authenticate(user=self.superadmin)

        res = self.client.post(self.url, {"member_id": 999999, "new_role": "admin"}, format="json")

        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"]["code"], "not-found")


class SectionApiTests(APITestCase):
    def setUp(self):
        self.superadmin = make_user("super@example.org", role="superadmin")
        make_member(self.superadmin, role=Member.Role.SUPERADMIN)
        self.admin = make_user("admin@example.org", role="admin")
        make_member(self.admin, role=Member.Role.ADMIN)
        self.member_user = make_user("member@example.org")
        make_member(self.member_user)

    def test_admin_creates_and_updates_section(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.post("/api/sections/", {"name": "Lyon Nord", "city": "Lyon"}, format="json")
        self.assertEqual(res.status_code, 201)
        section_id = res.data["data"]["id"]
        self.assertEqual(res.data["data"]["member_count"], 0)

        res = self.client.patch(f"/api/sections/{section_id}/", {"region": "Auvergne-Rhône-Alpes"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(Section.objects.get(pk=section_id).region, "Auvergne-Rhône-Alpes")
        self.assertEqual(
            list(AuditLog.objects.filter(target_type="section").order_by("id").values_list("action", flat=True)),
            ["section.create", "section.update"],
        )

    def test_empty_update_is_rejected(self):
        section = Section.objects.create(name="Nantes", city="Nantes")
        self.client.force_authenticate(user=self.admin)

        res = self.client.patch(f"/api/sections/{section.pk}/", {}, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["reason"], "no_updates")

    def test_member_cannot_create_section(self):
        self.client.force_authenticate(user=self.member_user)

        res = self.client.post("/api/sections/", {"name": "Lille", "city": "Lille"}, format="json")

        self.assertEqual(res.status_code, 403)
        self.assertFalse(Section.objects.exists())

    def test_delete_requires_superadmin(self):
        section = Section.objects.create(name="Brest", city="Brest")
        self.client.force_authenticate(user=self.admin)

        res = self.client.delete(f"/api/sections/{section.pk}/")

        self.assertEqual(res.status_code, 403)
        self.assertTrue(Section.objects.filter(pk=section.pk).exists())

    def test_delete_refused_while_members_reference_section(self):
        # The cached count is stale on purpose; the live query decides.
        section = Section.objects.create(name="Rennes", city="Rennes", member_count=0)
        make_member(make_user("resident@example.org"), section=section)
        self.client.force_authenticate(user=self.superadmin)

        res = self.client.delete(f"/api/sections/{section.pk}/")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["reason"], "section_not_empty")
        self.assertTrue(Section.objects.filter(pk=section.pk).exists())

    def test_delete_empty_section(self):
        section = Section.objects.create(name="Dijon", city="Dijon")
        self.client.force_authenticate(user=self.superadmin)

        res = self.client.delete(f"/api/sections/{section.pk}/")

        self.assertEqual(res.status_code, 200)
        self.assertFalse(Section.objects.filter(pk=section.pk).exists())
        log = AuditLog.objects.get(action="section.delete")
        self.assertEqual(log.target_id, str(section.pk))
        self.assertEqual(log.details["name"], "Dijon")

    def test_missing_section_is_not_found(self):
        self.client.force_authenticate(user=self.member_user)

        res = self.client.get("/api/sections/999999/")

        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"]["code"], "not-found")


class CreateMemberTests(APITestCase):
    url = "/api/members/"

    def setUp(self):
        self.admin = make_user("admin@example.org", role="admin")
        make_member(self.admin, role=Member.Role.ADMIN)
        self.section = Section.objects.create(name="Paris 11", city="Paris")
        self.client.force_authenticate(user=self.admin)

    def _payload(self, **overrides):
        payload = {
            "email": "Nouvel.Adherent@Example.org",
            "first_name": "Claire",
            "last_name": "Martin",
            "section_id": self.section.pk,
        }
        payload.update(overrides)
        return payload

    def test_admin_creates_member_with_temporary_password(self):
        res = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(res.status_code, 201)
        temporary_password = res.data["data"]["temporary_password"]
        self.assertGreaterEqual(len(temporary_password), 12)

        user = get_user_model().objects.get(email="nouvel.adherent@example.org")
        self.assertTrue(user.check_password(temporary_password))
        member = Member.objects.get(pk=user.pk)
        self.assertEqual(member.registration_source, Member.RegistrationSource.ADMIN_CREATED)
        self.assertTrue(member.password_change_required)
        self.assertEqual(member.status, Member.Status.PENDING)
        self.assertEqual(member.section_id, self.section.pk)

        self.section.refresh_from_db()
        self.assertEqual(self.section.member_count, 1)
        self.assertTrue(AuditLog.objects.filter(action="member.create", target_id=str(user.pk)).exists())

    def test_unknown_section_leaves_no_account_behind(self):
        before = get_user_model().objects.count()

        res = self.client.post(self.url, self._payload(section_id=999999), format="json")

        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"]["field"], "section_id")
        self.assertEqual(get_user_model().objects.count(), before)

    def test_duplicate_email_already_exists(self):
        make_member(make_user("nouvel.adherent@example.org"))

        res = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "already-exists")

    def test_failure_after_account_creation_removes_account(self):
        with patch("members.services.record_action", side_effect=RuntimeError("boom")):
            res = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.data["error"]["code"], "internal")
        self.assertEqual(res.data["error"]["reason"], "member_create_failed")
        self.assertFalse(get_user_model().objects.filter(email="nouvel.adherent@example.org").exists())
        self.section.refresh_from_db()
        self.assertEqual(self.section.member_count, 0)

    def test_member_cannot_create_or_list(self):
        member_user = make_user("plain@example.org")
        make_member(member_user)
        self.client.force_authenticate(user=member_user)

        self.assertEqual(self.client.post(self.url, self._payload(), format="json").status_code, 403)
        self.assertEqual(self.client.get(self.url).status_code, 403)

    def test_admin_lists_members_filtered_by_section(self):
        make_member(make_user("in-section@example.org"), section=self.section)

        res = self.client.get(self.url, {"section": self.section.pk})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["count"], 1)
        self.assertEqual(res.data["data"]["results"][0]["email"], "in-section@example.org")


class UpdateMemberTests(APITestCase):
    def setUp(self):
        self.section_a = Section.objects.create(name="Bordeaux", city="Bordeaux", member_count=1)
        self.section_b = Section.objects.create(name="Toulouse", city="Toulouse")
        self.admin = make_user("admin@example.org", role="admin")
        make_member(self.admin, role=Member.Role.ADMIN)
        self.member_user = make_user("member@example.org")
        self.member = make_member(self.member_user, section=self.section_a)

    def _url(self, member_id):
        return f"/api/members/{member_id}/"

    def test_member_updates_own_contact_fields(self):
        self.client.force_authenticate(user=self.member_user)

        res = self.client.patch(self._url(self.member.pk), {"first_name": " Julie ", "phone": "0601020304"}, format="json")

        self.assertEqual(res.status_code, 200)
        self.member.refresh_from_db()
        self.assertEqual(self.member.first_name, "Julie")
        self.assertEqual(self.member.phone, "0601020304")
        log = AuditLog.objects.get(action="member.update")
        self.assertTrue(log.details["self_service"])

    def test_member_cannot_touch_admin_fields_on_self(self):
        self.client.force_authenticate(user=self.member_user)

        for payload in ({"section_id": self.section_b.pk}, {"status": "suspended"}, {"role": "admin"}):
            res = self.client.patch(self._url(self.member.pk), payload, format="json")
            self.assertEqual(res.status_code, 403)
            self.assertEqual(res.data["error"]["reason"], "self_field_forbidden")

        self.member.refresh_from_db()
        self.assertEqual(self.member.section_id, self.section_a.pk)
        self.assertEqual(self.member.status, Member.Status.ACTIVE)
        self.assertFalse(AuditLog.objects.filter(action="member.update").exists())

    def test_admin_is_self_scoped_on_own_record(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.patch(self._url(self.admin.pk), {"status": "suspended"}, format="json")

        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["error"]["reason"], "self_field_forbidden")

    def test_member_cannot_update_someone_else(self):
        other = make_member(make_user("other@example.org"))
        self.client.force_authenticate(user=self.member_user)

        res = self.client.patch(self._url(other.pk), {"first_name": "X"}, format="json")

        self.assertEqual(res.status_code, 403)

    def test_admin_moves_member_and_keeps_counts(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.patch(self._url(self.member.pk), {"section_id": self.section_b.pk}, format="json")

        self.assertEqual(res.status_code, 200)
        self.member.refresh_from_db()
        self.section_a.refresh_from_db()
        self.section_b.refresh_from_db()
        self.assertEqual(self.member.section_id, self.section_b.pk)
        self.assertEqual(self.section_a.member_count, 0)
        self.assertEqual(self.section_b.member_count, 1)
        log = AuditLog.objects.get(action="member.update")
        self.assertEqual(log.details["changes"]["section_id"], {"from": self.section_a.pk, "to": self.section_b.pk})

    def test_repeated_move_counts_once(self):
        self.client.force_authenticate(user=self.admin)

        for _ in range(2):
            res = self.client.patch(self._url(self.member.pk), {"section_id": self.section_b.pk}, format="json")
            self.assertEqual(res.status_code, 200)

        self.section_a.refresh_from_db()
        self.section_b.refresh_from_db()
        self.assertEqual(self.section_a.member_count, 0)
        self.assertEqual(self.section_b.member_count, 1)
        self.assertEqual(AuditLog.objects.filter(action="member.update").count(), 1)

    def test_move_and_back_restores_counts(self):
        self.client.force_authenticate(user=self.admin)

        self.client.patch(self._url(self.member.pk), {"section_id": self.section_b.pk}, format="json")
        res = self.client.patch(self._url(self.member.pk), {"section_id": self.section_a.pk}, format="json")

        self.assertEqual(res.status_code, 200)
        self.section_a.refresh_from_db()
        self.section_b.refresh_from_db()
        self.assertEqual(self.section_a.member_count, 1)
        self.assertEqual(self.section_b.member_count, 0)
        self.assertEqual(AuditLog.objects.filter(action="member.update").count(), 2)

    def test_admin_move_to_unknown_section_changes_nothing(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.patch(self._url(self.member.pk), {"section_id": 999999}, format="json")

        self.assertEqual(res.status_code, 404)
        self.section_a.refresh_from_db()
        self.assertEqual(self.section_a.member_count, 1)

    def test_admin_cannot_change_role_through_update(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.patch(self._url(self.member.pk), {"role": "admin"}, format="json")

        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["error"]["reason"], "role_not_updatable")

    def test_unknown_field_is_invalid_argument(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.patch(self._url(self.member.pk), {"email": "x@example.org"}, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["reason"], "unknown_field")
        self.assertEqual(res.data["error"]["field"], "email")

    def test_unchanged_values_write_no_audit(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.patch(self._url(self.member.pk), {"status": "active"}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertFalse(AuditLog.objects.filter(action="member.update").exists())

    def test_read_own_profile_and_not_others(self):
        other = make_member(make_user("other@example.org"))
        self.client.force_authenticate(user=self.member_user)

        me = self.client.get("/api/members/me/")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.data["data"]["uid"], str(self.member.pk))
        self.assertEqual(me.data["data"]["section_name"], "Bordeaux")

        self.assertEqual(self.client.get(self._url(self.member.pk)).status_code, 200)
        self.assertEqual(self.client.get(self._url(other.pk)).status_code, 403)
