from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from audit.models import AuditLog
from conditions.models import Condition, MemberCondition
from conditions.services import is_condition_satisfied, satisfied_condition_ids
from members.models import Member


def make_member(email, *, role=Member.Role.MEMBER):
    user = get_user_model().objects.create_user(username=email, email=email, password="pass1234", role=role)
    member = Member.objects.create(user=user, email=email, role=role, status=Member.Status.ACTIVE, joined_at=timezone.now())
    return user, member


class MemberConditionModelTests(TestCase):
    def setUp(self):
        _, self.member = make_member("holder@example.org")
        self.condition = Condition.objects.create(name="Certificat médical", type=Condition.Type.FILE, validity_duration=365)

    def test_composite_id_is_filled_on_save(self):
        record = MemberCondition.objects.create(member=self.member, condition=self.condition, validated=True)

        self.assertEqual(record.pk, f"{self.member.pk}_{self.condition.pk}")

    def test_satisfaction_respects_expiry(self):
        now = timezone.now()
        record = MemberCondition(member=self.member, condition=self.condition, validated=True, expires_at=now)

        self.assertTrue(record.is_satisfied(now))
        self.assertFalse(record.is_satisfied(now + timedelta(seconds=1)))

        record.validated = False
        record.expires_at = None
        self.assertFalse(record.is_satisfied(now))

    def test_missing_record_is_never_satisfied(self):
        self.assertFalse(is_condition_satisfied(None))

    def test_satisfied_ids_ignore_expired_and_unvalidated(self):
        now = timezone.now()
        expired = Condition.objects.create(name="Attestation", type=Condition.Type.FILE)
        pending = Condition.objects.create(name="Charte signée", type=Condition.Type.CHECKBOX)
        MemberCondition.objects.create(member=self.member, condition=self.condition, validated=True, expires_at=now + timedelta(days=1))
        MemberCondition.objects.create(member=self.member, condition=expired, validated=True, expires_at=now - timedelta(days=1))
        MemberCondition.objects.create(member=self.member, condition=pending, validated=False)

        ids = satisfied_condition_ids(self.member.pk, [self.condition.pk, expired.pk, pending.pk], now=now)

        self.assertEqual(ids, {self.condition.pk})


class ConditionApiTests(APITestCase):
    def setUp(self):
        self.superadmin, _ = make_member("super@example.org", role=Member.Role.SUPERADMIN)
        self.admin, _ = make_member("admin@example.org", role=Member.Role.ADMIN)

    def test_superadmin_creates_and_updates_condition(self):
        self.client.force_authenticate(user=self.superadmin)

        res = self.client.post(
            "/api/conditions/",
            {"name": "Formation initiale", "type": "checkbox", "validity_duration": 730},
            format="json",
        )
        self.assertEqual(res.status_code, 201)
        condition_id = res.data["data"]["id"]
        self.assertTrue(res.data["data"]["is_active"])

        res = self.client.patch(f"/api/conditions/{condition_id}/", {"is_active": False}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertFalse(Condition.objects.get(pk=condition_id).is_active)
        self.assertEqual(
            list(AuditLog.objects.filter(target_type="condition").order_by("id").values_list("action", flat=True)),
            ["condition.create", "condition.update"],
        )

    def test_admin_cannot_define_conditions(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.post("/api/conditions/", {"name": "X", "type": "text"}, format="json")

        self.assertEqual(res.status_code, 403)

    def test_validity_duration_must_be_positive(self):
        self.client.force_authenticate(user=self.superadmin)

        res = self.client.post("/api/conditions/", {"name": "X", "type": "text", "validity_duration": 0}, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["field"], "validity_duration")


class ValidateConditionApiTests(APITestCase):
    url = "/api/conditions/validate/"

    def setUp(self):
        self.admin, _ = make_member("admin@example.org", role=Member.Role.ADMIN)
        self.member_user, self.member = make_member("holder@example.org")
        self.expiring = Condition.objects.create(name="Certificat médical", type=Condition.Type.FILE, validity_duration=30)
        self.permanent = Condition.objects.create(name="Charte signée", type=Condition.Type.CHECKBOX)

    def test_validation_sets_expiry_from_duration(self):
        self.client.force_authenticate(user=self.admin)
        before = timezone.now()

        res = self.client.post(
            self.url,
            {"member_id": self.member.pk, "condition_id": self.expiring.pk, "validated": True, "evidence": "scan.pdf"},
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["data"]["currently_satisfied"])
        record = MemberCondition.objects.get(pk=f"{self.member.pk}_{self.expiring.pk}")
        self.assertEqual(record.validated_by, self.admin)
        self.assertEqual(record.expires_at - record.validated_at, timedelta(days=30))
        self.assertGreaterEqual(record.validated_at, before)
        self.assertTrue(AuditLog.objects.filter(action="condition.validate", target_id=record.pk).exists())

    def test_condition_without_duration_never_expires(self):
        self.client.force_authenticate(user=self.admin)

        self.client.post(self.url, {"member_id": self.member.pk, "condition_id": self.permanent.pk, "validated": True}, format="json")

        self.assertIsNone(MemberCondition.objects.get(condition=self.permanent).expires_at)

    def test_invalidation_clears_expiry_and_upserts(self):
        self.client.force_authenticate(user=self.admin)
        payload = {"member_id": self.member.pk, "condition_id": self.expiring.pk}

        self.client.post(self.url, {**payload, "validated": True}, format="json")
        res = self.client.post(self.url, {**payload, "validated": False}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(MemberCondition.objects.filter(member=self.member).count(), 1)
        record = MemberCondition.objects.get(member=self.member)
        self.assertFalse(record.validated)
        self.assertIsNone(record.expires_at)
        self.assertTrue(AuditLog.objects.filter(action="condition.invalidate").exists())

    def test_unknown_condition_is_not_found(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.post(self.url, {"member_id": self.member.pk, "condition_id": 999999, "validated": True}, format="json")

        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"]["field"], "condition_id")

    def test_member_cannot_validate_but_reads_own_records(self):
        self.client.force_authenticate(user=self.member_user)

        res = self.client.post(self.url, {"member_id": self.member.pk, "condition_id": self.permanent.pk, "validated": True}, format="json")
        self.assertEqual(res.status_code, 403)

        MemberCondition.objects.create(member=self.member, condition=self.permanent, validated=True)
        res = self.client.get(f"/api/conditions/members/{self.member.pk}/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["count"], 1)
        self.assertEqual(res.data["data"]["results"][0]["condition_name"], "Charte signée")

        res = self.client.get(f"/api/conditions/members/{self.admin.pk}/")
        self.assertEqual(res.status_code, 403)
