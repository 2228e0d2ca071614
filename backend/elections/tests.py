from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from audit.models import AuditLog
from conditions.models import Condition, MemberCondition
from contributions.models import ContributionPolicy, PaymentRecord
from elections.eligibility import evaluate_member
from elections.models import Election
from members.models import Member, Section


def make_member(email, *, role=Member.Role.MEMBER, status=Member.Status.ACTIVE, section=None, joined_days_ago=400):
    user = get_user_model().objects.create_user(username=email, email=email, password="pass1234", role=role)
    member = Member.objects.create(
        user=user,
        email=email,
        role=role,
        status=status,
        section=section,
        joined_at=timezone.now() - timedelta(days=joined_days_ago),
    )
    return user, member


def pay_until(member, period_end):
    policy = ContributionPolicy.objects.filter(is_active=True).first()
    if policy is None:
        policy = ContributionPolicy.objects.create(
            name="Cotisation",
            amount=Decimal("20.00"),
            currency="EUR",
            periodicity=ContributionPolicy.Periodicity.YEARLY,
            grace_period_days=0,
            is_active=True,
            created_at=timezone.now(),
        )
    return PaymentRecord.objects.create(
        member=member,
        policy=policy,
        amount=Decimal("20.00"),
        currency="EUR",
        period_start=period_end - timedelta(days=365),
        period_end=period_end,
        recorded_at=timezone.now(),
    )


class EvaluateMemberTests(TestCase):
    def setUp(self):
        self.now = timezone.now()
        self.section = Section.objects.create(name="Marseille", city="Marseille")
        self.other_section = Section.objects.create(name="Nice", city="Nice")
        _, self.member = make_member("voter@example.org", section=self.section)
        pay_until(self.member, timezone.localdate(self.now) + timedelta(days=100))
        self.charter = Condition.objects.create(name="Charte signée", type=Condition.Type.CHECKBOX)
        self.medical = Condition.objects.create(name="Certificat médical", type=Condition.Type.FILE, validity_duration=365)
        Condition.objects.create(name="Ancienne règle", type=Condition.Type.TEXT, is_active=False)
        MemberCondition.objects.create(member=self.member, condition=self.charter, validated=True)

    def test_without_election_checks_standing_and_active_conditions(self):
        result = evaluate_member(self.member, now=self.now)

        self.assertEqual(
            [reason.condition for reason in result.reasons],
            ["member_status", "contribution", f"condition_{self.charter.pk}", f"condition_{self.medical.pk}"],
        )
        self.assertFalse(result.eligible)
        unmet = [reason.condition for reason in result.reasons if not reason.met]
        self.assertEqual(unmet, [f"condition_{self.medical.pk}"])

    def test_all_checks_met_is_eligible(self):
        MemberCondition.objects.create(
            member=self.member,
            condition=self.medical,
            validated=True,
            expires_at=self.now + timedelta(days=10),
        )

        self.assertTrue(evaluate_member(self.member, now=self.now).eligible)

    def test_election_adds_seniority_and_section_and_uses_voter_conditions(self):
        election = Election.objects.create(title="Bureau fédéral", min_seniority=365)
        election.allowed_sections.add(self.section)
        election.voter_conditions.add(self.charter)

        result = evaluate_member(self.member, election, now=self.now)

        self.assertEqual(
            [reason.condition for reason in result.reasons],
            ["member_status", "contribution", "seniority", "section", f"condition_{self.charter.pk}"],
        )
        self.assertTrue(result.eligible)
        self.assertEqual(result.as_dict()["election_id"], election.pk)

    def test_election_rejects_other_section_and_junior_member(self):
        election = Election.objects.create(title="Bureau fédéral", min_seniority=500)
        election.allowed_sections.add(self.other_section)

        result = evaluate_member(self.member, election, now=self.now)

        met = {reason.condition: reason.met for reason in result.reasons}
        self.assertFalse(met["seniority"])
        self.assertFalse(met["section"])
        self.assertTrue(met["member_status"])
        self.assertFalse(result.eligible)

    def test_empty_allow_list_and_zero_seniority_pass(self):
        election = Election.objects.create(title="Consultation", min_seniority=0)

        met = {reason.condition: reason.met for reason in evaluate_member(self.member, election, now=self.now).reasons}

        self.assertTrue(met["seniority"])
        self.assertTrue(met["section"])

    def test_suspended_member_fails_status(self):
        self.member.status = Member.Status.SUSPENDED
        self.member.save(update_fields=["status"])

        result = evaluate_member(self.member, now=self.now)

        self.assertFalse(result.reasons[0].met)
        self.assertEqual(result.reasons[0].condition, "member_status")


class ComputeEligibilityApiTests(APITestCase):
    url = "/api/eligibility/"

    def setUp(self):
        self.admin, _ = make_member("admin@example.org", role=Member.Role.ADMIN)
        self.member_user, self.member = make_member("voter@example.org")
        _, self.other = make_member("other@example.org")

    def test_member_checks_own_eligibility(self):
        self.client.force_authenticate(user=self.member_user)

        res = self.client.post(self.url, {"member_id": self.member.pk}, format="json")

        self.assertEqual(res.status_code, 200)
        data = res.data["data"]
        self.assertEqual(data["member_id"], self.member.pk)
        self.assertIsNone(data["election_id"])
        self.assertFalse(data["eligible"])
        self.assertIn({"condition": "contribution", "met": False, "detail": "Cotisation non à jour"}, data["reasons"])

    def test_member_cannot_check_someone_else(self):
        self.client.force_authenticate(user=self.member_user)

        res = self.client.post(self.url, {"member_id": self.other.pk}, format="json")

        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["error"]["code"], "permission-denied")

    def test_admin_checks_anyone_and_nothing_is_written(self):
        election = Election.objects.create(title="Section Lyon", type=Election.Type.SECTION)
        self.client.force_authenticate(user=self.admin)
        audit_count = AuditLog.objects.count()

        res = self.client.post(self.url, {"member_id": self.other.pk, "election_id": election.pk}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["election_id"], election.pk)
        self.assertEqual(AuditLog.objects.count(), audit_count)

    def test_unknown_member_or_election_is_not_found(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.post(self.url, {"member_id": 999999}, format="json")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"]["field"], "member_id")

        res = self.client.post(self.url, {"member_id": self.member.pk, "election_id": 999999}, format="json")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"]["field"], "election_id")

    def test_missing_member_id_is_invalid_argument(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["field"], "member_id")


class ElectionListApiTests(APITestCase):
    def test_lists_elections_with_open_flag(self):
        user, _ = make_member("voter@example.org")
        now = timezone.now()
        Election.objects.create(
            title="Bureau fédéral",
            status=Election.Status.OPEN,
            start_at=now - timedelta(hours=1),
            end_at=now + timedelta(hours=1),
        )
        Election.objects.create(title="Brouillon")
        self.client.force_authenticate(user=user)

        res = self.client.get("/api/elections/", {"status": "open"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["count"], 1)
        self.assertTrue(res.data["data"]["results"][0]["is_open"])
