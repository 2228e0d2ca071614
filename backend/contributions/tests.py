from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from audit.models import AuditLog
from contributions.models import ContributionPolicy, PaymentRecord
from contributions.services import is_contribution_up_to_date, refresh_all_contribution_flags
from members.models import Member


def make_member(email, *, role=Member.Role.MEMBER, **extra):
    user = get_user_model().objects.create_user(username=email, email=email, password="pass1234", role=role)
    member = Member.objects.create(
        user=user,
        email=email,
        role=role,
        status=Member.Status.ACTIVE,
        joined_at=timezone.now(),
        **extra,
    )
    return user, member


def make_policy(*, grace_period_days=0, is_active=True, name="Cotisation annuelle"):
    return ContributionPolicy.objects.create(
        name=name,
        amount=Decimal("30.00"),
        currency="EUR",
        periodicity=ContributionPolicy.Periodicity.YEARLY,
        grace_period_days=grace_period_days,
        is_active=is_active,
        created_at=timezone.now(),
    )


def make_payment(member, policy, *, period_end, days=365):
    return PaymentRecord.objects.create(
        member=member,
        policy=policy,
        amount=Decimal("30.00"),
        currency="EUR",
        period_start=period_end - timedelta(days=days),
        period_end=period_end,
        recorded_at=timezone.now(),
    )


class ContributionStatusTests(TestCase):
    def setUp(self):
        _, self.member = make_member("payer@example.org")
        self.now = timezone.now()
        self.today = timezone.localdate(self.now)

    def test_no_active_policy_means_not_up_to_date(self):
        policy = make_policy(is_active=False)
        make_payment(self.member, policy, period_end=self.today + timedelta(days=30))

        self.assertFalse(is_contribution_up_to_date(self.member.pk, now=self.now))

    def test_member_without_payment_is_not_up_to_date(self):
        make_policy(grace_period_days=30)

        self.assertFalse(is_contribution_up_to_date(self.member.pk, now=self.now))

    def test_grace_period_extends_coverage(self):
        policy = make_policy(grace_period_days=7)
        make_payment(self.member, policy, period_end=self.today - timedelta(days=5))

        self.assertTrue(is_contribution_up_to_date(self.member.pk, now=self.now))

        policy.is_active = False
        policy.save(update_fields=["is_active"])
        make_policy(grace_period_days=3, name="Cotisation réduite")

        self.assertFalse(is_contribution_up_to_date(self.member.pk, now=self.now))

    def test_last_grace_day_still_counts(self):
        policy = make_policy(grace_period_days=7)
        make_payment(self.member, policy, period_end=self.today - timedelta(days=7))

        self.assertTrue(is_contribution_up_to_date(self.member.pk, now=self.now))
        self.assertFalse(is_contribution_up_to_date(self.member.pk, now=self.now + timedelta(days=1)))

    def test_latest_period_is_used(self):
        policy = make_policy()
        make_payment(self.member, policy, period_end=self.today - timedelta(days=400))
        make_payment(self.member, policy, period_end=self.today + timedelta(days=10))

        self.assertTrue(is_contribution_up_to_date(self.member.pk, now=self.now))

    def test_payments_are_append_only(self):
        payment = make_payment(self.member, make_policy(), period_end=self.today)

        with self.assertRaises(ValueError):
            payment.save()
        with self.assertRaises(ValueError):
            payment.delete()

    def test_refresh_all_repairs_stale_flags(self):
        policy = make_policy()
        make_payment(self.member, policy, period_end=self.today + timedelta(days=10))
        _, stale = make_member("stale@example.org", contribution_up_to_date=True)

        preview = refresh_all_contribution_flags(now=self.now, dry_run=True)
        self.assertEqual((preview.checked, preview.changed), (2, 2))
        self.member.refresh_from_db()
        self.assertFalse(self.member.contribution_up_to_date)

        summary = refresh_all_contribution_flags(now=self.now)
        self.assertEqual(summary.changed, 2)
        self.member.refresh_from_db()
        stale.refresh_from_db()
        self.assertTrue(self.member.contribution_up_to_date)
        self.assertFalse(stale.contribution_up_to_date)

    def test_refresh_command_dry_run_writes_nothing(self):
        policy = make_policy()
        make_payment(self.member, policy, period_end=self.today + timedelta(days=10))
        out = StringIO()

        call_command("refresh_contribution_flags", "--dry-run", stdout=out)

        self.assertIn("[dry-run] 1", out.getvalue())
        self.member.refresh_from_db()
        self.assertFalse(self.member.contribution_up_to_date)


class ContributionPolicyApiTests(APITestCase):
    url = "/api/contributions/policies/"

    def setUp(self):
        self.superadmin, _ = make_member("super@example.org", role=Member.Role.SUPERADMIN)
        self.admin, _ = make_member("admin@example.org", role=Member.Role.ADMIN)

    def _payload(self, **overrides):
        payload = {
            "name": "Cotisation 2026",
            "amount": "25.00",
            "currency": "eur",
            "periodicity": "yearly",
            "grace_period_days": 15,
        }
        payload.update(overrides)
        return payload

    def test_new_policy_replaces_active_one(self):
        self.client.force_authenticate(user=self.superadmin)

        first = self.client.post(self.url, self._payload(), format="json")
        second = self.client.post(self.url, self._payload(name="Cotisation 2027", amount="28.00"), format="json")

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 201)
        self.assertEqual(second.data["data"]["currency"], "EUR")
        active = ContributionPolicy.objects.filter(is_active=True)
        self.assertEqual(active.count(), 1)
        self.assertEqual(active.get().pk, second.data["data"]["id"])
        self.assertEqual(AuditLog.objects.filter(action="policy.create").count(), 2)
        update_log = AuditLog.objects.get(action="policy.update")
        self.assertEqual(update_log.details["deactivated_ids"], [first.data["data"]["id"]])

        res = self.client.get("/api/contributions/policies/active/")
        self.assertEqual(res.data["data"]["name"], "Cotisation 2027")

    def test_admin_cannot_set_policy(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(res.status_code, 403)
        self.assertFalse(ContributionPolicy.objects.exists())

    def test_invalid_values_are_rejected(self):
        self.client.force_authenticate(user=self.superadmin)

        res = self.client.post(self.url, self._payload(amount="0"), format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["field"], "amount")
        self.assertEqual(res.data["error"]["reason"], "amount_not_positive")

        res = self.client.post(self.url, self._payload(grace_period_days=-1), format="json")
        self.assertEqual(res.data["error"]["reason"], "grace_negative")

        res = self.client.post(self.url, self._payload(periodicity="weekly"), format="json")
        self.assertEqual(res.data["error"]["field"], "periodicity")
        self.assertFalse(ContributionPolicy.objects.exists())

    def test_active_policy_is_null_when_none(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.get("/api/contributions/policies/active/")

        self.assertEqual(res.status_code, 200)
        self.assertIsNone(res.data["data"])


class RecordPaymentApiTests(APITestCase):
    url = "/api/contributions/payments/"

    def setUp(self):
        self.admin, _ = make_member("admin@example.org", role=Member.Role.ADMIN)
        self.member_user, self.member = make_member("payer@example.org")
        self.today = timezone.localdate()

    def _payload(self, **overrides):
        payload = {
            "member_id": self.member.pk,
            "amount": "30.00",
            "currency": "EUR",
            "period_start": (self.today - timedelta(days=30)).isoformat(),
            "period_end": (self.today + timedelta(days=335)).isoformat(),
            "reference": "VIR-2026-001",
        }
        payload.update(overrides)
        return payload

    def test_without_active_policy_fails_precondition(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "failed-precondition")
        self.assertEqual(res.data["error"]["reason"], "no_active_policy")
        self.assertFalse(PaymentRecord.objects.exists())

    def test_period_end_before_start_is_invalid(self):
        make_policy()
        self.client.force_authenticate(user=self.admin)

        res = self.client.post(
            self.url,
            self._payload(period_start=self.today.isoformat(), period_end=(self.today - timedelta(days=1)).isoformat()),
            format="json",
        )

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["field"], "period_end")
        self.assertEqual(res.data["error"]["reason"], "period_end_before_start")

    def test_payment_refreshes_member_flag(self):
        policy = make_policy()
        self.client.force_authenticate(user=self.admin)

        res = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["data"]["policy_id"], policy.pk)
        self.member.refresh_from_db()
        self.assertTrue(self.member.contribution_up_to_date)
        log = AuditLog.objects.get(action="payment.record")
        self.assertEqual(log.target_id, str(self.member.pk))
        self.assertEqual(log.details["amount"], "30.00")

    def test_unknown_member_is_not_found(self):
        make_policy()
        self.client.force_authenticate(user=self.admin)

        res = self.client.post(self.url, self._payload(member_id=999999), format="json")

        self.assertEqual(res.status_code, 404)
        self.assertFalse(PaymentRecord.objects.exists())

    def test_member_cannot_record_but_sees_own_payments(self):
        policy = make_policy()
        _, other = make_member("other@example.org")
        make_payment(self.member, policy, period_end=self.today)
        make_payment(other, policy, period_end=self.today)
        self.client.force_authenticate(user=self.member_user)

        res = self.client.post(self.url, self._payload(), format="json")
        self.assertEqual(res.status_code, 403)

        res = self.client.get(self.url)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["count"], 1)
        self.assertEqual(res.data["data"]["results"][0]["member_id"], self.member.pk)
