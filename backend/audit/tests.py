from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from audit.models import AuditLog
from audit.services import Actions, record_action
from members.models import Member
from members.roles import Actor


def make_member(email, role):
	user = get_user_model().objects.create_user(username=email, email=email, password="pass1234", role=role)
	Member.objects.create(user=user, email=email, role=role, status=Member.Status.ACTIVE, joined_at=timezone.now())
	return user


class RecordActionTests(TestCase):
	def test_actor_role_is_taken_from_resolved_actor(self):
		user = make_member("admin@example.org", Member.Role.ADMIN)

		log = record_action(
			action=Actions.SECTION_CREATE,
			actor=Actor.for_user(user),
			target_type="section",
			target_id=7,
			details={"name": "Lyon"},
		)

		self.assertEqual(log.actor, user)
		self.assertEqual(log.actor_role, "admin")
		self.assertEqual(log.target_id, "7")
		self.assertIsNotNone(log.timestamp)

	def test_entries_are_immutable(self):
		log = record_action(action=Actions.AUDIT_ACCESS, target_type="audit", target_id="bootstrap")

		log.details = {"tampered": True}
		with self.assertRaises(ValueError):
			log.save()
		self.assertEqual(AuditLog.objects.get(pk=log.pk).details, {})


class AuditLogApiTests(APITestCase):
	def setUp(self):
		self.admin = make_member("admin@example.org", Member.Role.ADMIN)
		self.member_user = make_member("member@example.org", Member.Role.MEMBER)
		record_action(action=Actions.SECTION_CREATE, actor=self.admin, target_type="section", target_id=1)
		record_action(action=Actions.PAYMENT_RECORD, actor=self.admin, target_type="member", target_id=self.member_user.pk)

	def test_admin_lists_and_filters(self):
		self.client.force_authenticate(user=self.admin)

		res = self.client.get("/api/audit-logs/", {"action": Actions.PAYMENT_RECORD})

		self.assertEqual(res.status_code, 200)
		self.assertEqual(len(res.data), 1)
		self.assertEqual(res.data[0]["actor_username"], "admin@example.org")
		self.assertEqual(res.data[0]["target_id"], str(self.member_user.pk))

	def test_member_is_denied(self):
		self.client.force_authenticate(user=self.member_user)

		res = self.client.get("/api/audit-logs/")

		self.assertEqual(res.status_code, 403)
		self.assertEqual(res.data["error"]["code"], "permission-denied")

	def test_read_only(self):
		self.client.force_authenticate(user=self.admin)

		res = self.client.post("/api/audit-logs/", {"action": "forged"}, format="json")

		self.assertEqual(res.status_code, 405)
		self.assertFalse(AuditLog.objects.filter(action="forged").exists())
