from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APITestCase

from core.exceptions import AlreadyExists, Internal
from users import identity
from users.tokens import RoleClaimTokenObtainPairSerializer


class IdentityAdapterTests(TestCase):
    def test_temporary_password_mixes_character_classes(self):
        password = identity.generate_temporary_password()

        self.assertEqual(len(password), 14)
        self.assertTrue(any(c.islower() for c in password))
        self.assertTrue(any(c.isupper() for c in password))
        self.assertTrue(any(c.isdigit() for c in password))
        self.assertTrue(any(c in "@#$%*!?" for c in password))
        self.assertEqual(len(identity.generate_temporary_password(4)), 12)

    def test_temporary_passwords_do_not_repeat(self):
        passwords = {identity.generate_temporary_password() for _ in range(50)}

        self.assertEqual(len(passwords), 50)
        self.assertTrue(all(len(p) == 14 for p in passwords))

    def test_create_account_normalizes_email(self):
        user = identity.create_account(email=" Jean.Dupont@Example.org ", password="Temp#12345678", first_name="Jean")

        self.assertEqual(user.username, "jean.dupont@example.org")
        self.assertEqual(user.email, "jean.dupont@example.org")
        self.assertTrue(user.check_password("Temp#12345678"))
        self.assertTrue(identity.email_in_use("JEAN.DUPONT@example.org"))

    def test_create_account_rejects_duplicate(self):
        identity.create_account(email="dup@example.org", password="Temp#12345678")

        with self.assertRaises(AlreadyExists):
            identity.create_account(email="DUP@example.org", password="Temp#12345678")

    def test_delete_and_role_claim_require_existing_account(self):
        user = identity.create_account(email="gone@example.org", password="Temp#12345678")

        identity.set_role_claim(user.pk, "admin")
        user.refresh_from_db()
        self.assertEqual(user.role, "admin")

        identity.delete_account(user.pk)
        self.assertFalse(get_user_model().objects.filter(pk=user.pk).exists())
        with self.assertRaises(Internal):
            identity.delete_account(user.pk)
        with self.assertRaises(Internal):
            identity.set_role_claim(user.pk, "admin")


class TokenClaimTests(APITestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="admin@example.org",
            email="admin@example.org",
            password="pass1234",
            role="admin",
        )

    def test_token_carries_role_claim(self):
        token = RoleClaimTokenObtainPairSerializer.get_token(self.user)

        self.assertEqual(token["role"], "admin")
        self.assertEqual(token["email"], "admin@example.org")

    def test_token_endpoint_and_claim_fallback(self):
        res = self.client.post("/api/token/", {"username": "admin@example.org", "password": "pass1234"}, format="json")
        self.assertEqual(res.status_code, 200)
        access = res.data["access"]

        # No member record yet: the claim decides, so the admin-only listing is allowed.
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        res = self.client.get("/api/members/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["count"], 0)

    def test_wrong_password_is_unauthenticated(self):
        res = self.client.post("/api/token/", {"username": "admin@example.org", "password": "nope"}, format="json")

        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.data["error"]["code"], "unauthenticated")
