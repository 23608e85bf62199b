"""API tests for account management endpoints."""

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from django_project.test_constants import TEST_PASSWORD, TEST_WRONG_PASSWORD

User = get_user_model()


class UserProfileAPITests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(
            username="testuser",
            email="test@example.com",
            password=TEST_PASSWORD,
            first_name="Test",
            last_name="User",
        )
        cls.other_user = User.objects.create_user(
            username="otheruser",
            email="other@example.com",
            password=TEST_PASSWORD,
        )

    def setUp(self):
        self.client = APIClient()
        self.token = Token.objects.create(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {self.token.key}")

    def test_get_profile(self):
        response = self.client.get("/api/v1/account/profile/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["id"], self.user.pk)
        self.assertEqual(response.data["email"], "test@example.com")
        self.assertEqual(response.data["display_name"], "Test User")
        self.assertEqual(response.data["role"], User.Role.USER)

    def test_get_profile_unauthenticated(self):
        self.client.credentials()
        response = self.client.get("/api/v1/account/profile/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_update_first_name(self):
        response = self.client.patch(
            "/api/v1/account/profile/",
            {"first_name": "Updated"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["first_name"], "Updated")
        self.user.refresh_from_db()
        self.assertEqual(self.user.first_name, "Updated")

    def test_update_email_duplicate(self):
        response = self.client.patch(
            "/api/v1/account/profile/",
            {"email": "other@example.com"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("email", response.data)

    def test_role_is_read_only(self):
        response = self.client.patch(
            "/api/v1/account/profile/",
            {"role": User.Role.ADMIN},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, User.Role.USER)


class AuthTokenAPITests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(
            username="tokenuser",
            email="token@example.com",
            password=TEST_PASSWORD,
        )

    def test_obtain_token(self):
        response = APIClient().post(
            "/api/v1/auth/token/",
            {"username": "tokenuser", "password": TEST_PASSWORD},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["token"], Token.objects.get(user=self.user).key)

    def test_obtain_token_wrong_password(self):
        response = APIClient().post(
            "/api/v1/auth/token/",
            {"username": "tokenuser", "password": TEST_WRONG_PASSWORD},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class RoleTests(TestCase):
    def test_display_name_falls_back_to_username(self):
        user = User.objects.create_user(username="plain", password=TEST_PASSWORD)
        self.assertEqual(user.display_name, "plain")

    def test_catalogue_admin_roles(self):
        user = User.objects.create_user(username="u", password=TEST_PASSWORD)
        admin = User.objects.create_user(
            username="a", password=TEST_PASSWORD, role=User.Role.ADMIN
        )
        superadmin = User.objects.create_user(
            username="s", password=TEST_PASSWORD, role=User.Role.SUPERADMIN
        )
        self.assertFalse(user.is_catalogue_admin)
        self.assertTrue(admin.is_catalogue_admin)
        self.assertTrue(superadmin.is_catalogue_admin)
