"""Tests for the admin dashboard."""

from datetime import timedelta
from unittest.mock import patch

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from approaches.domain import ApproachDraft
from approaches.services import ApproachService
from django_project.test_constants import TEST_APPROACH_TEXT, TEST_PASSWORD
from questions import services as catalogue
from questions.models import Question, QuestionLevel

from .services import check_system_health, get_admin_overview

User = get_user_model()


class DashboardTestBase(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_user(
            username="admin", password=TEST_PASSWORD, role=User.Role.ADMIN
        )
        cls.user = User.objects.create_user(username="member", password=TEST_PASSWORD)
        cls.category = catalogue.create_category(name="Intervals")
        cls.question = catalogue.create_question(
            title="Merge Intervals",
            statement="Merge all overlapping intervals.",
            category=cls.category,
            level=QuestionLevel.MEDIUM,
            created_by=cls.admin,
        )

    def setUp(self):
        cache.clear()
        self.draft = ApproachDraft(TEST_APPROACH_TEXT)


class AdminOverviewServiceTests(DashboardTestBase):
    def test_totals(self):
        service = ApproachService()
        for _ in range(2):
            service.create(str(self.user.pk), "member", str(self.question.pk), self.draft)
        service.create(str(self.admin.pk), "admin", str(self.question.pk), self.draft)

        overview = get_admin_overview()

        self.assertEqual(overview["total_users"], 2)
        self.assertEqual(overview["total_categories"], 1)
        self.assertEqual(overview["total_questions"], 1)
        self.assertEqual(overview["total_user_approaches"], 3)
        self.assertEqual(overview["questions_in_window"], 1)
        self.assertEqual(overview["new_users_in_window"], 2)
        self.assertTrue(overview["system_health"]["database_connected"])

    def test_no_approaches(self):
        self.assertEqual(get_admin_overview()["total_user_approaches"], 0)

    def test_window_excludes_older_rows(self):
        Question.objects.filter(pk=self.question.pk).update(
            created_at=timezone.now() - timedelta(days=30)
        )
        overview = get_admin_overview()
        self.assertEqual(overview["questions_in_window"], 0)
        self.assertEqual(overview["total_questions"], 1)

    def test_users_logged_in_today(self):
        User.objects.filter(pk=self.user.pk).update(last_login=timezone.now())
        self.assertEqual(get_admin_overview()["users_logged_in_today"], 1)

    def test_health_reports_database_errors(self):
        with patch("dashboard.services.connection") as connection:
            connection.cursor.side_effect = DatabaseError("down")
            health = check_system_health()
        self.assertFalse(health["database_connected"])
        self.assertEqual(health["database_status"], "Error: down")
        self.assertEqual(health["app_version"], settings.APP_VERSION)


class AdminDashboardAPITests(DashboardTestBase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        token = Token.objects.create(user=self.admin)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")

    def test_overview(self):
        response = self.client.get("/api/v1/admin/overview/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_questions"], 1)

    def test_overview_with_window(self):
        response = self.client.get(
            "/api/v1/admin/overview/",
            {"start": "2020-01-01T00:00:00", "end": "2020-01-31T00:00:00"},
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["questions_in_window"], 0)

    def test_overview_rejects_inverted_window(self):
        response = self.client.get(
            "/api/v1/admin/overview/",
            {"start": "2020-02-01T00:00:00", "end": "2020-01-01T00:00:00"},
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_overview_rejects_bad_datetime(self):
        response = self.client.get("/api/v1/admin/overview/", {"start": "yesterday"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_regular_user_forbidden(self):
        token = Token.objects.create(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")
        self.assertEqual(
            self.client.get("/api/v1/admin/overview/").status_code,
            status.HTTP_403_FORBIDDEN,
        )
        self.assertEqual(
            self.client.get("/api/v1/admin/questions/summary/").status_code,
            status.HTTP_403_FORBIDDEN,
        )

    def test_question_summary(self):
        response = self.client.get("/api/v1/admin/questions/summary/", {"size": 500})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["size"], 100)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["title"], "Merge Intervals")

    def test_question_summary_bad_paging(self):
        response = self.client.get("/api/v1/admin/questions/summary/", {"page": "x"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
