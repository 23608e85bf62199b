"""API tests for progress endpoints."""

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from django_project.test_constants import TEST_PASSWORD
from questions.models import Category, Question, QuestionLevel

from .models import SolvedQuestion

User = get_user_model()


class ProgressAPITests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="solver", password=TEST_PASSWORD)
        cls.question = Question.objects.create(
            title="Climbing Stairs",
            statement="Count the ways to climb n stairs.",
            category=Category.objects.create(name="Dynamic Programming"),
            level=QuestionLevel.EASY,
        )

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        token = Token.objects.create(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")
        self.url = f"/api/v1/progress/{self.question.pk}/"

    def test_mark_solved(self):
        response = self.client.post(self.url)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["success"])
        self.assertTrue(SolvedQuestion.objects.filter(user=self.user).exists())
        self.assertTrue(self.client.get(self.url).data["solved"])

    def test_mark_solved_twice(self):
        self.client.post(self.url)
        response = self.client.post(self.url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])

    def test_mark_unknown_question(self):
        response = self.client.post("/api/v1/progress/99999/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_unmark(self):
        self.client.post(self.url)
        response = self.client.delete(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(self.client.get(self.url).data["solved"])

    def test_unmark_unsolved(self):
        response = self.client.delete(self.url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_me_stats(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.client.post(self.url)

        response = self.client.get("/api/v1/user/me/stats/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_solved"], 1)
        self.assertEqual(response.data["progress_percentage"], 100.0)
        self.assertEqual(
            response.data["recent_solved_questions"]["results"][0]["category"],
            "Dynamic Programming",
        )

    def test_me_stats_rejects_bad_paging(self):
        for query in ("?page=-1", "?size=0", "?size=101", "?page=abc"):
            response = self.client.get(f"/api/v1/user/me/stats/{query}")
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, query)

    def test_progress_map(self):
        self.client.post(self.url)
        response = self.client.get("/api/v1/user/progress/map/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(str(self.question.pk), response.data["solved_questions"])

    def test_unauthenticated(self):
        self.client.credentials()
        self.assertEqual(
            self.client.get("/api/v1/user/me/stats/").status_code,
            status.HTTP_401_UNAUTHORIZED,
        )
