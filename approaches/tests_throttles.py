"""Rate limiting tests for the approach endpoints."""

from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from django_project.test_constants import TEST_APPROACH_TEXT, TEST_PASSWORD
from django_project.throttles import ApproachReadThrottle, ApproachWriteThrottle
from questions.models import Category, Question, QuestionLevel

User = get_user_model()


class ApproachThrottleTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="throttled", password=TEST_PASSWORD)
        cls.question = Question.objects.create(
            title="Throttled Question",
            statement="Statement",
            category=Category.objects.create(name="Throttling"),
            level=QuestionLevel.EASY,
        )

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        token = Token.objects.create(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")
        self.url = f"/api/v1/approaches/question/{self.question.pk}/"

    def tearDown(self):
        cache.clear()

    def test_write_throttle(self):
        with patch.object(ApproachWriteThrottle, "rate", "2/min", create=True):
            for _ in range(2):
                response = self.client.post(
                    self.url, {"text_content": TEST_APPROACH_TEXT}, format="json"
                )
                self.assertEqual(response.status_code, status.HTTP_201_CREATED)

            response = self.client.post(
                self.url, {"text_content": TEST_APPROACH_TEXT}, format="json"
            )
            self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)

            # Reads use their own bucket
            self.assertEqual(self.client.get(self.url).status_code, status.HTTP_200_OK)

    def test_read_throttle(self):
        with patch.object(ApproachReadThrottle, "rate", "2/min", create=True):
            self.assertEqual(self.client.get(self.url).status_code, status.HTTP_200_OK)
            self.assertEqual(
                self.client.get(f"{self.url}usage/").status_code, status.HTTP_200_OK
            )
            self.assertEqual(
                self.client.get(self.url).status_code,
                status.HTTP_429_TOO_MANY_REQUESTS,
            )

    def test_scopes(self):
        self.assertEqual(ApproachReadThrottle.scope, "approach_read")
        self.assertEqual(ApproachWriteThrottle.scope, "approach_write")
