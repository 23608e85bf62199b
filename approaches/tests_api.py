"""API tests for the nested approach endpoints."""

from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from django_project.test_constants import TEST_APPROACH_TEXT, TEST_PASSWORD
from questions.models import Category, Question, QuestionLevel

from .models import UserApproaches
from .repository import ConcurrentUpdateError
from .services import ApproachService

User = get_user_model()


class ApproachAPITestBase(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(
            username="alice",
            email="alice@example.com",
            password=TEST_PASSWORD,
            first_name="Alice",
            last_name="Smith",
        )
        cls.other_user = User.objects.create_user(
            username="bob",
            email="bob@example.com",
            password=TEST_PASSWORD,
        )
        cls.category = Category.objects.create(name="Arrays")
        cls.question = Question.objects.create(
            title="Two Sum",
            statement="Find two numbers that add up to a target.",
            category=cls.category,
            level=QuestionLevel.EASY,
        )
        cls.other_question = Question.objects.create(
            title="Three Sum",
            statement="Find three numbers that add up to zero.",
            category=cls.category,
            level=QuestionLevel.MEDIUM,
        )

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.token = Token.objects.create(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {self.token.key}")

    def list_url(self, question=None):
        question = question or self.question
        return f"/api/v1/approaches/question/{question.pk}/"

    def detail_url(self, approach_id, question=None):
        return f"{self.list_url(question)}{approach_id}/"

    def create_approach(self, question=None, **payload):
        payload.setdefault("text_content", TEST_APPROACH_TEXT)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.list_url(question), payload, format="json")
        return response


class ApproachCreateAPITests(ApproachAPITestBase):
    def test_create(self):
        response = self.create_approach(code_content="return []", code_language="Python")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["success"])
        self.assertEqual(response.data["message"], "Approach created successfully")
        data = response.data["data"]
        self.assertEqual(data["question_id"], str(self.question.pk))
        self.assertEqual(data["question_title"], "Two Sum")
        self.assertEqual(data["code_language"], "python")
        self.assertEqual(data["user_id"], str(self.user.pk))
        self.assertEqual(data["user_name"], "Alice Smith")
        self.assertEqual(
            data["content_size"], len(TEST_APPROACH_TEXT.encode()) + len("return []")
        )

        row = UserApproaches.objects.get(user=self.user)
        self.assertEqual(row.total_approaches, 1)
        self.assertEqual(row.display_name, "Alice Smith")

    def test_create_defaults_language(self):
        response = self.create_approach(code_language="")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["data"]["code_language"], "java")

    def test_create_short_text_rejected(self):
        response = self.create_approach(text_content="   short   ")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("text_content", response.data)
        self.assertFalse(UserApproaches.objects.exists())

    def test_create_unknown_question(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                "/api/v1/approaches/question/99999/",
                {"text_content": TEST_APPROACH_TEXT},
                format="json",
            )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data["success"])

    def test_slot_limit(self):
        for _ in range(3):
            self.assertEqual(self.create_approach().status_code, status.HTTP_201_CREATED)

        response = self.create_approach()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])
        self.assertEqual(response.data["quota"]["kind"], "slot_limit")
        self.assertEqual(response.data["quota"]["remaining_slots"], 0)
        self.assertEqual(UserApproaches.objects.get(user=self.user).total_approaches, 3)

    def test_size_limit(self):
        self.create_approach(text_content="a" * 7500)
        self.create_approach(text_content="b" * 7500)

        response = self.create_approach(text_content="c" * 500)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        quota = response.data["quota"]
        self.assertEqual(quota["kind"], "size_limit")
        self.assertEqual(quota["remaining_bytes"], 360)
        self.assertEqual(quota["attempted_bytes"], 500)
        self.assertIn("0.35KB", response.data["error"])

    def test_zero_padded_id_shares_quota(self):
        padded_url = f"/api/v1/approaches/question/0{self.question.pk}/"
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                padded_url, {"text_content": TEST_APPROACH_TEXT}, format="json"
            )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["data"]["question_id"], str(self.question.pk))

        self.create_approach()
        self.create_approach()

        response = self.client.post(
            f"/api/v1/approaches/question/00{self.question.pk}/",
            {"text_content": TEST_APPROACH_TEXT},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["quota"]["kind"], "slot_limit")
        row = UserApproaches.objects.get(user=self.user)
        self.assertEqual(list(row.approaches), [str(self.question.pk)])
        self.assertEqual(row.total_approaches, 3)
        self.assertEqual(self.client.get(padded_url).data["count"], 3)

    def test_zero_padded_id_purged_with_question(self):
        padded_url = f"/api/v1/approaches/question/00{self.question.pk}/"
        with self.captureOnCommitCallbacks(execute=True):
            self.client.post(padded_url, {"text_content": TEST_APPROACH_TEXT}, format="json")

        with self.captureOnCommitCallbacks(execute=True):
            self.question.delete()

        self.assertFalse(UserApproaches.objects.filter(user=self.user).exists())

    def test_non_numeric_question_id(self):
        response = self.client.post(
            "/api/v1/approaches/question/abc/",
            {"text_content": TEST_APPROACH_TEXT},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_concurrent_write_returns_conflict(self):
        with patch.object(
            ApproachService, "create", side_effect=ConcurrentUpdateError("stale")
        ):
            response = self.client.post(
                self.list_url(), {"text_content": TEST_APPROACH_TEXT}, format="json"
            )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data["success"])

    def test_unauthenticated(self):
        self.client.credentials()
        response = self.client.post(
            self.list_url(), {"text_content": TEST_APPROACH_TEXT}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ApproachReadAPITests(ApproachAPITestBase):
    def test_list_returns_metadata_only(self):
        self.create_approach()
        self.create_approach(question=self.other_question)

        response = self.client.get(self.list_url())

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        item = response.data["data"][0]
        self.assertNotIn("text_content", item)
        self.assertNotIn("code_content", item)
        self.assertEqual(item["question_title"], "Two Sum")

    def test_list_is_cached_until_invalidated(self):
        self.assertEqual(self.client.get(self.list_url()).data["count"], 0)

        # Without the commit callbacks the region is never bumped
        self.client.post(self.list_url(), {"text_content": TEST_APPROACH_TEXT}, format="json")
        self.assertEqual(self.client.get(self.list_url()).data["count"], 0)

        self.create_approach()
        self.assertEqual(self.client.get(self.list_url()).data["count"], 2)

    def test_retrieve(self):
        approach_id = self.create_approach().data["data"]["id"]

        response = self.client.get(self.detail_url(approach_id))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["text_content"], TEST_APPROACH_TEXT)
        self.assertEqual(response.data["data"]["user_name"], "Alice Smith")

    def test_retrieve_under_wrong_question(self):
        approach_id = self.create_approach().data["data"]["id"]
        response = self.client.get(self.detail_url(approach_id, self.other_question))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_other_user_cannot_read(self):
        approach_id = self.create_approach().data["data"]["id"]
        other_token = Token.objects.create(user=self.other_user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {other_token.key}")

        self.assertEqual(
            self.client.get(self.detail_url(approach_id)).status_code,
            status.HTTP_404_NOT_FOUND,
        )
        self.assertEqual(self.client.get(self.list_url()).data["count"], 0)

    def test_usage(self):
        self.create_approach(text_content="x" * 1024)

        response = self.client.get(f"{self.list_url()}usage/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data["data"]
        self.assertEqual(data["used_bytes"], 1024)
        self.assertEqual(data["used_kb"], 1.0)
        self.assertEqual(data["remaining_bytes"], 15 * 1024 - 1024)
        self.assertEqual(data["approach_count"], 1)
        self.assertEqual(data["remaining_slots"], 2)

    def test_usage_without_approaches(self):
        response = self.client.get(f"{self.list_url()}usage/")
        self.assertEqual(response.data["data"]["remaining_bytes"], 15 * 1024)
        self.assertEqual(response.data["data"]["remaining_slots"], 3)

    def test_mine(self):
        self.create_approach()
        self.create_approach(question=self.other_question)

        response = self.client.get("/api/v1/approaches/mine/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)
        # Newest first
        self.assertEqual(response.data["data"][0]["question_title"], "Three Sum")


class ApproachWriteAPITests(ApproachAPITestBase):
    def test_update(self):
        approach_id = self.create_approach().data["data"]["id"]

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.put(
                self.detail_url(approach_id),
                {"code_content": "int x = 1;"},
                format="json",
            )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["message"], "Approach updated successfully")
        data = response.data["data"]
        self.assertEqual(data["text_content"], TEST_APPROACH_TEXT)
        self.assertEqual(data["code_content"], "int x = 1;")
        self.assertEqual(
            data["content_size"], len(TEST_APPROACH_TEXT.encode()) + len("int x = 1;")
        )

    def test_update_over_limit(self):
        approach_id = self.create_approach().data["data"]["id"]

        response = self.client.put(
            self.detail_url(approach_id), {"text_content": "z" * 20000}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["quota"]["kind"], "size_limit")
        self.assertIn("Available", response.data["error"])
        stored = self.client.get(self.detail_url(approach_id)).data["data"]
        self.assertEqual(stored["text_content"], TEST_APPROACH_TEXT)

    def test_update_missing(self):
        response = self.client.put(
            self.detail_url("missing"), {"text_content": TEST_APPROACH_TEXT}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete(self):
        approach_id = self.create_approach().data["data"]["id"]

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.delete(self.detail_url(approach_id))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["message"], "Approach deleted successfully")
        self.assertFalse(UserApproaches.objects.filter(user=self.user).exists())
        self.assertEqual(self.client.get(self.list_url()).data["count"], 0)

    def test_delete_missing(self):
        self.create_approach()
        response = self.client.delete(self.detail_url("missing"))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data["success"])

    def test_delete_under_wrong_question(self):
        approach_id = self.create_approach().data["data"]["id"]
        response = self.client.delete(self.detail_url(approach_id, self.other_question))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(UserApproaches.objects.get(user=self.user).total_approaches, 1)
