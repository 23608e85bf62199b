"""API tests for categories, questions and the display-order tools."""

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from django_project.test_constants import TEST_PASSWORD

from . import services
from .models import Category, Question, QuestionLevel

User = get_user_model()


class CatalogueAPITestBase(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="reader", password=TEST_PASSWORD)
        cls.admin = User.objects.create_user(
            username="editor",
            password=TEST_PASSWORD,
            first_name="Ada",
            last_name="Admin",
            role=User.Role.ADMIN,
        )
        cls.category = services.create_category(name="Arrays", created_by=cls.admin)
        cls.question = services.create_question(
            title="Two Sum",
            statement="Find two numbers that add up to a target.",
            category=cls.category,
            level=QuestionLevel.EASY,
            created_by=cls.admin,
        )

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.as_user(self.user)

    def as_user(self, user):
        token, _ = Token.objects.get_or_create(user=user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")


class CategoryAPITests(CatalogueAPITestBase):
    def test_list_is_keyed_by_name(self):
        response = self.client.get("/api/v1/categories/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["Arrays"]["easy_question_ids"], [self.question.pk])

    def test_retrieve(self):
        response = self.client.get(f"/api/v1/categories/{self.category.pk}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["created_by_name"], "Ada Admin")

    def test_user_cannot_create(self):
        response = self.client.post("/api/v1/categories/", {"name": "Trees"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated_cannot_read(self):
        self.client.credentials()
        response = self.client.get("/api/v1/categories/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_create(self):
        self.as_user(self.admin)
        response = self.client.post("/api/v1/categories/", {"name": " Trees "}, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["name"], "Trees")
        self.assertEqual(response.data["display_order"], 2)

    def test_admin_create_duplicate_name(self):
        self.as_user(self.admin)
        response = self.client.post("/api/v1/categories/", {"name": "ARRAYS"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("name", response.data)

    def test_admin_rename(self):
        self.as_user(self.admin)
        response = self.client.put(
            f"/api/v1/categories/{self.category.pk}/", {"name": "Arrays & Hashing"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["name"], "Arrays & Hashing")

    def test_admin_delete(self):
        self.as_user(self.admin)
        response = self.client.delete(f"/api/v1/categories/{self.category.pk}/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["success"])
        self.assertEqual(response.data["category_name"], "Arrays")
        self.assertEqual(response.data["deleted_questions"], 1)
        self.assertFalse(Category.objects.exists())

    def test_admin_display_order(self):
        other = services.create_category(name="Trees")
        self.as_user(self.admin)

        response = self.client.put(
            "/api/v1/categories/display-order/",
            {"orders": {str(self.category.pk): 2, str(other.pk): 1}},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c["name"] for c in response.data], ["Trees", "Arrays"])

    def test_global_categories_info(self):
        response = self.client.get("/api/v1/user/categories/info/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        info = response.data["categories"][str(self.category.pk)]
        self.assertEqual(info["easy_count"], 1)


class QuestionAPITests(CatalogueAPITestBase):
    def question_payload(self, **overrides):
        payload = {
            "title": "Best Time to Buy and Sell Stock",
            "statement": "Maximize profit from one transaction.",
            "category": self.category.pk,
            "level": "MEDIUM",
            "image_urls": ["https://example.com/chart.png"],
            "code_snippets": [{"language": "java", "code": "class Solution {}"}],
        }
        payload.update(overrides)
        return payload

    def test_list_is_paginated(self):
        response = self.client.get("/api/v1/questions/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["category_name"], "Arrays")
        self.assertNotIn("statement", response.data["results"][0])

    def test_list_filters(self):
        self.assertEqual(self.client.get("/api/v1/questions/?level=hard").data["count"], 0)
        self.assertEqual(self.client.get("/api/v1/questions/?level=Easy").data["count"], 1)
        self.assertEqual(self.client.get("/api/v1/questions/?search=two").data["count"], 1)

    def test_list_invalid_level(self):
        response = self.client.get("/api/v1/questions/?level=extreme")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_retrieve(self):
        response = self.client.get(f"/api/v1/questions/{self.question.pk}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["statement"], "Find two numbers that add up to a target.")
        self.assertEqual(response.data["created_by_name"], "Ada Admin")

    def test_retrieve_missing(self):
        response = self.client.get("/api/v1/questions/99999/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_user_cannot_create(self):
        response = self.client.post("/api/v1/questions/", self.question_payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_create(self):
        self.as_user(self.admin)

        response = self.client.post("/api/v1/questions/", self.question_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["level"], "medium")
        self.assertEqual(response.data["display_order"], 1)
        self.assertEqual(response.data["code_snippets"][0]["language"], "java")
        self.category.refresh_from_db()
        self.assertEqual(self.category.medium_question_ids, [response.data["id"]])

    def test_admin_create_duplicate_title(self):
        self.as_user(self.admin)
        response = self.client.post(
            "/api/v1/questions/", self.question_payload(title="two sum"), format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("title", response.data)

    def test_admin_create_invalid_level(self):
        self.as_user(self.admin)
        response = self.client.post(
            "/api/v1/questions/", self.question_payload(level="extreme"), format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("level", response.data)

    def test_admin_update_moves_level(self):
        self.as_user(self.admin)

        response = self.client.put(
            f"/api/v1/questions/{self.question.pk}/", {"level": "hard"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.category.refresh_from_db()
        self.assertEqual(self.category.easy_question_ids, [])
        self.assertEqual(self.category.hard_question_ids, [self.question.pk])

    def test_admin_delete(self):
        self.as_user(self.admin)
        response = self.client.delete(f"/api/v1/questions/{self.question.pk}/")

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.category.refresh_from_db()
        self.assertEqual(self.category.total_questions, 0)

    def test_search_requires_term(self):
        response = self.client.get("/api/v1/questions/search/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search(self):
        response = self.client.get("/api/v1/questions/search/?q=target")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([q["title"] for q in response.data], ["Two Sum"])

    def test_stats(self):
        response = self.client.get("/api/v1/questions/stats/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total"], 1)
        self.assertEqual(response.data["by_level"]["easy"], 1)

    def test_metadata(self):
        response = self.client.get("/api/v1/questions/metadata/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["questions"][str(self.question.pk)]["title"], "Two Sum")


class DisplayOrderAPITests(CatalogueAPITestBase):
    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.second = services.create_question(
            title="Contains Duplicate",
            statement="Detect duplicates.",
            category=cls.category,
            level=QuestionLevel.EASY,
        )

    def setUp(self):
        super().setUp()
        self.as_user(self.admin)

    def test_regular_user_forbidden(self):
        self.as_user(self.user)
        response = self.client.get(
            "/api/v1/admin/questions/by-category-level/",
            {"category_id": self.category.pk, "level": "easy"},
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_by_category_level(self):
        response = self.client.get(
            "/api/v1/admin/questions/by-category-level/",
            {"category_id": self.category.pk, "level": "EASY"},
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)
        self.assertEqual(
            [q["title"] for q in response.data["questions"]], ["Two Sum", "Contains Duplicate"]
        )

    def test_by_category_level_requires_params(self):
        response = self.client.get("/api/v1/admin/questions/by-category-level/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_one(self):
        response = self.client.put(
            f"/api/v1/admin/questions/{self.second.pk}/display-order/",
            {"display_order": 1},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["display_order"], 1)

    def test_update_one_rejects_zero(self):
        response = self.client.put(
            f"/api/v1/admin/questions/{self.second.pk}/display-order/",
            {"display_order": 0},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_batch(self):
        response = self.client.put(
            "/api/v1/admin/questions/display-order/batch/",
            {
                "updates": [
                    {"question_id": self.question.pk, "display_order": 2},
                    {"question_id": self.second.pk, "display_order": 1},
                ]
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["updated_count"], 2)
        self.category.refresh_from_db()
        self.assertEqual(self.category.easy_question_ids, [self.second.pk, self.question.pk])

    def test_batch_rejects_empty(self):
        response = self.client.put(
            "/api/v1/admin/questions/display-order/batch/", {"updates": []}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reset(self):
        Question.objects.filter(pk=self.question.pk).update(display_order=7)

        response = self.client.post(
            "/api/v1/admin/questions/display-order/reset/",
            {"category_id": self.category.pk, "level": "easy"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["reset_count"], 2)
        orders = dict(Question.objects.values_list("title", "display_order"))
        self.assertEqual(orders, {"Contains Duplicate": 1, "Two Sum": 2})
