"""Tests for catalogue models and services."""

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase

from django_project.test_constants import TEST_PASSWORD

from . import services
from .models import Category, Question, QuestionLevel

User = get_user_model()


class QuestionLevelTests(TestCase):
    def test_parse_is_case_insensitive(self):
        self.assertEqual(QuestionLevel.parse("EASY"), QuestionLevel.EASY)
        self.assertEqual(QuestionLevel.parse(" Medium "), QuestionLevel.MEDIUM)
        self.assertEqual(QuestionLevel.parse("hard"), QuestionLevel.HARD)

    def test_parse_rejects_unknown(self):
        with self.assertRaisesMessage(ValueError, "Invalid question level: extreme"):
            QuestionLevel.parse("extreme")


class CategoryModelTests(TestCase):
    def test_add_and_remove_question_ids(self):
        category = Category.objects.create(name="Graphs")

        category.add_question_id(1, "easy")
        category.add_question_id(1, "easy")
        category.add_question_id(2, "hard")

        self.assertEqual(category.easy_question_ids, [1])
        self.assertEqual((category.easy_count, category.hard_count), (1, 1))
        self.assertEqual(category.total_questions, 2)

        category.remove_question_id(1, "easy")
        category.remove_question_id(99, "medium")
        self.assertEqual(category.easy_question_ids, [])
        self.assertEqual(category.total_questions, 1)


class CatalogueServiceTestBase(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_user(
            username="admin", password=TEST_PASSWORD, role=User.Role.ADMIN
        )
        cls.arrays = services.create_category(name="Arrays", created_by=cls.admin)
        cls.trees = services.create_category(name="Trees", created_by=cls.admin)

    def setUp(self):
        cache.clear()

    def make_question(self, title, category=None, level=QuestionLevel.EASY, **kwargs):
        return services.create_question(
            title=title,
            statement=f"Statement for {title}",
            category=category or self.arrays,
            level=level,
            created_by=self.admin,
            **kwargs,
        )

    def reload(self, category):
        return Category.objects.get(pk=category.pk)


class CategoryServiceTests(CatalogueServiceTestBase):
    def test_create_category_appends_display_order(self):
        self.assertEqual(self.arrays.display_order, 1)
        self.assertEqual(self.trees.display_order, 2)
        self.assertEqual(services.create_category(name="Heaps").display_order, 3)

    def test_category_name_taken_is_case_insensitive(self):
        self.assertTrue(services.category_name_taken("arrays"))
        self.assertTrue(services.category_name_taken(" ARRAYS "))
        self.assertFalse(services.category_name_taken("arrays", exclude_id=self.arrays.pk))
        self.assertFalse(services.category_name_taken("Strings"))

    def test_batch_update_category_order_accepts_string_keys(self):
        categories = services.batch_update_category_order(
            {str(self.arrays.pk): 5, self.trees.pk: 1, "99999": 3}
        )

        self.assertEqual([c.name for c in categories], ["Trees", "Arrays"])
        self.assertEqual(self.reload(self.arrays).display_order, 5)

    def test_delete_category_removes_questions(self):
        self.make_question("Two Sum")
        self.make_question("Three Sum", level=QuestionLevel.MEDIUM)

        result = services.delete_category(self.arrays)

        self.assertEqual(result, {"category_name": "Arrays", "deleted_questions": 2})
        self.assertFalse(Question.objects.exists())

    def test_global_categories_info(self):
        question = self.make_question("Two Sum")

        info = services.get_global_categories_info()["categories"]

        self.assertEqual(list(info), [str(self.arrays.pk), str(self.trees.pk)])
        self.assertEqual(info[str(self.arrays.pk)]["easy_question_ids"], [question.pk])
        self.assertEqual(info[str(self.arrays.pk)]["total_questions"], 1)

    def test_global_categories_info_refreshes_after_commit(self):
        services.get_global_categories_info()

        self.make_question("Uncommitted")
        cached = services.get_global_categories_info()["categories"]
        self.assertEqual(cached[str(self.arrays.pk)]["total_questions"], 0)

        with self.captureOnCommitCallbacks(execute=True):
            self.make_question("Committed")
        fresh = services.get_global_categories_info()["categories"]
        self.assertEqual(fresh[str(self.arrays.pk)]["total_questions"], 2)

    def test_admin_categories_keyed_by_name(self):
        categories = services.get_admin_categories()
        self.assertEqual(list(categories), ["Arrays", "Trees"])
        self.assertEqual(categories["Arrays"]["created_by_name"], "admin")


class QuestionServiceTests(CatalogueServiceTestBase):
    def test_create_question_registers_id(self):
        first = self.make_question("Two Sum")
        second = self.make_question("Contains Duplicate")

        self.assertEqual((first.display_order, second.display_order), (1, 2))
        arrays = self.reload(self.arrays)
        self.assertEqual(arrays.easy_question_ids, [first.pk, second.pk])
        self.assertEqual(arrays.easy_count, 2)

    def test_display_order_is_per_category_level(self):
        self.make_question("Two Sum")
        hard = self.make_question("Trapping Rain Water", level=QuestionLevel.HARD)
        self.assertEqual(hard.display_order, 1)

    def test_update_question_moves_level(self):
        question = self.make_question("Two Sum")

        services.update_question(question, level=QuestionLevel.MEDIUM)

        arrays = self.reload(self.arrays)
        self.assertEqual(arrays.easy_question_ids, [])
        self.assertEqual(arrays.medium_question_ids, [question.pk])
        self.assertEqual(arrays.total_questions, 1)

    def test_update_question_moves_category(self):
        question = self.make_question("Invert Tree")

        services.update_question(question, category=self.trees, title=" Invert Binary Tree ")

        self.assertEqual(self.reload(self.arrays).total_questions, 0)
        self.assertEqual(self.reload(self.trees).easy_question_ids, [question.pk])
        question.refresh_from_db()
        self.assertEqual(question.title, "Invert Binary Tree")

    def test_update_question_without_move_keeps_lists(self):
        question = self.make_question("Two Sum")
        services.update_question(question, statement="New statement")
        self.assertEqual(self.reload(self.arrays).easy_question_ids, [question.pk])

    def test_delete_question(self):
        question = self.make_question("Two Sum")
        keeper = self.make_question("Contains Duplicate")

        services.delete_question(question)

        self.assertEqual(self.reload(self.arrays).easy_question_ids, [keeper.pk])
        self.assertFalse(Question.objects.filter(title="Two Sum").exists())

    def test_lookup_question(self):
        question = self.make_question("Two Sum")
        self.assertEqual(services.lookup_question(str(question.pk)), question)
        self.assertIsNone(services.lookup_question("99999"))
        self.assertIsNone(services.lookup_question("not-a-number"))

    def test_filter_questions(self):
        self.make_question("Two Sum")
        self.make_question("Trapping Rain Water", level=QuestionLevel.HARD)
        self.make_question("Same Tree", category=self.trees)

        self.assertEqual(services.filter_questions(category_id=self.trees.pk).count(), 1)
        self.assertEqual(services.filter_questions(level="HARD").count(), 1)
        self.assertEqual(services.search_questions("rain").count(), 1)
        self.assertEqual(
            services.filter_questions(search="statement", category_id=self.arrays.pk).count(), 2
        )
        with self.assertRaises(ValueError):
            services.filter_questions(level="extreme")

    def test_question_counts(self):
        self.make_question("Two Sum")
        self.make_question("Trapping Rain Water", level=QuestionLevel.HARD)
        self.make_question("Same Tree", category=self.trees)

        counts = services.get_question_counts()

        self.assertEqual(counts["total"], 3)
        self.assertEqual(counts["by_level"], {"easy": 2, "medium": 0, "hard": 1})
        self.assertEqual(counts["by_category"][str(self.trees.pk)], {"name": "Trees", "count": 1})

    def test_questions_metadata(self):
        question = self.make_question("Two Sum")
        metadata = services.get_questions_metadata()["questions"]
        self.assertEqual(
            metadata[str(question.pk)],
            {"id": question.pk, "title": "Two Sum", "level": "easy", "category_name": "Arrays"},
        )

    def test_admin_questions_summary_pages(self):
        for i in range(3):
            self.make_question(f"Question {i}", code_snippets=[{"language": "java", "code": "x"}])

        summary = services.get_admin_questions_summary(page=1, size=2)

        self.assertEqual(summary["count"], 3)
        self.assertEqual(len(summary["results"]), 1)
        self.assertTrue(summary["results"][0]["has_code_snippets"])
        self.assertEqual(summary["results"][0]["created_by_name"], "admin")


class DisplayOrderServiceTests(CatalogueServiceTestBase):
    def setUp(self):
        super().setUp()
        self.a = self.make_question("A", display_order=5)
        self.b = self.make_question("B", display_order=2)
        self.c = self.make_question("C")
        Question.objects.filter(pk=self.c.pk).update(display_order=None)

    def test_questions_for_ordering_puts_unordered_last(self):
        ordered = services.questions_for_ordering(self.arrays.pk, "EASY")
        self.assertEqual([q["title"] for q in ordered], ["B", "A", "C"])
        self.assertIsNone(ordered[-1]["display_order"])

    def test_reset_display_order(self):
        count = services.reset_display_order(self.arrays.pk, "easy")

        self.assertEqual(count, 3)
        ordered = services.questions_for_ordering(self.arrays.pk, "easy")
        self.assertEqual(
            [(q["title"], q["display_order"]) for q in ordered],
            [("B", 1), ("A", 2), ("C", 3)],
        )
        self.assertEqual(
            self.reload(self.arrays).easy_question_ids, [self.b.pk, self.a.pk, self.c.pk]
        )

    def test_reset_empty_level(self):
        self.assertEqual(services.reset_display_order(self.trees.pk, "hard"), 0)

    def test_update_single_display_order_resyncs_list(self):
        services.update_question_display_order(self.a, 1)
        self.assertEqual(self.reload(self.arrays).easy_question_ids[0], self.a.pk)

    def test_batch_update_skips_unknown_ids(self):
        updated = services.batch_update_question_display_order(
            [
                {"question_id": self.c.pk, "display_order": 1},
                {"question_id": 99999, "display_order": 2},
            ]
        )

        self.assertEqual(updated, 1)
        self.assertEqual(self.reload(self.arrays).easy_question_ids[0], self.c.pk)
