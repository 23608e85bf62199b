"""Tests for solved-question tracking and the stats views."""

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone

from approaches.domain import ApproachDraft
from approaches.services import ApproachService
from django_project.test_constants import TEST_APPROACH_TEXT, TEST_PASSWORD
from questions import services as catalogue
from questions.models import QuestionLevel

from . import services
from .models import SolvedQuestion

User = get_user_model()


class ProgressServiceTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="solver", password=TEST_PASSWORD)
        cls.category = catalogue.create_category(name="Strings")
        cls.easy = catalogue.create_question(
            title="Valid Anagram", statement="s", category=cls.category, level=QuestionLevel.EASY
        )
        cls.medium = catalogue.create_question(
            title="Group Anagrams", statement="s", category=cls.category, level=QuestionLevel.MEDIUM
        )
        cls.hard = catalogue.create_question(
            title="Minimum Window Substring",
            statement="s",
            category=cls.category,
            level=QuestionLevel.HARD,
        )
        cls.extra = catalogue.create_question(
            title="Valid Palindrome", statement="s", category=cls.category, level=QuestionLevel.EASY
        )

    def setUp(self):
        cache.clear()

    def test_mark_and_unmark(self):
        services.mark_solved(self.user, self.easy)
        self.assertTrue(services.is_solved(self.user, self.easy.pk))

        services.unmark_solved(self.user, self.easy.pk)
        self.assertFalse(services.is_solved(self.user, self.easy.pk))

    def test_mark_twice(self):
        services.mark_solved(self.user, self.easy)
        with self.assertRaises(services.AlreadySolvedError):
            services.mark_solved(self.user, self.easy)
        self.assertEqual(SolvedQuestion.objects.count(), 1)

    def test_unmark_unsolved(self):
        with self.assertRaises(services.NotSolvedError):
            services.unmark_solved(self.user, self.easy.pk)

    def test_me_stats(self):
        services.mark_solved(self.user, self.easy)
        services.mark_solved(self.user, self.hard)
        old = services.mark_solved(self.user, self.medium)
        SolvedQuestion.objects.filter(pk=old.pk).update(
            solved_at=timezone.now() - timedelta(days=30)
        )

        stats = services.get_me_stats(self.user)

        self.assertEqual(stats["total_questions"], 4)
        self.assertEqual(stats["total_solved"], 3)
        self.assertEqual(stats["progress_percentage"], 75.0)
        self.assertEqual(
            stats["progress_by_level"],
            {
                "easy_total": 2,
                "easy_solved": 1,
                "medium_total": 1,
                "medium_solved": 1,
                "hard_total": 1,
                "hard_solved": 1,
            },
        )
        self.assertEqual(stats["recent_solved_count"], 2)
        recent = stats["recent_solved_questions"]
        self.assertEqual(recent["total_elements"], 3)
        self.assertEqual(recent["total_pages"], 1)
        self.assertFalse(recent["has_next"])
        self.assertEqual(recent["results"][-1]["title"], "Group Anagrams")

    def test_me_stats_paging(self):
        for question in (self.easy, self.medium, self.hard):
            services.mark_solved(self.user, question)

        stats = services.get_me_stats(self.user, page=1, size=2)

        recent = stats["recent_solved_questions"]
        self.assertEqual(len(recent["results"]), 1)
        self.assertEqual(recent["total_pages"], 2)
        self.assertFalse(recent["has_next"])
        self.assertTrue(recent["has_previous"])

    def test_me_stats_without_questions_solved(self):
        stats = services.get_me_stats(self.user)
        self.assertEqual(stats["total_solved"], 0)
        self.assertEqual(stats["progress_percentage"], 0.0)
        self.assertEqual(stats["recent_solved_questions"]["results"], [])

    def test_me_stats_refreshes_after_commit(self):
        self.assertEqual(services.get_me_stats(self.user)["total_solved"], 0)

        with self.captureOnCommitCallbacks(execute=True):
            services.mark_solved(self.user, self.easy)

        self.assertEqual(services.get_me_stats(self.user)["total_solved"], 1)

    def test_progress_map_includes_approach_counts(self):
        services.mark_solved(self.user, self.easy)
        services.mark_solved(self.user, self.medium)
        ApproachService().create(
            str(self.user.pk), "solver", str(self.easy.pk), ApproachDraft(TEST_APPROACH_TEXT)
        )

        solved = services.get_progress_map(self.user)["solved_questions"]

        self.assertEqual(set(solved), {str(self.easy.pk), str(self.medium.pk)})
        self.assertEqual(solved[str(self.easy.pk)]["approach_count"], 1)
        self.assertEqual(solved[str(self.medium.pk)]["approach_count"], 0)

    def test_question_delete_cascades_solved_rows(self):
        services.mark_solved(self.user, self.easy)
        catalogue.delete_question(self.easy)
        self.assertFalse(SolvedQuestion.objects.exists())
