"""Tests for the approach purge task and its question-delete trigger."""

from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase

from django_project.test_constants import TEST_PASSWORD
from questions.models import Category, Question, QuestionLevel

from .domain import ApproachDraft
from .models import UserApproaches
from .repository import ConcurrentUpdateError, DjangoApproachRepository
from .services import ApproachService
from .tasks import purge_question_approaches

User = get_user_model()

TEXT = "Binary search over the answer space."


class PurgeQuestionApproachesTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.alice = User.objects.create_user(username="alice", password=TEST_PASSWORD)
        cls.bob = User.objects.create_user(username="bob", password=TEST_PASSWORD)
        cls.category = Category.objects.create(name="Search")
        cls.question = Question.objects.create(
            title="Koko Eating Bananas",
            statement="Statement",
            category=cls.category,
            level=QuestionLevel.MEDIUM,
        )
        cls.keeper = Question.objects.create(
            title="Search Insert Position",
            statement="Statement",
            category=cls.category,
            level=QuestionLevel.EASY,
        )

    def setUp(self):
        self.service = ApproachService()
        for user in (self.alice, self.bob):
            self.service.create(
                str(user.pk), user.username, str(self.question.pk), ApproachDraft(TEXT)
            )
        self.service.create(
            str(self.alice.pk), "alice", str(self.keeper.pk), ApproachDraft(TEXT)
        )

    def counts(self, user):
        return self.service.approach_counts(str(user.pk))

    def test_task_removes_question_for_every_user(self):
        removed = purge_question_approaches.delay(str(self.question.pk)).get()

        self.assertEqual(removed, 2)
        self.assertEqual(self.counts(self.alice), {str(self.keeper.pk): 1})
        # Bob had nothing else, so his document is gone
        self.assertFalse(UserApproaches.objects.filter(user=self.bob).exists())

    def test_task_is_idempotent(self):
        purge_question_approaches.delay(str(self.question.pk))
        self.assertEqual(purge_question_approaches.delay(str(self.question.pk)).get(), 0)

    def test_question_delete_triggers_purge_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.question.delete()

        self.assertEqual(self.counts(self.alice), {str(self.keeper.pk): 1})
        self.assertEqual(self.counts(self.bob), {})

    def test_category_delete_purges_each_question(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.category.delete()

        self.assertFalse(UserApproaches.objects.exists())

    def test_purge_waits_for_commit(self):
        question_id = str(self.question.pk)
        with patch("approaches.signals.purge_question_approaches.delay") as delay:
            with self.captureOnCommitCallbacks() as callbacks:
                self.question.delete()
            delay.assert_not_called()

            for callback in callbacks:
                callback()
        delay.assert_called_once_with(question_id)

    def test_task_retries_on_conflict(self):
        self.assertIn(ConcurrentUpdateError, purge_question_approaches.autoretry_for)
        self.assertEqual(purge_question_approaches.max_retries, 3)

    def test_repository_sees_no_stale_question(self):
        purge_question_approaches.delay(str(self.question.pk))
        found = list(DjangoApproachRepository().iter_containing(str(self.question.pk)))
        self.assertEqual(found, [])
