"""Tests for ApproachService and the approach repositories."""

from types import SimpleNamespace
from unittest.mock import Mock

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings

from django_project.cache import CacheRegion
from django_project.test_constants import TEST_PASSWORD

from .domain import ApproachDraft, NotFoundError, QuotaExceededError, QuotaKind
from .models import UserApproaches
from .repository import (
    ConcurrentUpdateError,
    DjangoApproachRepository,
    InMemoryApproachRepository,
)
from .services import APPROACH_REGIONS, ApproachService

User = get_user_model()

TEXT = "Sort, then sweep with two pointers."


def lookup(question_id):
    titles = {1: "Two Sum", 2: "Valid Parentheses"}
    try:
        pk = int(str(question_id).strip())
    except ValueError:
        return None
    title = titles.get(pk)
    return SimpleNamespace(pk=pk, title=title) if title else None


class ApproachServiceTests(SimpleTestCase):
    def setUp(self):
        self.repository = InMemoryApproachRepository()
        self.invalidator = Mock()
        self.service = ApproachService(
            repository=self.repository,
            question_lookup=lookup,
            invalidator=self.invalidator,
            default_language="java",
        )

    def create(self, user_id="u1", question_id="1", text=TEXT, **kwargs):
        return self.service.create(user_id, "Alice", question_id, ApproachDraft(text, **kwargs))

    def test_create_denormalizes_title_and_persists(self):
        approach = self.create()

        self.assertEqual(approach.question_title, "Two Sum")
        self.assertEqual(approach.code_language, "java")
        stored = self.repository.load("u1")
        self.assertEqual(stored.display_name, "Alice")
        self.assertEqual(stored.approaches_for("1"), [approach])
        self.assertEqual(stored.version, 1)

    def test_create_invalidates_user_regions(self):
        self.create()
        self.invalidator.assert_called_once_with(APPROACH_REGIONS, user_id="u1")
        self.assertIn(CacheRegion.APPROACHES, APPROACH_REGIONS)
        self.assertIn(CacheRegion.USER_PROGRESS_MAP, APPROACH_REGIONS)
        self.assertIn(CacheRegion.USER_ME_STATS, APPROACH_REGIONS)

    def test_create_keys_on_resolved_question_id(self):
        approach = self.create(question_id="01")

        self.assertEqual(approach.question_id, "1")
        self.assertEqual(self.repository.load("u1").approaches_for("1"), [approach])

    def test_spellings_of_one_question_share_quota(self):
        for question_id in ("1", "01", " 1"):
            self.create(question_id=question_id)

        with self.assertRaises(QuotaExceededError) as ctx:
            self.create(question_id="001")

        self.assertEqual(ctx.exception.kind, QuotaKind.SLOT_LIMIT)
        self.assertEqual(self.service.approach_counts("u1"), {"1": 3})
        self.assertEqual(self.service.remove_all_for_question("1"), 3)

    def test_create_for_unknown_question(self):
        with self.assertRaises(NotFoundError):
            self.create(question_id="404")
        self.assertNotIn("u1", self.repository)
        self.invalidator.assert_not_called()

    def test_create_over_quota_saves_nothing(self):
        for _ in range(3):
            self.create()
        self.invalidator.reset_mock()

        with self.assertRaises(QuotaExceededError) as ctx:
            self.create()

        self.assertEqual(ctx.exception.kind, QuotaKind.SLOT_LIMIT)
        self.assertEqual(self.repository.load("u1").version, 3)
        self.invalidator.assert_not_called()

    def test_list_for_question_and_all(self):
        first = self.create()
        second = self.create(question_id="2")

        self.assertEqual(self.service.list_for_question("u1", "1"), [first])
        self.assertCountEqual(self.service.list_all("u1"), [first, second])
        self.assertEqual(self.service.list_for_question("nobody", "1"), [])
        self.assertEqual(self.service.list_all("nobody"), [])

    def test_get_detail(self):
        approach = self.create()
        self.assertEqual(self.service.get_detail("u1", "1", approach.id), approach)
        with self.assertRaises(NotFoundError):
            self.service.get_detail("u1", "2", approach.id)
        with self.assertRaises(NotFoundError):
            self.service.get_detail("u2", "1", approach.id)

    def test_update(self):
        approach = self.create()

        updated = self.service.update("u1", "1", approach.id, code_content="print(1)")

        self.assertEqual(updated.code_content, "print(1)")
        self.assertEqual(self.repository.load("u1").find(approach.id), updated)

    def test_update_rejects_other_question(self):
        approach = self.create()
        with self.assertRaises(NotFoundError):
            self.service.update("u1", "2", approach.id, text_content="x" * 20)

    def test_rejected_update_persists_nothing(self):
        approach = self.create()
        version = self.repository.load("u1").version

        with self.assertRaises(QuotaExceededError):
            self.service.update("u1", "1", approach.id, text_content="x" * 20000)

        stored = self.repository.load("u1")
        self.assertEqual(stored.version, version)
        self.assertEqual(stored.find(approach.id).text_content, TEXT)

    def test_delete_is_strict(self):
        approach = self.create()

        with self.assertRaises(NotFoundError):
            self.service.delete("u1", "1", "missing")
        with self.assertRaises(NotFoundError):
            self.service.delete("u1", "2", approach.id)
        with self.assertRaises(NotFoundError):
            self.service.delete("u2", "1", approach.id)

        self.assertEqual(self.repository.load("u1").total_count, 1)

    def test_deleting_last_approach_removes_document(self):
        first = self.create()
        second = self.create(question_id="2")

        self.service.delete("u1", "1", first.id)
        self.assertIn("u1", self.repository)

        self.service.delete("u1", "2", second.id)
        self.assertNotIn("u1", self.repository)

    def test_usage(self):
        self.create(text="t" * 10)
        usage = self.service.usage("u1", "1")
        self.assertEqual(usage.to_dict()["used_bytes"], 10)
        self.assertEqual(usage.remaining_bytes, 15350)

        empty = self.service.usage("nobody", "1")
        self.assertEqual((empty.used_bytes, empty.remaining_slots), (0, 3))

    def test_approach_counts(self):
        self.create()
        self.create()
        self.create(question_id="2")
        self.assertEqual(self.service.approach_counts("u1"), {"1": 2, "2": 1})
        self.assertEqual(self.service.approach_counts("nobody"), {})

    def test_remove_all_for_question(self):
        self.create(user_id="u1")
        self.create(user_id="u1")
        self.create(user_id="u1", question_id="2")
        self.create(user_id="u2")
        self.create(user_id="u3", question_id="2")
        self.invalidator.reset_mock()

        removed = self.service.remove_all_for_question("1")

        self.assertEqual(removed, 3)
        self.assertEqual(self.service.approach_counts("u1"), {"2": 1})
        self.assertNotIn("u2", self.repository)
        self.assertEqual(self.service.approach_counts("u3"), {"2": 1})
        self.invalidator.assert_called_once_with(APPROACH_REGIONS, user_id=None)

    def test_remove_all_for_question_is_idempotent(self):
        self.create()
        self.assertEqual(self.service.remove_all_for_question("1"), 1)
        self.assertEqual(self.service.remove_all_for_question("1"), 0)


class InMemoryRepositoryTests(SimpleTestCase):
    def test_stale_version_is_rejected(self):
        repository = InMemoryApproachRepository()
        collection = repository.load_or_new("u1")
        collection.add("1", "Q", ApproachDraft(TEXT))
        repository.save(collection)

        first = repository.load("u1")
        second = repository.load("u1")
        first.add("1", "Q", ApproachDraft(TEXT))
        repository.save(first)
        second.add("1", "Q", ApproachDraft(TEXT))

        with self.assertRaises(ConcurrentUpdateError):
            repository.save(second)
        self.assertEqual(repository.load("u1").total_count, 2)


class DjangoApproachRepositoryTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="alice", password=TEST_PASSWORD)
        cls.other = User.objects.create_user(username="bob", password=TEST_PASSWORD)

    def setUp(self):
        self.repository = DjangoApproachRepository()
        self.user_id = str(self.user.pk)

    def save_new(self, user_id, question_id="1", count=1):
        collection = self.repository.load_or_new(user_id, "Alice")
        for _ in range(count):
            collection.add(question_id, "Q", ApproachDraft(TEXT))
        self.repository.save(collection)
        return collection

    def test_load_missing_returns_none(self):
        self.assertIsNone(self.repository.load(self.user_id))

    def test_save_creates_row(self):
        self.save_new(self.user_id, count=2)

        row = UserApproaches.objects.get(user=self.user)
        self.assertEqual(row.total_approaches, 2)
        self.assertEqual(row.version, 1)
        self.assertEqual(row.display_name, "Alice")
        self.assertEqual(len(row.approaches["1"]), 2)

    def test_round_trip_through_database(self):
        saved = self.save_new(self.user_id)

        loaded = self.repository.load(self.user_id)

        self.assertEqual(loaded.approaches_for("1"), saved.approaches_for("1"))
        self.assertEqual(loaded.version, 1)

    def test_save_bumps_version(self):
        self.save_new(self.user_id)
        collection = self.repository.load(self.user_id)
        collection.add("2", "Q2", ApproachDraft(TEXT))

        self.repository.save(collection)

        self.assertEqual(collection.version, 2)
        self.assertEqual(UserApproaches.objects.get(user=self.user).version, 2)

    def test_concurrent_update_is_detected(self):
        self.save_new(self.user_id)
        first = self.repository.load(self.user_id)
        second = self.repository.load(self.user_id)

        first.add("1", "Q", ApproachDraft(TEXT))
        self.repository.save(first)
        second.add("1", "Q", ApproachDraft(TEXT))

        with self.assertRaises(ConcurrentUpdateError):
            self.repository.save(second)
        self.assertEqual(UserApproaches.objects.get(user=self.user).total_approaches, 2)

    def test_concurrent_create_is_detected(self):
        first = self.repository.load_or_new(self.user_id)
        second = self.repository.load_or_new(self.user_id)
        first.add("1", "Q", ApproachDraft(TEXT))
        second.add("1", "Q", ApproachDraft(TEXT))
        self.repository.save(first)

        with self.assertRaises(ConcurrentUpdateError):
            self.repository.save(second)

    def test_delete(self):
        collection = self.save_new(self.user_id)
        self.repository.delete(collection)
        self.assertFalse(UserApproaches.objects.filter(user=self.user).exists())

    def test_stale_delete_is_rejected(self):
        stale = self.save_new(self.user_id)
        fresh = self.repository.load(self.user_id)
        fresh.add("2", "Q", ApproachDraft(TEXT))
        self.repository.save(fresh)

        with self.assertRaises(ConcurrentUpdateError):
            self.repository.delete(stale)

    @override_settings(APPROACH_DEFAULT_LANGUAGE="python")
    def test_stored_approach_without_language_uses_configured_default(self):
        self.save_new(self.user_id)
        row = UserApproaches.objects.get(user=self.user)
        for item in row.approaches["1"]:
            del item["code_language"]
        row.save()

        loaded = DjangoApproachRepository().load(self.user_id)

        self.assertEqual(loaded.approaches_for("1")[0].code_language, "python")

    def test_explicit_default_language_wins(self):
        repository = InMemoryApproachRepository(default_language="go")
        collection = repository.load_or_new("u1")
        collection.add("1", "Q", ApproachDraft(TEXT))
        repository.save(collection)
        del repository._rows["u1"]["approaches"]["1"][0]["code_language"]

        self.assertEqual(repository.load("u1").approaches_for("1")[0].code_language, "go")

    def test_iter_containing(self):
        self.save_new(self.user_id, question_id="1")
        self.save_new(str(self.other.pk), question_id="2")

        found = list(self.repository.iter_containing("1"))

        self.assertEqual([c.user_id for c in found], [self.user_id])
        self.assertEqual(len(list(self.repository.iter_all())), 2)
