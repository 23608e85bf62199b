"""Tests for the ApproachCollection aggregate (no database)."""

import random
from datetime import datetime, timedelta, timezone

from django.test import SimpleTestCase

from .domain import (
    MAX_APPROACHES_PER_QUESTION,
    MAX_COMBINED_SIZE_PER_QUESTION_BYTES,
    Approach,
    ApproachCollection,
    ApproachDraft,
    NotFoundError,
    QuotaExceededError,
    QuotaKind,
    content_size,
)

QUESTION = "101"
OTHER_QUESTION = "202"


class StepClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self):
        self.current = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.current += timedelta(minutes=1)
        return self.current


def draft(size, code_size=0, language=None):
    return ApproachDraft(
        text_content="t" * size,
        code_content="c" * code_size if code_size else None,
        code_language=language,
    )


def snapshot(collection):
    return (
        collection.to_document(),
        collection.total_count,
        collection.last_modified,
    )


class ContentSizeTests(SimpleTestCase):
    def test_counts_utf8_bytes(self):
        self.assertEqual(content_size("é", None), 2)
        self.assertEqual(content_size("abc", "→"), 6)

    def test_missing_code_counts_zero(self):
        self.assertEqual(content_size("abcd", None), 4)
        self.assertEqual(content_size("abcd", ""), 4)


class AddTests(SimpleTestCase):
    def setUp(self):
        self.collection = ApproachCollection(user_id="1", clock=StepClock())

    def test_add_ten_bytes_usage(self):
        approach = self.collection.add(QUESTION, "Two Sum", draft(10))

        usage = self.collection.usage(QUESTION)
        self.assertEqual(usage.used_bytes, 10)
        self.assertEqual(usage.remaining_bytes, 15350)
        self.assertEqual(usage.approach_count, 1)
        self.assertEqual(usage.remaining_slots, 2)
        self.assertEqual(approach.content_size, 10)
        self.assertEqual(self.collection.total_count, 1)
        self.assertEqual(self.collection.last_modified, approach.created_at)

    def test_add_sets_denormalized_fields(self):
        approach = self.collection.add(QUESTION, "Two Sum", draft(20, 5))

        self.assertEqual(approach.question_id, QUESTION)
        self.assertEqual(approach.question_title, "Two Sum")
        self.assertEqual(approach.code_language, "java")
        self.assertEqual(approach.content_size, 25)
        self.assertEqual(approach.created_at, approach.updated_at)

    def test_add_uses_given_default_language(self):
        approach = self.collection.add(QUESTION, "Q", draft(20), default_language="python")
        self.assertEqual(approach.code_language, "python")

    def test_add_keeps_explicit_language(self):
        approach = self.collection.add(QUESTION, "Q", draft(20, language="go"))
        self.assertEqual(approach.code_language, "go")

    def test_ids_are_unique(self):
        ids = {self.collection.add(QUESTION, "Q", draft(10)).id for _ in range(3)}
        self.assertEqual(len(ids), 3)

    def test_submission_order_preserved(self):
        first = self.collection.add(QUESTION, "Q", draft(10))
        second = self.collection.add(QUESTION, "Q", draft(11))
        self.assertEqual(
            [a.id for a in self.collection.approaches_for(QUESTION)], [first.id, second.id]
        )

    def test_slot_limit(self):
        for _ in range(MAX_APPROACHES_PER_QUESTION):
            self.collection.add(QUESTION, "Q", draft(10))
        before = snapshot(self.collection)

        with self.assertRaises(QuotaExceededError) as ctx:
            self.collection.add(QUESTION, "Q", draft(10))

        self.assertEqual(ctx.exception.kind, QuotaKind.SLOT_LIMIT)
        self.assertEqual(ctx.exception.remaining_slots, 0)
        self.assertEqual(snapshot(self.collection), before)

    def test_slot_limit_checked_before_size(self):
        for _ in range(3):
            self.collection.add(QUESTION, "Q", draft(5000))

        with self.assertRaises(QuotaExceededError) as ctx:
            self.collection.add(QUESTION, "Q", draft(500))

        self.assertEqual(ctx.exception.kind, QuotaKind.SLOT_LIMIT)

    def test_size_limit_reports_remaining_capacity(self):
        self.collection.add(QUESTION, "Q", draft(7500))
        self.collection.add(QUESTION, "Q", draft(7500))
        before = snapshot(self.collection)

        with self.assertRaises(QuotaExceededError) as ctx:
            self.collection.add(QUESTION, "Q", draft(500))

        error = ctx.exception
        self.assertEqual(error.kind, QuotaKind.SIZE_LIMIT)
        self.assertEqual(error.remaining_bytes, 360)
        self.assertEqual(error.attempted_bytes, 500)
        self.assertEqual(error.remaining_kb, 0.35)
        self.assertEqual(error.attempted_kb, 0.49)
        self.assertFalse(error.post_update)
        self.assertIn("0.35KB", str(error))
        self.assertEqual(snapshot(self.collection), before)

    def test_exactly_filling_capacity_is_allowed(self):
        self.collection.add(QUESTION, "Q", draft(MAX_COMBINED_SIZE_PER_QUESTION_BYTES - 100))
        self.collection.add(QUESTION, "Q", draft(100))
        self.assertEqual(self.collection.remaining_bytes_for(QUESTION), 0)

    def test_single_oversized_draft_rejected(self):
        with self.assertRaises(QuotaExceededError) as ctx:
            self.collection.add(QUESTION, "Q", draft(MAX_COMBINED_SIZE_PER_QUESTION_BYTES + 1))
        self.assertEqual(ctx.exception.kind, QuotaKind.SIZE_LIMIT)
        self.assertEqual(self.collection.total_count, 0)
        self.assertNotIn(QUESTION, self.collection.by_question)

    def test_quotas_are_per_question(self):
        for _ in range(3):
            self.collection.add(QUESTION, "Q", draft(5000))
        self.collection.add(OTHER_QUESTION, "Other", draft(5000))
        self.assertEqual(self.collection.total_count, 4)

    def test_quota_error_to_dict(self):
        self.collection.add(QUESTION, "Q", draft(15000))
        with self.assertRaises(QuotaExceededError) as ctx:
            self.collection.add(QUESTION, "Q", draft(400))

        data = ctx.exception.to_dict()
        self.assertEqual(data["kind"], "size_limit")
        self.assertEqual(data["remaining_bytes"], 360)
        self.assertEqual(data["max_bytes"], 15360)
        self.assertEqual(data["max_kb"], 15.0)


class UpdateTests(SimpleTestCase):
    def setUp(self):
        self.collection = ApproachCollection(user_id="1", clock=StepClock())
        self.approach = self.collection.add(QUESTION, "Q", draft(100))

    def test_oversized_update_leaves_approach_untouched(self):
        before = snapshot(self.collection)

        with self.assertRaises(QuotaExceededError) as ctx:
            self.collection.update(self.approach.id, text_content="x" * 20000)

        error = ctx.exception
        self.assertEqual(error.kind, QuotaKind.SIZE_LIMIT)
        self.assertTrue(error.post_update)
        self.assertEqual(error.attempted_bytes, 20000)
        # Baseline excludes the approach being replaced
        self.assertEqual(error.remaining_bytes, MAX_COMBINED_SIZE_PER_QUESTION_BYTES)
        self.assertEqual(snapshot(self.collection), before)
        stored = self.collection.find(self.approach.id)
        self.assertEqual(stored.content_size, 100)
        self.assertEqual(stored.text_content, "t" * 100)

    def test_update_counts_sibling_approaches(self):
        self.collection.add(QUESTION, "Q", draft(15000))

        with self.assertRaises(QuotaExceededError) as ctx:
            self.collection.update(self.approach.id, text_content="x" * 400)

        self.assertEqual(ctx.exception.remaining_bytes, 360)

    def test_update_replaces_text_and_recomputes_size(self):
        updated = self.collection.update(self.approach.id, text_content="y" * 300)

        self.assertEqual(updated.content_size, 300)
        self.assertEqual(updated.id, self.approach.id)
        self.assertEqual(updated.created_at, self.approach.created_at)
        self.assertGreater(updated.updated_at, self.approach.updated_at)
        self.assertEqual(self.collection.total_size_for(QUESTION), 300)
        self.assertEqual(self.collection.last_modified, updated.updated_at)

    def test_unset_fields_are_kept(self):
        with_code = self.collection.add(QUESTION, "Q", draft(10, 20, language="cpp"))

        updated = self.collection.update(with_code.id, text_content="z" * 15)

        self.assertEqual(updated.code_content, "c" * 20)
        self.assertEqual(updated.code_language, "cpp")
        self.assertEqual(updated.content_size, 35)

    def test_language_only_update_bumps_updated_at(self):
        updated = self.collection.update(self.approach.id, code_language="rust")

        self.assertEqual(updated.code_language, "rust")
        self.assertEqual(updated.content_size, 100)
        self.assertGreater(updated.updated_at, self.approach.updated_at)

    def test_update_keeps_position(self):
        second = self.collection.add(QUESTION, "Q", draft(10))
        self.collection.update(self.approach.id, text_content="q" * 50)
        self.assertEqual(
            [a.id for a in self.collection.approaches_for(QUESTION)],
            [self.approach.id, second.id],
        )

    def test_update_missing_approach(self):
        with self.assertRaises(NotFoundError):
            self.collection.update("missing", text_content="x" * 20)


class RemoveTests(SimpleTestCase):
    def setUp(self):
        self.collection = ApproachCollection(user_id="1", clock=StepClock())

    def test_removing_last_for_question_drops_key(self):
        approach = self.collection.add(QUESTION, "Q", draft(10))
        self.collection.add(OTHER_QUESTION, "Other", draft(10))

        removed = self.collection.remove(QUESTION, approach.id)

        self.assertEqual(removed, approach)
        self.assertNotIn(QUESTION, self.collection.by_question)
        self.assertEqual(self.collection.total_count, 1)

    def test_removing_last_overall(self):
        approach = self.collection.add(QUESTION, "Q", draft(10))
        self.collection.remove(QUESTION, approach.id)
        self.assertEqual(self.collection.total_count, 0)
        self.assertTrue(self.collection.is_empty)
        self.assertEqual(self.collection.to_document(), {})

    def test_remove_absent_is_a_no_op(self):
        approach = self.collection.add(QUESTION, "Q", draft(10))
        before = snapshot(self.collection)

        self.assertIsNone(self.collection.remove(QUESTION, "missing"))
        self.assertIsNone(self.collection.remove(OTHER_QUESTION, approach.id))
        self.assertEqual(snapshot(self.collection), before)

    def test_remove_frees_a_slot(self):
        approaches = [self.collection.add(QUESTION, "Q", draft(10)) for _ in range(3)]
        self.collection.remove(QUESTION, approaches[1].id)
        self.assertTrue(self.collection.can_add(QUESTION))

    def test_remove_question(self):
        for _ in range(2):
            self.collection.add(QUESTION, "Q", draft(10))
        self.collection.add(OTHER_QUESTION, "Other", draft(10))

        self.assertEqual(self.collection.remove_question(QUESTION), 2)
        self.assertEqual(self.collection.remove_question(QUESTION), 0)
        self.assertEqual(self.collection.total_count, 1)


class QueryTests(SimpleTestCase):
    def setUp(self):
        self.collection = ApproachCollection(user_id="1", clock=StepClock())

    def test_usage_for_unknown_question(self):
        usage = self.collection.usage("999")
        self.assertEqual(
            (usage.used_bytes, usage.remaining_bytes, usage.approach_count, usage.remaining_slots),
            (0, 15360, 0, 3),
        )

    def test_all_flat_newest_first(self):
        first = self.collection.add(QUESTION, "Q", draft(10))
        second = self.collection.add(OTHER_QUESTION, "Other", draft(10))
        third = self.collection.add(QUESTION, "Q", draft(10))

        self.assertEqual(
            [a.id for a in self.collection.all_flat()], [third.id, second.id, first.id]
        )

    def test_detail_checks_question(self):
        approach = self.collection.add(QUESTION, "Q", draft(10))

        self.assertEqual(self.collection.detail(QUESTION, approach.id), approach)
        with self.assertRaises(NotFoundError):
            self.collection.detail(OTHER_QUESTION, approach.id)

    def test_approaches_for_returns_copy(self):
        self.collection.add(QUESTION, "Q", draft(10))
        self.collection.approaches_for(QUESTION).clear()
        self.assertEqual(self.collection.count_for(QUESTION), 1)


class DocumentTests(SimpleTestCase):
    def test_stored_size_is_recomputed(self):
        collection = ApproachCollection(user_id="1", clock=StepClock())
        collection.add(QUESTION, "Q", draft(40))
        document = collection.to_document()
        document[QUESTION][0]["content_size"] = 1

        loaded = ApproachCollection.from_document("1", document)

        self.assertEqual(loaded.approaches_for(QUESTION)[0].content_size, 40)
        self.assertEqual(loaded.total_count, 1)

    def test_empty_lists_are_dropped_on_load(self):
        loaded = ApproachCollection.from_document("1", {QUESTION: []})
        self.assertEqual(loaded.by_question, {})
        self.assertEqual(loaded.total_count, 0)

    def test_approach_document_keeps_timestamps(self):
        collection = ApproachCollection(user_id="1", clock=StepClock())
        approach = collection.add(QUESTION, "Q", draft(10))
        self.assertEqual(Approach.from_document(approach.to_document()), approach)

    def test_missing_language_uses_given_default(self):
        collection = ApproachCollection(user_id="1", clock=StepClock())
        collection.add(QUESTION, "Q", draft(10))
        document = collection.to_document()
        del document[QUESTION][0]["code_language"]

        loaded = ApproachCollection.from_document("1", document, default_language="python")

        self.assertEqual(loaded.approaches_for(QUESTION)[0].code_language, "python")


class InvariantTests(SimpleTestCase):
    """Random operation sequences never break the quotas."""

    def assert_invariants(self, collection):
        total = 0
        for question_id, approaches in collection.by_question.items():
            self.assertTrue(1 <= len(approaches) <= MAX_APPROACHES_PER_QUESTION)
            self.assertLessEqual(
                sum(a.content_size for a in approaches), MAX_COMBINED_SIZE_PER_QUESTION_BYTES
            )
            for approach in approaches:
                self.assertEqual(approach.question_id, question_id)
                self.assertEqual(
                    approach.content_size,
                    content_size(approach.text_content, approach.code_content),
                )
            total += len(approaches)
        self.assertEqual(collection.total_count, total)

    def test_random_sequences(self):
        rng = random.Random(20260101)
        collection = ApproachCollection(user_id="1", clock=StepClock())
        questions = ["1", "2", "3"]

        for _ in range(500):
            question_id = rng.choice(questions)
            operation = rng.choice(["add", "add", "update", "remove"])
            existing = collection.approaches_for(question_id)
            try:
                if operation == "add":
                    collection.add(question_id, "Q", draft(rng.randint(1, 9000)))
                elif operation == "update" and existing:
                    collection.update(
                        rng.choice(existing).id,
                        text_content="u" * rng.randint(1, 12000),
                    )
                elif operation == "remove" and existing:
                    collection.remove(question_id, rng.choice(existing).id)
            except QuotaExceededError:
                pass
            self.assert_invariants(collection)
