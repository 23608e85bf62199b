"""Application service for user approaches.

Wraps the ApproachCollection aggregate with question lookup, persistence and
cache invalidation. Views and tasks go through ApproachService; they never
mutate a collection directly.
"""

import logging
from typing import Any, Callable, Iterable

from django.conf import settings

from django_project.cache import CacheRegion, invalidate

from .domain import (
    DEFAULT_CODE_LANGUAGE,
    Approach,
    ApproachDraft,
    NotFoundError,
    Usage,
)
from .repository import ApproachRepository, DjangoApproachRepository

logger = logging.getLogger(__name__)

# Read views that embed a user's approaches or approach counts
APPROACH_REGIONS = frozenset(
    {
        CacheRegion.APPROACHES,
        CacheRegion.USER_PROGRESS_MAP,
        CacheRegion.USER_ME_STATS,
        CacheRegion.ADMIN_STATS,
    }
)

QuestionLookup = Callable[[str], Any]
Invalidator = Callable[..., None]


def _default_lookup(question_id):
    from questions.services import lookup_question

    return lookup_question(question_id)


class ApproachService:
    """Use cases for a user's approaches.

    Args:
        repository: Where collections are stored
        question_lookup: Callable returning an object with ``pk`` and ``title`` for a
            question id, or None if the question does not exist
        invalidator: Callable(regions, user_id=...) used after each write
        default_language: Code language used when a draft has none
    """

    def __init__(
        self,
        repository: ApproachRepository | None = None,
        question_lookup: QuestionLookup | None = None,
        invalidator: Invalidator | None = None,
        default_language: str | None = None,
    ):
        self.default_language = default_language or getattr(
            settings, "APPROACH_DEFAULT_LANGUAGE", DEFAULT_CODE_LANGUAGE
        )
        self.repository = repository or DjangoApproachRepository(self.default_language)
        self.question_lookup = question_lookup or _default_lookup
        self.invalidator = invalidator or invalidate

    def _require_question(self, question_id: str):
        question = self.question_lookup(question_id)
        if question is None:
            raise NotFoundError(f"Question {question_id} not found")
        return question

    def _invalidate(self, user_id: str | None) -> None:
        self.invalidator(APPROACH_REGIONS, user_id=user_id)

    # --- Reads ---

    def list_for_question(self, user_id: str, question_id: str) -> list[Approach]:
        collection = self.repository.load(user_id)
        if collection is None:
            return []
        return collection.approaches_for(str(question_id))

    def get_detail(self, user_id: str, question_id: str, approach_id: str) -> Approach:
        collection = self.repository.load(user_id)
        if collection is None:
            raise NotFoundError(f"Approach {approach_id} not found")
        return collection.detail(str(question_id), approach_id)

    def list_all(self, user_id: str) -> list[Approach]:
        collection = self.repository.load(user_id)
        if collection is None:
            return []
        return collection.all_flat()

    def usage(self, user_id: str, question_id: str) -> Usage:
        return self.repository.load_or_new(user_id).usage(str(question_id))

    def approach_counts(self, user_id: str) -> dict[str, int]:
        """{question_id: approach count} for every question the user wrote on."""
        collection = self.repository.load(user_id)
        if collection is None:
            return {}
        return {qid: len(items) for qid, items in collection.by_question.items()}

    # --- Writes ---

    def create(
        self,
        user_id: str,
        display_name: str,
        question_id: str,
        draft: ApproachDraft,
    ) -> Approach:
        """Add an approach for a question.

        Raises:
            NotFoundError: Question does not exist
            QuotaExceededError: Slot or size limit reached
            ConcurrentUpdateError: Collection changed during the request
        """
        question = self._require_question(question_id)
        # Key on the resolved id so "01" and "1" share one quota bucket
        question_id = str(question.pk)

        collection = self.repository.load_or_new(user_id, display_name)
        approach = collection.add(
            question_id,
            question.title,
            draft,
            default_language=self.default_language,
        )
        self.repository.save(collection)
        self._invalidate(user_id)

        logger.info(
            "Created approach",
            extra={
                "user_id": user_id,
                "question_id": question_id,
                "approach_id": approach.id,
                "content_size": approach.content_size,
            },
        )
        return approach

    def update(
        self,
        user_id: str,
        question_id: str,
        approach_id: str,
        *,
        text_content: str | None = None,
        code_content: str | None = None,
        code_language: str | None = None,
    ) -> Approach:
        """Update an approach in place (None fields are left unchanged).

        Raises:
            NotFoundError: Approach does not exist for this question
            QuotaExceededError: New content exceeds the question's byte limit
            ConcurrentUpdateError: Collection changed during the request
        """
        question_id = str(question_id)
        collection = self.repository.load(user_id)
        if collection is None:
            raise NotFoundError(f"Approach {approach_id} not found")
        # Ownership by question is checked before any mutation
        collection.detail(question_id, approach_id)

        approach = collection.update(
            approach_id,
            text_content=text_content,
            code_content=code_content,
            code_language=code_language,
        )
        self.repository.save(collection)
        self._invalidate(user_id)

        logger.info(
            "Updated approach",
            extra={
                "user_id": user_id,
                "question_id": question_id,
                "approach_id": approach_id,
                "content_size": approach.content_size,
            },
        )
        return approach

    def delete(self, user_id: str, question_id: str, approach_id: str) -> None:
        """Delete an approach; the stored document goes with the last one.

        Raises:
            NotFoundError: Approach does not exist for this question
            ConcurrentUpdateError: Collection changed during the request
        """
        question_id = str(question_id)
        collection = self.repository.load(user_id)
        if collection is None or collection.remove(question_id, approach_id) is None:
            raise NotFoundError(f"Approach {approach_id} not found")

        self.repository.save_or_delete(collection)
        self._invalidate(user_id)

        logger.info(
            "Deleted approach",
            extra={
                "user_id": user_id,
                "question_id": question_id,
                "approach_id": approach_id,
            },
        )

    def remove_all_for_question(self, question_id: str) -> int:
        """Remove every user's approaches for a question.

        Each collection is saved on its own, so a failure part way leaves the
        earlier users cleaned. Running it again finishes the job.

        Returns:
            Number of approaches removed
        """
        question_id = str(question_id)
        removed = 0
        affected_users = 0
        # Materialized first so saving does not disturb the open cursor
        collections: Iterable = list(self.repository.iter_containing(question_id))
        for collection in collections:
            count = collection.remove_question(question_id)
            if not count:
                continue
            self.repository.save_or_delete(collection)
            removed += count
            affected_users += 1

        if removed:
            self._invalidate(None)

        logger.info(
            "Removed approaches for question",
            extra={
                "question_id": question_id,
                "removed": removed,
                "affected_users": affected_users,
            },
        )
        return removed
