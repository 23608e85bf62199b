"""Per-user approach collection with per-question quotas.

An ApproachCollection is the aggregate root for one user's written
approaches. It enforces two limits per question: at most
MAX_APPROACHES_PER_QUESTION approaches, and at most
MAX_COMBINED_SIZE_PER_QUESTION_BYTES of combined content. Every mutation
either succeeds completely or raises without touching the collection.

This module has no Django dependencies. Persistence lives in
approaches.repository and orchestration (question lookup, cache
invalidation) in approaches.services.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

MAX_APPROACHES_PER_QUESTION = 3
MAX_COMBINED_SIZE_PER_QUESTION_BYTES = 15 * 1024
DEFAULT_CODE_LANGUAGE = "java"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def content_size(text_content: str, code_content: str | None) -> int:
    """Size in bytes of an approach's content (UTF-8 text plus code)."""
    size = len(text_content.encode("utf-8"))
    if code_content:
        size += len(code_content.encode("utf-8"))
    return size


def to_kb(size_bytes: int) -> float:
    return round(size_bytes / 1024, 2)


# --- Errors ---


class ApproachError(Exception):
    """Base class for approach store errors."""


class NotFoundError(ApproachError):
    """Question or approach does not exist (or is not visible to the caller)."""


class QuotaKind(str, Enum):
    SLOT_LIMIT = "slot_limit"
    SIZE_LIMIT = "size_limit"


class QuotaExceededError(ApproachError):
    """An add or update would break a per-question quota.

    Attributes:
        kind: Which limit was hit
        remaining_bytes: Capacity left for the question before the operation
        attempted_bytes: Size of the rejected content
        remaining_slots: Free slots left for the question
        post_update: True when raised by an update rather than an add
    """

    def __init__(
        self,
        kind: QuotaKind,
        *,
        remaining_bytes: int = 0,
        attempted_bytes: int = 0,
        remaining_slots: int = 0,
        post_update: bool = False,
    ):
        self.kind = kind
        self.remaining_bytes = remaining_bytes
        self.attempted_bytes = attempted_bytes
        self.remaining_slots = remaining_slots
        self.post_update = post_update
        self.max_bytes = MAX_COMBINED_SIZE_PER_QUESTION_BYTES
        super().__init__(self._build_message())

    @property
    def remaining_kb(self) -> float:
        return to_kb(self.remaining_bytes)

    @property
    def attempted_kb(self) -> float:
        return to_kb(self.attempted_bytes)

    @property
    def max_kb(self) -> float:
        return to_kb(self.max_bytes)

    def _build_message(self) -> str:
        if self.kind is QuotaKind.SLOT_LIMIT:
            return (
                f"Maximum {MAX_APPROACHES_PER_QUESTION} approaches allowed per question. "
                "Delete an existing approach to add a new one."
            )
        if self.post_update:
            return (
                f"Updated content would exceed the {self.max_kb:.0f}KB limit for this "
                f"question. Available: {self.remaining_kb:.2f}KB, "
                f"new size: {self.attempted_kb:.2f}KB"
            )
        return (
            f"Content exceeds the {self.max_kb:.0f}KB limit for this question. "
            f"Remaining: {self.remaining_kb:.2f}KB, "
            f"attempted: {self.attempted_kb:.2f}KB"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "remaining_bytes": self.remaining_bytes,
            "remaining_kb": self.remaining_kb,
            "attempted_bytes": self.attempted_bytes,
            "attempted_kb": self.attempted_kb,
            "remaining_slots": self.remaining_slots,
            "max_bytes": self.max_bytes,
            "max_kb": self.max_kb,
            "max_approaches": MAX_APPROACHES_PER_QUESTION,
        }


# --- Value objects ---


@dataclass(frozen=True)
class ApproachDraft:
    """Content submitted for a new approach."""

    text_content: str
    code_content: str | None = None
    code_language: str | None = None

    @property
    def content_size(self) -> int:
        return content_size(self.text_content, self.code_content)


@dataclass(frozen=True)
class Approach:
    """One written solution attempt. Immutable; updates produce a new instance."""

    id: str
    question_id: str
    question_title: str
    text_content: str
    code_content: str | None
    code_language: str
    content_size: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(
        cls,
        question_id: str,
        question_title: str,
        draft: ApproachDraft,
        *,
        default_language: str = DEFAULT_CODE_LANGUAGE,
        now: datetime,
    ) -> Approach:
        return cls(
            id=str(uuid.uuid4()),
            question_id=question_id,
            question_title=question_title,
            text_content=draft.text_content,
            code_content=draft.code_content,
            code_language=draft.code_language or default_language,
            content_size=draft.content_size,
            created_at=now,
            updated_at=now,
        )

    def with_changes(
        self,
        *,
        text_content: str | None = None,
        code_content: str | None = None,
        code_language: str | None = None,
        now: datetime,
    ) -> Approach:
        """Return a copy with the given fields replaced and size recomputed."""
        text = self.text_content if text_content is None else text_content
        code = self.code_content if code_content is None else code_content
        return replace(
            self,
            text_content=text,
            code_content=code,
            code_language=self.code_language if code_language is None else code_language,
            content_size=content_size(text, code),
            updated_at=now,
        )

    @property
    def content_size_kb(self) -> float:
        return to_kb(self.content_size)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question_id": self.question_id,
            "question_title": self.question_title,
            "text_content": self.text_content,
            "code_content": self.code_content,
            "code_language": self.code_language,
            "content_size": self.content_size,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_document(
        cls, data: dict[str, Any], default_language: str = DEFAULT_CODE_LANGUAGE
    ) -> Approach:
        text = data["text_content"]
        code = data.get("code_content")
        return cls(
            id=data["id"],
            question_id=str(data["question_id"]),
            question_title=data.get("question_title", ""),
            text_content=text,
            code_content=code,
            code_language=data.get("code_language") or default_language,
            # Size is derived, never trusted from storage
            content_size=content_size(text, code),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


@dataclass(frozen=True)
class Usage:
    """Quota usage for one question."""

    used_bytes: int
    remaining_bytes: int
    approach_count: int
    remaining_slots: int

    @property
    def used_kb(self) -> float:
        return to_kb(self.used_bytes)

    @property
    def remaining_kb(self) -> float:
        return to_kb(self.remaining_bytes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "used_bytes": self.used_bytes,
            "used_kb": self.used_kb,
            "remaining_bytes": self.remaining_bytes,
            "remaining_kb": self.remaining_kb,
            "approach_count": self.approach_count,
            "remaining_slots": self.remaining_slots,
            "max_bytes": MAX_COMBINED_SIZE_PER_QUESTION_BYTES,
            "max_kb": to_kb(MAX_COMBINED_SIZE_PER_QUESTION_BYTES),
            "max_approaches": MAX_APPROACHES_PER_QUESTION,
        }


# --- Aggregate ---


@dataclass
class ApproachCollection:
    """All approaches of one user, grouped by question.

    Invariants (hold after every public method returns or raises):
        - each question has between 1 and MAX_APPROACHES_PER_QUESTION approaches
          (questions with none are not stored)
        - each question's combined content_size is within the byte limit
        - total_count equals the number of stored approaches
    """

    user_id: str
    display_name: str = ""
    by_question: dict[str, list[Approach]] = field(default_factory=dict)
    total_count: int = 0
    last_modified: datetime | None = None
    version: int = 0
    clock: Clock = field(default=utcnow, repr=False, compare=False)

    # --- Queries ---

    def approaches_for(self, question_id: str) -> list[Approach]:
        """Approaches for a question in submission order (a copy)."""
        return list(self.by_question.get(question_id, ()))

    def count_for(self, question_id: str) -> int:
        return len(self.by_question.get(question_id, ()))

    def total_size_for(self, question_id: str) -> int:
        return sum(a.content_size for a in self.by_question.get(question_id, ()))

    def remaining_bytes_for(self, question_id: str) -> int:
        return max(0, MAX_COMBINED_SIZE_PER_QUESTION_BYTES - self.total_size_for(question_id))

    def remaining_slots_for(self, question_id: str) -> int:
        return max(0, MAX_APPROACHES_PER_QUESTION - self.count_for(question_id))

    def can_add(self, question_id: str) -> bool:
        return self.count_for(question_id) < MAX_APPROACHES_PER_QUESTION

    def usage(self, question_id: str) -> Usage:
        return Usage(
            used_bytes=self.total_size_for(question_id),
            remaining_bytes=self.remaining_bytes_for(question_id),
            approach_count=self.count_for(question_id),
            remaining_slots=self.remaining_slots_for(question_id),
        )

    def find(self, approach_id: str) -> Approach | None:
        for approaches in self.by_question.values():
            for approach in approaches:
                if approach.id == approach_id:
                    return approach
        return None

    def detail(self, question_id: str, approach_id: str) -> Approach:
        """Return an approach, checking it belongs to the given question."""
        for approach in self.by_question.get(question_id, ()):
            if approach.id == approach_id:
                return approach
        raise NotFoundError(f"Approach {approach_id} not found for question {question_id}")

    def all_flat(self) -> list[Approach]:
        """Every approach, newest first."""
        approaches = [a for group in self.by_question.values() for a in group]
        return sorted(approaches, key=lambda a: a.created_at, reverse=True)

    @property
    def is_empty(self) -> bool:
        return self.total_count == 0

    # --- Mutations ---

    def add(
        self,
        question_id: str,
        question_title: str,
        draft: ApproachDraft,
        *,
        default_language: str = DEFAULT_CODE_LANGUAGE,
    ) -> Approach:
        """Append a new approach for a question.

        Raises:
            QuotaExceededError: SLOT_LIMIT when the question already has the
                maximum number of approaches, SIZE_LIMIT when the draft does
                not fit the remaining capacity. Slots are checked first.
        """
        if not self.can_add(question_id):
            raise QuotaExceededError(
                QuotaKind.SLOT_LIMIT,
                remaining_bytes=self.remaining_bytes_for(question_id),
                attempted_bytes=draft.content_size,
                remaining_slots=0,
            )

        current = self.total_size_for(question_id)
        if current + draft.content_size > MAX_COMBINED_SIZE_PER_QUESTION_BYTES:
            raise QuotaExceededError(
                QuotaKind.SIZE_LIMIT,
                remaining_bytes=MAX_COMBINED_SIZE_PER_QUESTION_BYTES - current,
                attempted_bytes=draft.content_size,
                remaining_slots=self.remaining_slots_for(question_id),
            )

        now = self.clock()
        approach = Approach.create(
            question_id,
            question_title,
            draft,
            default_language=default_language,
            now=now,
        )
        self.by_question.setdefault(question_id, []).append(approach)
        self.total_count += 1
        self.last_modified = now
        return approach

    def update(
        self,
        approach_id: str,
        *,
        text_content: str | None = None,
        code_content: str | None = None,
        code_language: str | None = None,
    ) -> Approach:
        """Replace fields of an existing approach.

        None leaves a field unchanged. The candidate is validated against the
        question's byte limit before it is swapped in, so a rejected update
        leaves the stored approach exactly as it was.

        Raises:
            NotFoundError: No approach with this id
            QuotaExceededError: SIZE_LIMIT (post_update=True) if the new
                content pushes the question over the byte limit
        """
        current = self.find(approach_id)
        if current is None:
            raise NotFoundError(f"Approach {approach_id} not found")

        now = self.clock()
        candidate = current.with_changes(
            text_content=text_content,
            code_content=code_content,
            code_language=code_language,
            now=now,
        )

        baseline = self.total_size_for(current.question_id) - current.content_size
        if baseline + candidate.content_size > MAX_COMBINED_SIZE_PER_QUESTION_BYTES:
            raise QuotaExceededError(
                QuotaKind.SIZE_LIMIT,
                remaining_bytes=MAX_COMBINED_SIZE_PER_QUESTION_BYTES - baseline,
                attempted_bytes=candidate.content_size,
                remaining_slots=self.remaining_slots_for(current.question_id),
                post_update=True,
            )

        approaches = self.by_question[current.question_id]
        index = next(i for i, a in enumerate(approaches) if a.id == approach_id)
        approaches[index] = candidate
        self.last_modified = now
        return candidate

    def remove(self, question_id: str, approach_id: str) -> Approach | None:
        """Remove an approach; returns it, or None if it was not there."""
        approaches = self.by_question.get(question_id)
        if not approaches:
            return None

        for index, approach in enumerate(approaches):
            if approach.id == approach_id:
                del approaches[index]
                break
        else:
            return None

        if not approaches:
            del self.by_question[question_id]
        self.total_count -= 1
        self.last_modified = self.clock()
        return approach

    def remove_question(self, question_id: str) -> int:
        """Drop every approach for a question; returns how many were removed."""
        approaches = self.by_question.pop(question_id, None)
        if not approaches:
            return 0
        self.total_count -= len(approaches)
        self.last_modified = self.clock()
        return len(approaches)

    # --- Persistence shape ---

    def to_document(self) -> dict[str, list[dict[str, Any]]]:
        return {
            question_id: [a.to_document() for a in approaches]
            for question_id, approaches in self.by_question.items()
            if approaches
        }

    @classmethod
    def from_document(
        cls,
        user_id: str,
        document: dict[str, list[dict[str, Any]]],
        *,
        display_name: str = "",
        last_modified: datetime | None = None,
        version: int = 0,
        clock: Clock = utcnow,
        default_language: str = DEFAULT_CODE_LANGUAGE,
    ) -> ApproachCollection:
        by_question = {
            str(question_id): [
                Approach.from_document(item, default_language) for item in items
            ]
            for question_id, items in (document or {}).items()
            if items
        }
        return cls(
            user_id=str(user_id),
            display_name=display_name,
            by_question=by_question,
            # Recounted so a stale counter in storage cannot leak through
            total_count=sum(len(items) for items in by_question.values()),
            last_modified=last_modified,
            version=version,
            clock=clock,
        )
