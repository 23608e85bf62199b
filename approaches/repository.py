"""Persistence for ApproachCollection aggregates.

Collections are stored as one document per user. Writes are guarded by a
version compare-and-swap: save() succeeds only if the stored version still
matches the version the collection was loaded with, so two concurrent
read-modify-write cycles on the same user cannot silently overwrite each
other.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterator

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F

from .domain import DEFAULT_CODE_LANGUAGE, ApproachCollection, ApproachError
from .models import UserApproaches

logger = logging.getLogger(__name__)


class ConcurrentUpdateError(ApproachError):
    """The stored collection changed since it was loaded."""


class ApproachRepository(ABC):
    def __init__(self, default_language: str | None = None):
        # Stored approaches without a language read back with this one
        self.default_language = default_language or getattr(
            settings, "APPROACH_DEFAULT_LANGUAGE", DEFAULT_CODE_LANGUAGE
        )

    @abstractmethod
    def load(self, user_id: str) -> ApproachCollection | None:
        """Return the user's collection, or None if nothing is stored."""

    def load_or_new(self, user_id: str, display_name: str = "") -> ApproachCollection:
        collection = self.load(user_id)
        if collection is None:
            collection = ApproachCollection(user_id=str(user_id), display_name=display_name)
        elif display_name:
            collection.display_name = display_name
        return collection

    @abstractmethod
    def save(self, collection: ApproachCollection) -> None:
        """Persist the collection and advance its version.

        Raises:
            ConcurrentUpdateError: The stored version no longer matches
        """

    @abstractmethod
    def delete(self, collection: ApproachCollection) -> None:
        """Remove the stored document (used once a collection is empty)."""

    @abstractmethod
    def iter_all(self) -> Iterator[ApproachCollection]:
        """Yield every stored collection."""

    def iter_containing(self, question_id: str) -> Iterator[ApproachCollection]:
        """Yield collections holding approaches for a question."""
        for collection in self.iter_all():
            if collection.count_for(question_id):
                yield collection

    def save_or_delete(self, collection: ApproachCollection) -> None:
        if collection.is_empty:
            self.delete(collection)
        else:
            self.save(collection)


class DjangoApproachRepository(ApproachRepository):
    """Stores collections in the UserApproaches table."""

    def _to_collection(self, row: UserApproaches) -> ApproachCollection:
        return ApproachCollection.from_document(
            str(row.user_id),
            row.approaches,
            display_name=row.display_name,
            last_modified=row.last_updated,
            version=row.version,
            default_language=self.default_language,
        )

    def load(self, user_id):
        row = UserApproaches.objects.filter(user_id=user_id).first()
        if row is None:
            return None
        return self._to_collection(row)

    def save(self, collection):
        fields = {
            "display_name": collection.display_name,
            "approaches": collection.to_document(),
            "total_approaches": collection.total_count,
            "last_updated": collection.last_modified,
        }

        if collection.version == 0:
            try:
                with transaction.atomic():
                    UserApproaches.objects.create(
                        user_id=collection.user_id, version=1, **fields
                    )
            except IntegrityError as e:
                # Another request created the document first
                raise ConcurrentUpdateError(
                    f"Approaches for user {collection.user_id} were created concurrently"
                ) from e
            collection.version = 1
            return

        updated = UserApproaches.objects.filter(
            user_id=collection.user_id, version=collection.version
        ).update(version=F("version") + 1, **fields)
        if updated == 0:
            logger.warning(
                "Approach collection version conflict",
                extra={"user_id": collection.user_id, "version": collection.version},
            )
            raise ConcurrentUpdateError(
                f"Approaches for user {collection.user_id} changed since they were loaded"
            )
        collection.version += 1

    def delete(self, collection):
        if collection.version == 0:
            return
        deleted, _ = UserApproaches.objects.filter(
            user_id=collection.user_id, version=collection.version
        ).delete()
        if deleted == 0:
            raise ConcurrentUpdateError(
                f"Approaches for user {collection.user_id} changed since they were loaded"
            )
        collection.version = 0

    def iter_all(self):
        for row in UserApproaches.objects.order_by("pk").iterator():
            yield self._to_collection(row)

    def iter_containing(self, question_id):
        rows = UserApproaches.objects.filter(approaches__has_key=str(question_id))
        for row in rows.order_by("pk").iterator():
            yield self._to_collection(row)


class InMemoryApproachRepository(ApproachRepository):
    """Dict-backed repository with the same versioning rules, for tests."""

    def __init__(self, default_language: str | None = None):
        super().__init__(default_language)
        self._rows: dict[str, dict] = {}

    def load(self, user_id):
        row = self._rows.get(str(user_id))
        if row is None:
            return None
        return ApproachCollection.from_document(
            str(user_id),
            row["approaches"],
            display_name=row["display_name"],
            last_modified=row["last_updated"],
            version=row["version"],
            default_language=self.default_language,
        )

    def save(self, collection):
        key = str(collection.user_id)
        stored = self._rows.get(key)
        stored_version = stored["version"] if stored else 0
        if stored_version != collection.version:
            raise ConcurrentUpdateError(
                f"Approaches for user {collection.user_id} changed since they were loaded"
            )
        self._rows[key] = {
            "display_name": collection.display_name,
            "approaches": collection.to_document(),
            "total_approaches": collection.total_count,
            "last_updated": collection.last_modified,
            "version": collection.version + 1,
        }
        collection.version += 1

    def delete(self, collection):
        key = str(collection.user_id)
        stored = self._rows.get(key)
        if stored is None:
            return
        if stored["version"] != collection.version:
            raise ConcurrentUpdateError(
                f"Approaches for user {collection.user_id} changed since they were loaded"
            )
        del self._rows[key]
        collection.version = 0

    def iter_all(self):
        for user_id in sorted(self._rows):
            yield self.load(user_id)

    def __contains__(self, user_id):
        return str(user_id) in self._rows
