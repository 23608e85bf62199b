"""Catalogue services: categories, questions and display-order tools.

Views validate input through serializers and resolve objects with
get_object_or_404; the functions here keep the denormalized per-level id
lists on Category consistent with the Question table. Cache invalidation is
driven by the model signals in questions.signals.
"""

import logging
from typing import Any, Iterable

from django.db import transaction
from django.db.models import Count, Max, Q, QuerySet

from django_project.cache import CacheRegion, cached

from .models import Category, Question, QuestionLevel

logger = logging.getLogger(__name__)


# --- Lookup used by other apps ---


def lookup_question(question_id: Any) -> Question | None:
    """Resolve a question id (int or numeric string) to a Question, or None."""
    try:
        return Question.objects.only("id", "title").get(pk=question_id)
    except (Question.DoesNotExist, ValueError, TypeError):
        return None


# --- Categories ---


def next_category_display_order() -> int:
    current = Category.objects.aggregate(highest=Max("display_order"))["highest"]
    return (current or 0) + 1


def category_name_taken(name: str, exclude_id: Any = None) -> bool:
    qs = Category.objects.filter(name__iexact=name.strip())
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs.exists()


def create_category(*, name: str, created_by=None, display_order: int | None = None) -> Category:
    """Create a category, appending it to the end of the display order by default."""
    if display_order is None:
        display_order = next_category_display_order()
    category = Category.objects.create(
        name=name.strip(),
        display_order=display_order,
        created_by=created_by,
    )
    logger.info(
        "Created category",
        extra={"category_id": category.pk, "display_order": display_order},
    )
    return category


def update_category(
    category: Category, *, name: str | None = None, display_order: int | None = None
) -> Category:
    if name is not None:
        category.name = name.strip()
    if display_order is not None:
        category.display_order = display_order
    category.save()
    return category


def delete_category(category: Category) -> dict[str, Any]:
    """Delete a category together with its questions.

    Deleting the questions cascades to solved-question rows and triggers the
    approach purge for each question (see approaches.signals).

    Returns:
        Dict with the deleted category name and number of deleted questions
    """
    name = category.name
    with transaction.atomic():
        deleted_questions = category.questions.count()
        category.delete()

    logger.info(
        "Deleted category",
        extra={"category_name": name, "deleted_questions": deleted_questions},
    )
    return {"category_name": name, "deleted_questions": deleted_questions}


@transaction.atomic
def batch_update_category_order(order_map: dict[Any, int]) -> list[Category]:
    """Apply {category_id: display_order}; unknown ids are skipped."""
    categories = list(Category.objects.filter(pk__in=list(order_map.keys())))
    for category in categories:
        # Keys may arrive as strings from JSON bodies
        order = order_map.get(category.pk, order_map.get(str(category.pk)))
        category.display_order = order
        category.save(update_fields=["display_order", "updated_at"])
    return sorted(categories, key=lambda c: (c.display_order, c.name))


def get_admin_categories() -> dict[str, dict[str, Any]]:
    """All categories keyed by name, in display order."""
    from .serializers import CategorySerializer

    def compute():
        return {
            category.name: dict(CategorySerializer(category).data)
            for category in Category.objects.order_by("display_order", "name")
        }

    return cached(CacheRegion.ADMIN_CATEGORIES, ["all"], compute)


def get_global_categories_info() -> dict[str, Any]:
    """Category summary for the question browser, built from one query.

    Uses only the denormalized id lists and counters on Category.
    """

    def compute():
        categories = {}
        for category in Category.objects.order_by("display_order", "name"):
            categories[str(category.pk)] = {
                "id": category.pk,
                "name": category.name,
                "display_order": category.display_order,
                "easy_question_ids": list(category.easy_question_ids),
                "medium_question_ids": list(category.medium_question_ids),
                "hard_question_ids": list(category.hard_question_ids),
                "easy_count": category.easy_count,
                "medium_count": category.medium_count,
                "hard_count": category.hard_count,
                "total_questions": category.total_questions,
            }
        return {"categories": categories}

    return cached(CacheRegion.GLOBAL_CATEGORIES, ["all"], compute)


# --- Questions ---


def question_title_taken(title: str, exclude_id: Any = None) -> bool:
    qs = Question.objects.filter(title__iexact=title.strip())
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs.exists()


def next_question_display_order(category: Category, level: str) -> int:
    current = Question.objects.filter(category=category, level=level).aggregate(
        highest=Max("display_order")
    )["highest"]
    return (current or 0) + 1


def filter_questions(
    category_id: Any = None, level: str | None = None, search: str | None = None
) -> QuerySet[Question]:
    """Questions newest first, optionally narrowed by search, category and level."""
    qs = Question.objects.select_related("category", "created_by")
    if search and search.strip():
        term = search.strip()
        qs = qs.filter(Q(title__icontains=term) | Q(statement__icontains=term))
    if category_id:
        qs = qs.filter(category_id=category_id)
    if level:
        qs = qs.filter(level=QuestionLevel.parse(level))
    return qs.order_by("-created_at")


def search_questions(term: str) -> QuerySet[Question]:
    return filter_questions(search=term)


@transaction.atomic
def create_question(
    *,
    title: str,
    statement: str,
    category: Category,
    level: str,
    created_by=None,
    image_urls: list[str] | None = None,
    code_snippets: list[dict[str, Any]] | None = None,
    display_order: int | None = None,
) -> Question:
    """Create a question and register its id on the category's level list."""
    if display_order is None:
        display_order = next_question_display_order(category, level)

    question = Question.objects.create(
        title=title.strip(),
        statement=statement,
        category=category,
        level=level,
        created_by=created_by,
        image_urls=image_urls or [],
        code_snippets=code_snippets or [],
        display_order=display_order,
    )

    category = Category.objects.select_for_update().get(pk=category.pk)
    category.add_question_id(question.pk, level)
    category.save()

    logger.info(
        "Created question",
        extra={
            "question_id": question.pk,
            "category_id": category.pk,
            "level": level,
            "display_order": display_order,
        },
    )
    return question


@transaction.atomic
def update_question(question: Question, **changes: Any) -> Question:
    """Update question fields, moving its id between category lists if needed.

    Args:
        question: Question to update
        **changes: Any of title, statement, image_urls, code_snippets,
            category, level, display_order. Absent keys are left untouched.
    """
    old_category_id = question.category_id
    old_level = question.level

    for field in ("title", "statement", "image_urls", "code_snippets", "display_order"):
        if field in changes and changes[field] is not None:
            value = changes[field]
            setattr(question, field, value.strip() if field == "title" else value)
    if changes.get("category") is not None:
        question.category = changes["category"]
    if changes.get("level") is not None:
        question.level = changes["level"]

    question.save()

    if question.category_id != old_category_id or question.level != old_level:
        old_category = Category.objects.select_for_update().get(pk=old_category_id)
        old_category.remove_question_id(question.pk, old_level)
        old_category.save()

        new_category = Category.objects.select_for_update().get(pk=question.category_id)
        new_category.add_question_id(question.pk, question.level)
        new_category.save()

        logger.info(
            "Moved question",
            extra={
                "question_id": question.pk,
                "from_category": old_category_id,
                "to_category": question.category_id,
                "from_level": old_level,
                "to_level": question.level,
            },
        )

    return question


@transaction.atomic
def delete_question(question: Question) -> None:
    """Delete a question and drop its id from the category list.

    Solved-question rows cascade through the foreign key; stored approaches
    are purged by the approaches app once the transaction commits.
    """
    question_id = question.pk
    category = Category.objects.select_for_update().get(pk=question.category_id)
    category.remove_question_id(question_id, question.level)
    category.save()

    question.delete()
    logger.info("Deleted question", extra={"question_id": question_id})


def get_question_counts() -> dict[str, Any]:
    """Totals by level and by category, for the admin stats card."""

    def compute():
        by_level = {level.value: 0 for level in QuestionLevel}
        for row in Question.objects.order_by().values("level").annotate(n=Count("id")):
            by_level[row["level"]] = row["n"]

        by_category = {
            str(category.pk): {"name": category.name, "count": category.n}
            for category in Category.objects.annotate(n=Count("questions"))
        }
        return {
            "total": sum(by_level.values()),
            "by_level": by_level,
            "by_category": by_category,
        }

    return cached(CacheRegion.ADMIN_STATS, ["question-counts"], compute)


def get_questions_metadata() -> dict[str, Any]:
    """Lightweight {question_id: {id, title, level, category_name}} map."""

    def compute():
        questions = {}
        for question in Question.objects.select_related("category").only(
            "id", "title", "level", "category__name"
        ):
            questions[str(question.pk)] = {
                "id": question.pk,
                "title": question.title,
                "level": question.level,
                "category_name": question.category.name,
            }
        return {"questions": questions}

    return cached(CacheRegion.QUESTIONS_METADATA, ["all"], compute)


def get_admin_questions_summary(page: int, size: int) -> dict[str, Any]:
    """One page of the admin question list, newest first."""

    def compute():
        qs = Question.objects.select_related("category", "created_by").order_by(
            "-created_at"
        )
        total = qs.count()
        start = page * size
        results = [
            {
                "id": question.pk,
                "title": question.title,
                "level": question.level,
                "category_name": question.category.name,
                "display_order": question.display_order,
                "image_count": len(question.image_urls or []),
                "has_code_snippets": bool(question.code_snippets),
                "created_by_name": (
                    question.created_by.display_name if question.created_by else "Unknown"
                ),
                "updated_at": question.updated_at.isoformat(),
            }
            for question in qs[start : start + size]
        ]
        return {"count": total, "page": page, "size": size, "results": results}

    return cached(
        CacheRegion.ADMIN_QUESTIONS_SUMMARY, [f"page{page}", f"size{size}"], compute
    )


# --- Display order tools ---


def _ordering_key(question: Question):
    # Questions without an explicit order sort last, oldest first
    order = question.display_order if question.display_order is not None else float("inf")
    return (order, question.created_at, question.pk)


def _sync_level_ids(category_id: Any, level: str) -> None:
    """Rewrite a category's level list to follow question display order."""
    category = Category.objects.select_for_update().get(pk=category_id)
    questions = sorted(
        Question.objects.filter(category_id=category_id, level=level), key=_ordering_key
    )
    setattr(category, f"{QuestionLevel(level).value}_question_ids", [q.pk for q in questions])
    category.recalculate_counts()
    category.save()


@transaction.atomic
def update_question_display_order(question: Question, display_order: int) -> Question:
    question.display_order = display_order
    question.save(update_fields=["display_order", "updated_at"])
    _sync_level_ids(question.category_id, question.level)
    return question


@transaction.atomic
def batch_update_question_display_order(updates: Iterable[dict[str, Any]]) -> int:
    """Apply [{question_id, display_order}, ...]; unknown ids are skipped.

    Returns:
        Number of questions updated
    """
    updated = 0
    touched = set()
    for update in updates:
        question = Question.objects.filter(pk=update["question_id"]).first()
        if question is None:
            continue
        question.display_order = update["display_order"]
        question.save(update_fields=["display_order", "updated_at"])
        touched.add((question.category_id, question.level))
        updated += 1

    for category_id, level in touched:
        _sync_level_ids(category_id, level)

    logger.info("Batch updated display order", extra={"updated": updated})
    return updated


def questions_for_ordering(category_id: Any, level: str) -> list[dict[str, Any]]:
    level = QuestionLevel.parse(level)
    questions = sorted(
        Question.objects.filter(category_id=category_id, level=level), key=_ordering_key
    )
    return [
        {
            "id": question.pk,
            "title": question.title,
            "display_order": question.display_order,
            "level": question.level,
        }
        for question in questions
    ]


@transaction.atomic
def reset_display_order(category_id: Any, level: str) -> int:
    """Renumber a category level 1..n keeping the current relative order.

    Returns:
        Number of questions renumbered
    """
    level = QuestionLevel.parse(level)
    questions = sorted(
        Question.objects.filter(category_id=category_id, level=level), key=_ordering_key
    )
    for position, question in enumerate(questions, start=1):
        question.display_order = position
        question.save(update_fields=["display_order", "updated_at"])

    if questions:
        _sync_level_ids(category_id, level)

    logger.info(
        "Reset display order",
        extra={"category_id": category_id, "level": level.value, "count": len(questions)},
    )
    return len(questions)
