"""Solved-question tracking and the per-user stats views built on it."""

import logging
import math
from datetime import timedelta
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from approaches.services import ApproachService
from django_project.cache import CacheRegion, cached, invalidate
from questions.models import Question, QuestionLevel

from .models import SolvedQuestion

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 15
RECENT_DAYS = 7

PROGRESS_REGIONS = frozenset({CacheRegion.USER_ME_STATS, CacheRegion.USER_PROGRESS_MAP})


class ProgressError(Exception):
    pass


class AlreadySolvedError(ProgressError):
    pass


class NotSolvedError(ProgressError):
    pass


def is_solved(user, question_id) -> bool:
    return SolvedQuestion.objects.filter(user=user, question_id=question_id).exists()


def mark_solved(user, question: Question) -> SolvedQuestion:
    """Record that the user solved a question.

    Raises:
        AlreadySolvedError: The question is already marked as solved
    """
    try:
        with transaction.atomic():
            solved = SolvedQuestion.objects.create(user=user, question=question)
    except IntegrityError:
        raise AlreadySolvedError("Question already marked as solved") from None

    invalidate(PROGRESS_REGIONS, user_id=user.pk)
    logger.info(
        "Marked question solved",
        extra={"user_id": user.pk, "question_id": question.pk},
    )
    return solved


def unmark_solved(user, question_id) -> None:
    """Remove the solved mark for a question.

    Raises:
        NotSolvedError: The question was not marked as solved
    """
    deleted, _ = SolvedQuestion.objects.filter(user=user, question_id=question_id).delete()
    if not deleted:
        raise NotSolvedError("Question not solved by user")

    invalidate(PROGRESS_REGIONS, user_id=user.pk)
    logger.info(
        "Unmarked question solved",
        extra={"user_id": user.pk, "question_id": question_id},
    )


def _compute_me_stats(user, page: int, size: int) -> dict[str, Any]:
    level_totals = {level.value: 0 for level in QuestionLevel}
    for row in Question.objects.order_by().values("level").annotate(n=Count("id")):
        level_totals[row["level"]] = row["n"]
    total_questions = sum(level_totals.values())

    solved = SolvedQuestion.objects.filter(user=user).select_related("question__category")
    level_solved = {level.value: 0 for level in QuestionLevel}
    for row in solved.order_by().values("question__level").annotate(n=Count("id")):
        level_solved[row["question__level"]] = row["n"]
    total_solved = sum(level_solved.values())

    recent_cutoff = timezone.now() - timedelta(days=RECENT_DAYS)
    recent_count = solved.filter(solved_at__gt=recent_cutoff).count()

    approach_counts = ApproachService().approach_counts(str(user.pk))
    start = page * size
    recent = [
        {
            "question_id": entry.question_id,
            "title": entry.question.title,
            "category": entry.question.category.name,
            "level": entry.question.level,
            "solved_at": entry.solved_at.isoformat(),
            "approach_count": approach_counts.get(str(entry.question_id), 0),
        }
        for entry in solved.order_by("-solved_at")[start : start + size]
    ]
    total_pages = math.ceil(total_solved / size) if size else 0

    return {
        "total_questions": total_questions,
        "total_solved": total_solved,
        "progress_percentage": (
            round(total_solved * 100 / total_questions, 2) if total_questions else 0.0
        ),
        "progress_by_level": {
            f"{level}_{kind}": counts[level]
            for level in level_totals
            for kind, counts in (("total", level_totals), ("solved", level_solved))
        },
        "recent_solved_count": recent_count,
        "recent_solved_questions": {
            "results": recent,
            "page": page,
            "size": size,
            "total_elements": total_solved,
            "total_pages": total_pages,
            "has_next": page < total_pages - 1,
            "has_previous": page > 0,
        },
    }


def get_me_stats(user, page: int = 0, size: int = DEFAULT_PAGE_SIZE) -> dict[str, Any]:
    """Overall and per-level progress plus a page of recently solved questions."""
    return cached(
        CacheRegion.USER_ME_STATS,
        [f"page{page}", f"size{size}"],
        lambda: _compute_me_stats(user, page, size),
        user_id=user.pk,
    )


def get_progress_map(user) -> dict[str, Any]:
    """{question_id: {solved_at, approach_count}} for every solved question."""

    def compute():
        approach_counts = ApproachService().approach_counts(str(user.pk))
        return {
            "solved_questions": {
                str(entry.question_id): {
                    "solved_at": entry.solved_at.isoformat(),
                    "approach_count": approach_counts.get(str(entry.question_id), 0),
                }
                for entry in SolvedQuestion.objects.filter(user=user)
            }
        }

    return cached(CacheRegion.USER_PROGRESS_MAP, ["all"], compute, user_id=user.pk)
