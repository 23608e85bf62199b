"""Celery tasks for approach maintenance."""

import logging

from celery import shared_task

from .repository import ConcurrentUpdateError

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    time_limit=300,
    autoretry_for=(ConcurrentUpdateError,),
    retry_backoff=True,
    max_retries=3,
)
def purge_question_approaches(self, question_id):
    """Remove every user's approaches for a deleted question.

    Safe to run more than once: collections already cleaned are skipped.

    Returns:
        Number of approaches removed
    """
    from .services import ApproachService

    removed = ApproachService().remove_all_for_question(str(question_id))
    logger.info(
        "Purged approaches for deleted question",
        extra={"question_id": question_id, "removed": removed, "task_id": self.request.id},
    )
    return removed
