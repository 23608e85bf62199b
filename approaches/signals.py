"""Purge stored approaches when a question is deleted."""

from django.db import transaction
from django.db.models.signals import post_delete
from django.dispatch import receiver

from questions.models import Question

from .tasks import purge_question_approaches


@receiver(post_delete, sender=Question, dispatch_uid="purge_approaches_on_question_delete")
def purge_approaches_on_question_delete(sender, instance, **kwargs):
    question_id = str(instance.pk)
    transaction.on_commit(lambda: purge_question_approaches.delay(question_id))
