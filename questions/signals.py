"""Signal handlers for cache invalidation.

Any change to the catalogue retires the shared catalogue regions plus the
per-user stats and progress views of every user, since those embed question
totals, titles and category names.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from django_project.cache import CATALOGUE_REGIONS, CacheRegion, invalidate

from .models import Category, Question

CATALOGUE_AND_PROGRESS_REGIONS = CATALOGUE_REGIONS | {
    CacheRegion.USER_ME_STATS,
    CacheRegion.USER_PROGRESS_MAP,
}


@receiver(post_save, sender=Category, dispatch_uid="invalidate_category_save")
def invalidate_on_category_save(sender, instance, **kwargs):
    invalidate(CATALOGUE_AND_PROGRESS_REGIONS)


@receiver(post_delete, sender=Category, dispatch_uid="invalidate_category_delete")
def invalidate_on_category_delete(sender, instance, **kwargs):
    invalidate(CATALOGUE_AND_PROGRESS_REGIONS)


@receiver(post_save, sender=Question, dispatch_uid="invalidate_question_save")
def invalidate_on_question_save(sender, instance, **kwargs):
    invalidate(CATALOGUE_AND_PROGRESS_REGIONS)


@receiver(post_delete, sender=Question, dispatch_uid="invalidate_question_delete")
def invalidate_on_question_delete(sender, instance, **kwargs):
    invalidate(CATALOGUE_AND_PROGRESS_REGIONS)
