from django.conf import settings
from django.db import models


class UserApproaches(models.Model):
    """Storage row for one user's ApproachCollection.

    The approaches field holds the whole collection as a JSON document keyed
    by question id. version is bumped on every write and used as a
    compare-and-swap token by DjangoApproachRepository.

    Attributes:
        user (OneToOneField): Owner of the collection
        display_name (CharField): Owner name at the time of the last write
        approaches (JSONField): {question_id: [approach, ...]}
        total_approaches (PositiveIntegerField): Number of stored approaches
        last_updated (DateTimeField): Time of the last mutation
        version (PositiveIntegerField): Optimistic concurrency token
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="approach_collection",
    )
    display_name = models.CharField(max_length=150, blank=True)
    approaches = models.JSONField(default=dict, blank=True)
    total_approaches = models.PositiveIntegerField(default=0)
    last_updated = models.DateTimeField(null=True, blank=True)
    version = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "user_approaches"
        verbose_name = "user approaches"
        verbose_name_plural = "user approaches"

    def __str__(self):
        return f"{self.display_name or self.user_id} ({self.total_approaches} approaches)"
