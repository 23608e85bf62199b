from django.conf import settings
from django.db import models
from django.utils import timezone


class SolvedQuestion(models.Model):
    """A question the user marked as solved.

    Rows are removed with the question (CASCADE), so deleting a question
    needs no scan over user progress.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="solved_questions",
    )
    question = models.ForeignKey(
        "questions.Question",
        on_delete=models.CASCADE,
        related_name="solved_by",
    )
    solved_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-solved_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "question"], name="unique_solved_question_per_user"
            )
        ]

    def __str__(self):
        return f"{self.user_id} solved {self.question_id}"
