from __future__ import annotations

from typing import Any

from django.conf import settings
from django.db import models


class QuestionLevel(models.TextChoices):
    EASY = "easy", "Easy"
    MEDIUM = "medium", "Medium"
    HARD = "hard", "Hard"

    @classmethod
    def parse(cls, value: str) -> QuestionLevel:
        """Parse a level name case-insensitively ("EASY", "easy", "Easy")."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid question level: {value}") from None


class Category(models.Model):
    """Question category with denormalized per-level question lists.

    The per-level id lists and counters are maintained by hand whenever a
    question is created, moved or deleted (see questions.services), so the
    global category view can be built from one query without touching the
    question table.

    Attributes:
        name (CharField): Unique category name (case-insensitive in services)
        display_order (PositiveIntegerField): Sort key for category listings
        easy_question_ids (JSONField): Ordered ids of easy questions
        medium_question_ids (JSONField): Ordered ids of medium questions
        hard_question_ids (JSONField): Ordered ids of hard questions
        easy_count / medium_count / hard_count (PositiveIntegerField): List lengths
        total_questions (PositiveIntegerField): Sum of the three counts
        created_by (ForeignKey): Admin who created the category
    """

    name = models.CharField(max_length=100, unique=True)
    display_order = models.PositiveIntegerField(default=0, db_index=True)
    easy_question_ids = models.JSONField(default=list, blank=True)
    medium_question_ids = models.JSONField(default=list, blank=True)
    hard_question_ids = models.JSONField(default=list, blank=True)
    easy_count = models.PositiveIntegerField(default=0)
    medium_count = models.PositiveIntegerField(default=0)
    hard_count = models.PositiveIntegerField(default=0)
    total_questions = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "categories"
        ordering = ["display_order", "name"]

    def __str__(self) -> str:
        return self.name

    def _ids_field(self, level: str) -> str:
        return f"{QuestionLevel(level).value}_question_ids"

    def question_ids_for(self, level: str) -> list[Any]:
        return getattr(self, self._ids_field(level))

    def add_question_id(self, question_id: Any, level: str) -> None:
        """Append a question id to the level list (no-op if already present)."""
        ids = self.question_ids_for(level)
        if question_id not in ids:
            ids.append(question_id)
        self.recalculate_counts()

    def remove_question_id(self, question_id: Any, level: str) -> None:
        ids = self.question_ids_for(level)
        if question_id in ids:
            ids.remove(question_id)
        self.recalculate_counts()

    def recalculate_counts(self) -> None:
        self.easy_count = len(self.easy_question_ids)
        self.medium_count = len(self.medium_question_ids)
        self.hard_count = len(self.hard_question_ids)
        self.total_questions = self.easy_count + self.medium_count + self.hard_count


class Question(models.Model):
    """Coding problem belonging to one category at one difficulty level.

    Attributes:
        title (CharField): Unique title (case-insensitive in services)
        statement (TextField): Problem statement (markdown)
        image_urls (JSONField): List of image URLs embedded in the statement
        code_snippets (JSONField): List of {language, code, description} dicts
        category (ForeignKey): Owning category
        level (CharField): easy / medium / hard
        display_order (PositiveIntegerField): Order within category + level
        created_by (ForeignKey): Admin who created the question
    """

    title = models.CharField(max_length=200, unique=True)
    statement = models.TextField()
    image_urls = models.JSONField(default=list, blank=True)
    code_snippets = models.JSONField(default=list, blank=True)
    category = models.ForeignKey(
        Category,
        on_delete=models.CASCADE,
        related_name="questions",
    )
    level = models.CharField(
        max_length=10,
        choices=QuestionLevel.choices,
        db_index=True,
    )
    display_order = models.PositiveIntegerField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["category", "level", "display_order"],
                name="question_cat_level_order_idx",
            ),
        ]

    def __str__(self) -> str:
        return self.title
