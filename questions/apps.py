from django.apps import AppConfig


class QuestionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "questions"

    def ready(self):
        """Register signal handlers for cache invalidation."""
        from . import signals  # noqa: F401
