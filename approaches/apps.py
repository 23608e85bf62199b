from django.apps import AppConfig


class ApproachesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "approaches"

    def ready(self):
        """Register the question-deletion purge hook."""
        from . import signals  # noqa: F401
