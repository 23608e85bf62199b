"""
Tests for Celery configuration and task registration.

Verifies:
- Celery app is configured from Django settings
- JSON-only serialization
- Project tasks are discovered and run eagerly in tests
"""

from django.test import TestCase

from django_project.celery import app


class CeleryConfigurationTests(TestCase):
    """Test Celery app configuration."""

    def test_celery_app_exists(self):
        self.assertEqual(app.main, "algotrack")

    def test_celery_broker_url_configured(self):
        broker_url = app.conf.broker_url
        self.assertIsNotNone(broker_url)
        self.assertTrue(broker_url.startswith("redis://"))

    def test_celery_accepts_json_only(self):
        self.assertEqual(list(app.conf.accept_content), ["json"])

    def test_celery_serializers_are_json(self):
        self.assertEqual(app.conf.task_serializer, "json")
        self.assertEqual(app.conf.result_serializer, "json")

    def test_celery_timezone_configured(self):
        self.assertEqual(app.conf.timezone, "UTC")

    def test_tasks_run_eagerly_in_tests(self):
        self.assertTrue(app.conf.task_always_eager)


class CeleryTaskRegistrationTests(TestCase):
    def test_purge_task_is_registered(self):
        from approaches.tasks import purge_question_approaches

        app.loader.import_default_modules()
        self.assertIn(purge_question_approaches.name, app.tasks)

    def test_purge_task_retries_on_version_conflicts(self):
        from approaches.repository import ConcurrentUpdateError
        from approaches.tasks import purge_question_approaches

        self.assertIn(ConcurrentUpdateError, purge_question_approaches.autoretry_for)
        self.assertEqual(purge_question_approaches.max_retries, 3)
