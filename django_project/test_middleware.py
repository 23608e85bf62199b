"""Tests for custom middleware."""

from django.http import HttpResponse
from django.test import RequestFactory, TestCase

from .middleware import NoCacheAPIMiddleware


class NoCacheAPIMiddlewareTests(TestCase):
    """Tests for NoCacheAPIMiddleware."""

    def setUp(self):
        self.factory = RequestFactory()
        self.middleware = NoCacheAPIMiddleware(get_response=lambda r: HttpResponse())

    def test_api_responses_are_not_cacheable(self):
        response = self.middleware(self.factory.get("/api/v1/approaches/mine/"))
        self.assertEqual(response["Cache-Control"], "no-cache, no-store, must-revalidate")
        self.assertEqual(response["Pragma"], "no-cache")
        self.assertEqual(response["Expires"], "0")

    def test_non_api_responses_untouched(self):
        response = self.middleware(self.factory.get("/django-admin/"))
        self.assertFalse(response.has_header("Pragma"))
