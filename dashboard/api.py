"""Admin dashboard endpoints."""

from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsCatalogueAdmin
from questions.services import get_admin_questions_summary

from .services import get_admin_overview


class AdminOverviewView(APIView):
    """Site statistics. Optional ?start=&end= ISO datetimes set the window."""

    permission_classes = [IsCatalogueAdmin]

    def _parse(self, name):
        value = self.request.query_params.get(name)
        if not value:
            return None
        parsed = parse_datetime(value)
        if parsed is None:
            raise ValidationError({name: "Invalid datetime."})
        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed)
        return parsed

    def get(self, request):
        start = self._parse("start")
        end = self._parse("end")
        if start and end and start > end:
            raise ValidationError("start must be before end.")
        return Response(get_admin_overview(start, end))


class AdminQuestionSummaryView(APIView):
    """Paginated admin question list (page is zero-based)."""

    permission_classes = [IsCatalogueAdmin]

    def get(self, request):
        try:
            page = max(int(request.query_params.get("page", 0)), 0)
            size = min(max(int(request.query_params.get("size", 20)), 1), 100)
        except ValueError:
            raise ValidationError("page and size must be integers.")
        return Response(get_admin_questions_summary(page, size))
