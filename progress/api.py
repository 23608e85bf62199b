"""REST API for solved-question progress and the user's stats views."""

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from questions.models import Question

from . import services


class SolvedQuestionView(APIView):
    """POST marks a question solved, DELETE removes the mark, GET reports it."""

    def get(self, request, question_id):
        return Response(
            {"question_id": question_id, "solved": services.is_solved(request.user, question_id)}
        )

    def post(self, request, question_id):
        question = get_object_or_404(Question, pk=question_id)
        try:
            solved = services.mark_solved(request.user, question)
        except services.AlreadySolvedError as e:
            return Response(
                {"success": False, "error": str(e)}, status=status.HTTP_400_BAD_REQUEST
            )
        return Response(
            {
                "success": True,
                "message": "Question marked as solved",
                "question_id": question.pk,
                "solved_at": solved.solved_at,
            },
            status=status.HTTP_201_CREATED,
        )

    def delete(self, request, question_id):
        try:
            services.unmark_solved(request.user, question_id)
        except services.NotSolvedError as e:
            return Response(
                {"success": False, "error": str(e)}, status=status.HTTP_404_NOT_FOUND
            )
        return Response({"success": True, "message": "Question unmarked as solved"})


class MeStatsView(APIView):
    """Progress overview for the current user (page is zero-based)."""

    def get(self, request):
        try:
            page = int(request.query_params.get("page", 0))
            size = int(request.query_params.get("size", services.DEFAULT_PAGE_SIZE))
        except ValueError:
            raise ValidationError("page and size must be integers.")
        if page < 0 or not 1 <= size <= 100:
            raise ValidationError("page must be >= 0 and size between 1 and 100.")
        return Response(services.get_me_stats(request.user, page, size))


class ProgressMapView(APIView):
    def get(self, request):
        return Response(services.get_progress_map(request.user))
