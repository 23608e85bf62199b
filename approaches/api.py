"""REST API for user approaches.

All routes are scoped to the requesting user; there is no way to read or
modify another user's approaches through this API.
"""

from typing import Any, List

from rest_framework import serializers, status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from django_project.cache import CacheRegion, cached
from django_project.throttles import ApproachReadThrottle, ApproachWriteThrottle

from .domain import ApproachDraft, NotFoundError, QuotaExceededError
from .repository import ConcurrentUpdateError
from .services import ApproachService

# --- Serializers ---


class ApproachMetadataSerializer(serializers.Serializer):
    """Approach without its text and code, for list views."""

    id = serializers.CharField()
    question_id = serializers.CharField()
    question_title = serializers.CharField()
    code_language = serializers.CharField()
    content_size = serializers.IntegerField()
    content_size_kb = serializers.FloatField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class ApproachDetailSerializer(ApproachMetadataSerializer):
    text_content = serializers.CharField()
    code_content = serializers.CharField(allow_null=True)


class ApproachWriteSerializer(serializers.Serializer):
    text_content = serializers.CharField(trim_whitespace=False)
    code_content = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, trim_whitespace=False
    )
    code_language = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=50
    )

    def validate_text_content(self, value):
        if len(value.strip()) < 10:
            raise serializers.ValidationError(
                "Text content must be at least 10 characters."
            )
        return value

    def validate_code_language(self, value):
        # Blank means "use the default"
        return value.strip().lower() if value and value.strip() else None


# --- Views ---


class ApproachViewSet(viewsets.ViewSet):
    """The current user's approaches, nested under a question.

    Read actions use the approach_read throttle scope and write actions the
    stricter approach_write scope, on top of the default user throttle.
    """

    permission_classes = [IsAuthenticated]
    read_actions = ("list", "retrieve", "usage", "mine")
    write_actions = ("create", "update", "destroy")

    def get_throttles(self) -> List[Any]:
        throttles = super().get_throttles()
        if self.action in self.write_actions:
            throttles.append(ApproachWriteThrottle())
        elif self.action in self.read_actions:
            throttles.append(ApproachReadThrottle())
        return throttles

    def get_service(self) -> ApproachService:
        return ApproachService()

    def handle_exception(self, exc):
        """Map approach store errors onto {success: false, error} responses."""
        if isinstance(exc, NotFoundError):
            return Response(
                {"success": False, "error": str(exc)},
                status=status.HTTP_404_NOT_FOUND,
            )
        if isinstance(exc, QuotaExceededError):
            return Response(
                {"success": False, "error": str(exc), "quota": exc.to_dict()},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if isinstance(exc, ConcurrentUpdateError):
            return Response(
                {
                    "success": False,
                    "error": "Your approaches were modified by another request. Please retry.",
                },
                status=status.HTTP_409_CONFLICT,
            )
        return super().handle_exception(exc)

    def _user_id(self) -> str:
        return str(self.request.user.pk)

    def list(self, request, question_id=None):
        user_id = self._user_id()

        def compute():
            approaches = self.get_service().list_for_question(user_id, question_id)
            return [dict(item) for item in ApproachMetadataSerializer(approaches, many=True).data]

        data = cached(
            CacheRegion.APPROACHES, ["question", question_id], compute, user_id=user_id
        )
        return Response({"success": True, "data": data, "count": len(data)})

    def retrieve(self, request, question_id=None, pk=None):
        approach = self.get_service().get_detail(self._user_id(), question_id, pk)
        return Response({"success": True, "data": self._detail(approach)})

    def create(self, request, question_id=None):
        serializer = ApproachWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        draft = ApproachDraft(**serializer.validated_data)

        approach = self.get_service().create(
            self._user_id(), request.user.display_name, question_id, draft
        )
        return Response(
            {
                "success": True,
                "message": "Approach created successfully",
                "data": self._detail(approach),
            },
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, question_id=None, pk=None):
        serializer = ApproachWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        approach = self.get_service().update(
            self._user_id(), question_id, pk, **serializer.validated_data
        )
        return Response(
            {
                "success": True,
                "message": "Approach updated successfully",
                "data": self._detail(approach),
            }
        )

    def destroy(self, request, question_id=None, pk=None):
        self.get_service().delete(self._user_id(), question_id, pk)
        return Response({"success": True, "message": "Approach deleted successfully"})

    def usage(self, request, question_id=None):
        usage = self.get_service().usage(self._user_id(), question_id)
        return Response({"success": True, "data": usage.to_dict()})

    def mine(self, request):
        user_id = self._user_id()

        def compute():
            approaches = self.get_service().list_all(user_id)
            return [dict(item) for item in ApproachMetadataSerializer(approaches, many=True).data]

        data = cached(CacheRegion.APPROACHES, ["all"], compute, user_id=user_id)
        return Response({"success": True, "data": data, "count": len(data)})

    def _detail(self, approach):
        data = dict(ApproachDetailSerializer(approach).data)
        data["user_id"] = self._user_id()
        data["user_name"] = self.request.user.display_name
        return data
