"""REST API for the question catalogue: categories, questions, display order."""

from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsCatalogueAdmin, IsCatalogueAdminOrReadOnly

from . import services
from .models import Category, Question
from .serializers import (
    BatchDisplayOrderSerializer,
    CategoryLevelQuerySerializer,
    CategoryOrderSerializer,
    CategorySerializer,
    DisplayOrderSerializer,
    QuestionSerializer,
    QuestionSummarySerializer,
)


class CategoryViewSet(viewsets.ViewSet):
    """Category CRUD. Reads for any authenticated user, writes for admins."""

    permission_classes = [IsCatalogueAdminOrReadOnly]

    def list(self, request):
        return Response(services.get_admin_categories())

    def retrieve(self, request, pk=None):
        category = get_object_or_404(Category, pk=pk)
        return Response(CategorySerializer(category).data)

    def create(self, request):
        serializer = CategorySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        category = services.create_category(
            name=serializer.validated_data["name"],
            display_order=serializer.validated_data.get("display_order"),
            created_by=request.user,
        )
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        category = get_object_or_404(Category, pk=pk)
        serializer = CategorySerializer(category, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        category = services.update_category(
            category,
            name=serializer.validated_data.get("name"),
            display_order=serializer.validated_data.get("display_order"),
        )
        return Response(CategorySerializer(category).data)

    def destroy(self, request, pk=None):
        category = get_object_or_404(Category, pk=pk)
        result = services.delete_category(category)
        return Response(
            {"success": True, "message": "Category deleted successfully", **result}
        )

    @action(detail=False, methods=["put"], url_path="display-order")
    def display_order(self, request):
        serializer = CategoryOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        categories = services.batch_update_category_order(serializer.validated_data["orders"])
        return Response(CategorySerializer(categories, many=True).data)


class QuestionViewSet(viewsets.ViewSet):
    """Question CRUD plus search, counts and metadata."""

    permission_classes = [IsCatalogueAdminOrReadOnly]

    def list(self, request):
        params = request.query_params
        try:
            queryset = services.filter_questions(
                category_id=params.get("category"),
                level=params.get("level"),
                search=params.get("search"),
            )
        except ValueError as e:
            raise ValidationError(str(e))

        paginator = PageNumberPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        data = QuestionSummarySerializer(page, many=True).data
        return paginator.get_paginated_response(data)

    def retrieve(self, request, pk=None):
        question = get_object_or_404(
            Question.objects.select_related("category", "created_by"), pk=pk
        )
        return Response(QuestionSerializer(question).data)

    def create(self, request):
        serializer = QuestionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        question = services.create_question(
            title=data["title"],
            statement=data["statement"],
            category=data["category"],
            level=data["level"],
            created_by=request.user,
            image_urls=data.get("image_urls"),
            code_snippets=[dict(snippet) for snippet in data.get("code_snippets", [])],
            display_order=data.get("display_order"),
        )
        return Response(QuestionSerializer(question).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        question = get_object_or_404(Question, pk=pk)
        serializer = QuestionSerializer(question, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)
        if "code_snippets" in changes:
            changes["code_snippets"] = [dict(snippet) for snippet in changes["code_snippets"]]
        question = services.update_question(question, **changes)
        return Response(QuestionSerializer(question).data)

    def destroy(self, request, pk=None):
        question = get_object_or_404(Question, pk=pk)
        services.delete_question(question)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"])
    def search(self, request):
        term = request.query_params.get("q", "").strip()
        if not term:
            raise ValidationError({"q": "Search term is required."})
        questions = services.search_questions(term)
        return Response(QuestionSummarySerializer(questions, many=True).data)

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return Response(services.get_question_counts())

    @action(detail=False, methods=["get"])
    def metadata(self, request):
        return Response(services.get_questions_metadata())


class GlobalCategoriesInfoView(APIView):
    """Per-category question id lists and counts for the question browser."""

    def get(self, request):
        return Response(services.get_global_categories_info())


class QuestionDisplayOrderViewSet(viewsets.ViewSet):
    """Admin tools for ordering questions inside a category level."""

    permission_classes = [IsCatalogueAdmin]

    def update_one(self, request, pk=None):
        question = get_object_or_404(Question, pk=pk)
        serializer = DisplayOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.update_question_display_order(
            question, serializer.validated_data["display_order"]
        )
        return Response(
            {
                "success": True,
                "question_id": question.pk,
                "display_order": question.display_order,
            }
        )

    def batch(self, request):
        serializer = BatchDisplayOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        updated = services.batch_update_question_display_order(
            serializer.validated_data["updates"]
        )
        return Response({"success": True, "updated_count": updated})

    def by_category_level(self, request):
        serializer = CategoryLevelQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        questions = services.questions_for_ordering(
            serializer.validated_data["category_id"], serializer.validated_data["level"]
        )
        return Response({"questions": questions, "count": len(questions)})

    def reset(self, request):
        serializer = CategoryLevelQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        count = services.reset_display_order(
            serializer.validated_data["category_id"], serializer.validated_data["level"]
        )
        return Response({"success": True, "reset_count": count})
