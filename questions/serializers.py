"""Serializers for the question catalogue."""

from rest_framework import serializers

from .models import Category, Question, QuestionLevel
from .services import category_name_taken, question_title_taken


class CategorySerializer(serializers.ModelSerializer):
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = [
            "id",
            "name",
            "display_order",
            "easy_question_ids",
            "medium_question_ids",
            "hard_question_ids",
            "easy_count",
            "medium_count",
            "hard_count",
            "total_questions",
            "created_by_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "easy_question_ids",
            "medium_question_ids",
            "hard_question_ids",
            "easy_count",
            "medium_count",
            "hard_count",
            "total_questions",
            "created_by_name",
            "created_at",
            "updated_at",
        ]
        extra_kwargs = {"display_order": {"required": False}}

    def get_created_by_name(self, obj):
        return obj.created_by.display_name if obj.created_by else None

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Category name is required.")
        exclude_id = self.instance.pk if self.instance else None
        if category_name_taken(value, exclude_id=exclude_id):
            raise serializers.ValidationError("Category with this name already exists.")
        return value


class CategoryOrderSerializer(serializers.Serializer):
    """{"orders": {"<category_id>": <display_order>, ...}}"""

    orders = serializers.DictField(child=serializers.IntegerField(min_value=0))


class CodeSnippetSerializer(serializers.Serializer):
    language = serializers.CharField(max_length=50)
    code = serializers.CharField(trim_whitespace=False)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class QuestionSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source="category.name", read_only=True)
    created_by_name = serializers.SerializerMethodField()
    level = serializers.CharField()
    code_snippets = CodeSnippetSerializer(many=True, required=False)
    image_urls = serializers.ListField(
        child=serializers.URLField(), required=False, allow_empty=True
    )

    class Meta:
        model = Question
        fields = [
            "id",
            "title",
            "statement",
            "image_urls",
            "code_snippets",
            "category",
            "category_name",
            "level",
            "display_order",
            "created_by_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "category_name", "created_by_name", "created_at", "updated_at"]
        extra_kwargs = {"display_order": {"required": False, "allow_null": True}}

    def get_created_by_name(self, obj):
        return obj.created_by.display_name if obj.created_by else None

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Question title is required.")
        exclude_id = self.instance.pk if self.instance else None
        if question_title_taken(value, exclude_id=exclude_id):
            raise serializers.ValidationError("Question with this title already exists.")
        return value

    def validate_level(self, value):
        try:
            return QuestionLevel.parse(value).value
        except ValueError as e:
            raise serializers.ValidationError(str(e))


class QuestionSummarySerializer(serializers.ModelSerializer):
    """List representation without the statement body."""

    category_name = serializers.CharField(source="category.name", read_only=True)

    class Meta:
        model = Question
        fields = ["id", "title", "category", "category_name", "level", "display_order", "created_at"]
        read_only_fields = fields


class DisplayOrderSerializer(serializers.Serializer):
    display_order = serializers.IntegerField(min_value=1)


class DisplayOrderUpdateSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    display_order = serializers.IntegerField(min_value=1)


class BatchDisplayOrderSerializer(serializers.Serializer):
    updates = DisplayOrderUpdateSerializer(many=True, allow_empty=False)


class CategoryLevelQuerySerializer(serializers.Serializer):
    category_id = serializers.IntegerField()
    level = serializers.CharField()

    def validate_level(self, value):
        try:
            return QuestionLevel.parse(value).value
        except ValueError as e:
            raise serializers.ValidationError(str(e))
