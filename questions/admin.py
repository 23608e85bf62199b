from django.contrib import admin

from .models import Category, Question


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "display_order", "easy_count", "medium_count", "hard_count", "total_questions"]
    search_fields = ["name"]
    readonly_fields = [
        "easy_question_ids",
        "medium_question_ids",
        "hard_question_ids",
        "easy_count",
        "medium_count",
        "hard_count",
        "total_questions",
    ]


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ["title", "category", "level", "display_order", "created_at"]
    list_filter = ["level", "category"]
    search_fields = ["title", "statement"]
    date_hierarchy = "created_at"
