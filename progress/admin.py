from django.contrib import admin

from .models import SolvedQuestion


@admin.register(SolvedQuestion)
class SolvedQuestionAdmin(admin.ModelAdmin):
    list_display = ["user", "question", "solved_at"]
    list_filter = ["solved_at"]
    search_fields = ["user__username", "question__title"]
    date_hierarchy = "solved_at"
