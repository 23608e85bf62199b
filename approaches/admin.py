from django.contrib import admin

from .models import UserApproaches


@admin.register(UserApproaches)
class UserApproachesAdmin(admin.ModelAdmin):
    list_display = ["user", "display_name", "total_approaches", "last_updated", "version"]
    search_fields = ["user__username", "user__email", "display_name"]
    readonly_fields = ["approaches", "total_approaches", "last_updated", "version"]
