from django.contrib import admin

from achievements.models import Achievement


@admin.register(Achievement)
class AchievementAdmin(admin.ModelAdmin):
    list_display = ("occurred_on", "user", "shop", "category", "achieved_value", "source")
    list_filter = ("source", "shop", "category")
    search_fields = ("user__email", "category__name")
    date_hierarchy = "occurred_on"
    readonly_fields = ("created_at", "updated_at")
