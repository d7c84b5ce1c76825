"""Django admin for the sales targets module.

Configuration rows are shown read-only: edits go through
``targets.services`` so the percentage rules and the recalc flag hold.
Derived targets and leaderboard snapshots are never editable.
"""
from django.contrib import admin

from targets.models import (
    LeaderboardRow,
    LeaderboardSnapshot,
    MonthlyTarget,
    Period,
    PeriodWeek,
    RecalcFlag,
    UserWeekTarget,
    WeeklyDistribution,
    WeeklyRoleWeight,
)


class ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class PeriodWeekInline(ReadOnlyInline):
    model = PeriodWeek
    fields = ("week_index", "start_date", "end_date", "day_count")
    ordering = ("week_index",)


class MonthlyTargetInline(ReadOnlyInline):
    model = MonthlyTarget
    fields = ("category", "target_value")


class WeeklyDistributionInline(ReadOnlyInline):
    model = WeeklyDistribution
    fields = ("week", "percentage")


class WeeklyRoleWeightInline(ReadOnlyInline):
    model = WeeklyRoleWeight
    fields = ("week", "role", "weight_percentage")


@admin.register(Period)
class PeriodAdmin(admin.ModelAdmin):
    list_display = ("label", "shop", "status", "is_dirty", "created_at")
    list_filter = ("status", "shop")
    search_fields = ("shop__name",)
    readonly_fields = ("shop", "year", "month", "status", "created_at", "updated_at")
    inlines = [
        PeriodWeekInline,
        MonthlyTargetInline,
        WeeklyDistributionInline,
        WeeklyRoleWeightInline,
    ]

    def is_dirty(self, obj):
        flag = getattr(obj, "recalc_flag", None)
        return bool(flag and flag.is_dirty)
    is_dirty.boolean = True
    is_dirty.short_description = "A recalculer"


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(RecalcFlag)
class RecalcFlagAdmin(ReadOnlyAdmin):
    list_display = ("period", "is_dirty", "reason", "marked_at", "cleared_at")
    list_filter = ("is_dirty",)


@admin.register(UserWeekTarget)
class UserWeekTargetAdmin(ReadOnlyAdmin):
    list_display = ("period", "week", "user", "category", "target_value")
    list_filter = ("period__shop", "category")
    search_fields = ("user__email",)


class LeaderboardRowInline(ReadOnlyInline):
    model = LeaderboardRow
    fields = ("rank", "user", "score", "total_target", "achievement_pct", "trend", "streak_days")
    ordering = ("rank",)


@admin.register(LeaderboardSnapshot)
class LeaderboardSnapshotAdmin(ReadOnlyAdmin):
    list_display = ("period", "sequence", "rules_version", "computed_at")
    list_filter = ("rules_version", "period__shop")
    inlines = [LeaderboardRowInline]
