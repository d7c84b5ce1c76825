"""DRF Serializers for the sales targets module.

Decimal values are rendered as strings with two fractional digits
(``COERCE_DECIMAL_TO_STRING``), never as floats.
"""
from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from shops.models import ShopMembership
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


def _amount_field(**kwargs):
    return serializers.DecimalField(max_digits=14, decimal_places=2, **kwargs)


def _ratio_field(**kwargs):
    # Achievement ratios are unbounded: large sales against a small target.
    return serializers.DecimalField(max_digits=20, decimal_places=2, **kwargs)


def _percent_field(**kwargs):
    return serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
        **kwargs,
    )


# ────────────────────────────────────────────────────────────
# Periods & weeks
# ────────────────────────────────────────────────────────────

class PeriodWeekSerializer(serializers.ModelSerializer):
    class Meta:
        model = PeriodWeek
        fields = ["id", "week_index", "start_date", "end_date", "day_count"]


class PeriodSerializer(serializers.ModelSerializer):
    label = serializers.CharField(read_only=True)
    is_dirty = serializers.SerializerMethodField()

    class Meta:
        model = Period
        fields = ["id", "shop", "year", "month", "label", "status", "is_dirty", "created_at"]
        read_only_fields = fields

    def get_is_dirty(self, obj) -> bool:
        flag = getattr(obj, "recalc_flag", None)
        return bool(flag is None or flag.is_dirty)


class PeriodDetailSerializer(PeriodSerializer):
    weeks = PeriodWeekSerializer(many=True, read_only=True)

    class Meta(PeriodSerializer.Meta):
        fields = PeriodSerializer.Meta.fields + ["weeks"]
        read_only_fields = fields


class PeriodCreateSerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=2000, max_value=2100)
    month = serializers.IntegerField(min_value=1, max_value=12)


class StatusTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Period.Status.choices)


class RecalcFlagSerializer(serializers.ModelSerializer):
    class Meta:
        model = RecalcFlag
        fields = ["is_dirty", "reason", "marked_at", "cleared_at"]


# ────────────────────────────────────────────────────────────
# Configuration
# ────────────────────────────────────────────────────────────

class MonthlyTargetSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source="category.name", read_only=True)
    unit = serializers.CharField(source="category.unit", read_only=True)

    class Meta:
        model = MonthlyTarget
        fields = ["id", "category", "category_name", "unit", "target_value"]


class MonthlyTargetItemSerializer(serializers.Serializer):
    category = serializers.UUIDField()
    target_value = _amount_field(min_value=Decimal("0"))


class WeeklyDistributionSerializer(serializers.ModelSerializer):
    week_index = serializers.IntegerField(source="week.week_index", read_only=True)

    class Meta:
        model = WeeklyDistribution
        fields = ["id", "week_index", "percentage"]


class WeeklyDistributionItemSerializer(serializers.Serializer):
    week_index = serializers.IntegerField(min_value=1)
    percentage = _percent_field()


class WeeklyRoleWeightSerializer(serializers.ModelSerializer):
    week_index = serializers.IntegerField(source="week.week_index", read_only=True)

    class Meta:
        model = WeeklyRoleWeight
        fields = ["id", "week_index", "role", "weight_percentage"]


class WeeklyRoleWeightItemSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=ShopMembership.Role.choices)
    weight_percentage = _percent_field()


def validate_items(serializer_class, data, key: str):
    """Validate the ``key`` list of a bulk PUT payload."""
    items = data.get(key) if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise serializers.ValidationError({key: "Une liste est attendue."})
    serializer = serializer_class(data=items, many=True)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


# ────────────────────────────────────────────────────────────
# Derived targets & leaderboard
# ────────────────────────────────────────────────────────────

class UserWeekTargetSerializer(serializers.ModelSerializer):
    week_index = serializers.IntegerField(source="week.week_index", read_only=True)

    class Meta:
        model = UserWeekTarget
        fields = ["id", "week_index", "user", "category", "target_value"]


class LeaderboardSnapshotSerializer(serializers.ModelSerializer):
    class Meta:
        model = LeaderboardSnapshot
        fields = ["id", "period", "sequence", "rules_version", "computed_at"]


class LeaderboardRowSerializer(serializers.ModelSerializer):
    user_name = serializers.SerializerMethodField()

    class Meta:
        model = LeaderboardRow
        fields = [
            "rank", "user", "user_name", "score", "total_target",
            "achievement_pct", "trend", "streak_days",
        ]

    def get_user_name(self, obj) -> str:
        return obj.user.display_name


class SnapshotRequestSerializer(serializers.Serializer):
    rules_version = serializers.CharField(max_length=32, required=False, allow_blank=False)


# ────────────────────────────────────────────────────────────
# Progress read models
# ────────────────────────────────────────────────────────────

class CategoryProgressSerializer(serializers.Serializer):
    category_id = serializers.UUIDField()
    target = _amount_field()
    achieved = _amount_field()
    achievement_pct = _ratio_field()


class UserWeekProgressSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()
    categories = CategoryProgressSerializer(many=True)
    total_target = _amount_field()
    total_achieved = _amount_field()
    achievement_pct = _ratio_field()


class WeekProgressSerializer(serializers.Serializer):
    week_index = serializers.IntegerField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    day_count = serializers.IntegerField()
    users = UserWeekProgressSerializer(many=True)


class CategoryPerformanceSerializer(serializers.Serializer):
    category_id = serializers.UUIDField()
    category_name = serializers.CharField()
    unit = serializers.CharField()
    target = _amount_field()
    achieved = _amount_field()
    remaining = _amount_field()
    achievement_pct = _ratio_field()
