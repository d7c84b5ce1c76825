"""Read models for the progress dashboards (weekly and per category)."""
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from django.db.models import Sum

from achievements.models import Achievement
from targets.leaderboard import achievement_percentage
from targets.models import MonthlyTarget, Period, UserWeekTarget
from targets.validators import ZERO


def weekly_progress(period: Period) -> list[dict]:
    """Per week, per user: target vs achieved for each category.

    Only users holding a derived target for the week are listed.
    """
    targets: dict = defaultdict(lambda: defaultdict(dict))
    for week_id, user_id, category_id, value in UserWeekTarget.objects.filter(period=period).values_list(
        "week_id", "user_id", "category_id", "target_value"
    ):
        targets[week_id][user_id][category_id] = value

    weeks = []
    for week in period.weeks.order_by("week_index"):
        achieved: dict = defaultdict(dict)
        rows = (
            Achievement.objects.filter(
                shop_id=period.shop_id,
                occurred_on__gte=week.start_date,
                occurred_on__lte=week.end_date,
            )
            .values("user_id", "category_id")
            .annotate(total=Sum("achieved_value"))
        )
        for row in rows:
            achieved[row["user_id"]][row["category_id"]] = row["total"] or ZERO

        users = []
        for user_id in sorted(targets.get(week.pk, {}), key=str):
            by_category = targets[week.pk][user_id]
            categories = []
            for category_id in sorted(by_category, key=str):
                target = by_category[category_id]
                done = achieved[user_id].get(category_id, ZERO)
                categories.append(
                    {
                        "category_id": category_id,
                        "target": target,
                        "achieved": done,
                        "achievement_pct": achievement_percentage(done, target),
                    }
                )
            total_target = sum((c["target"] for c in categories), ZERO)
            total_achieved = sum((c["achieved"] for c in categories), ZERO)
            users.append(
                {
                    "user_id": user_id,
                    "categories": categories,
                    "total_target": total_target,
                    "total_achieved": total_achieved,
                    "achievement_pct": achievement_percentage(total_achieved, total_target),
                }
            )
        weeks.append(
            {
                "week_index": week.week_index,
                "start_date": week.start_date,
                "end_date": week.end_date,
                "day_count": week.day_count,
                "users": users,
            }
        )
    return weeks


def category_performance(period: Period) -> list[dict]:
    """Per category: monthly target vs everything achieved in the period."""
    achieved = dict(
        Achievement.objects.filter(
            shop_id=period.shop_id,
            occurred_on__gte=period.start_date,
            occurred_on__lte=period.end_date,
        )
        .values("category_id")
        .annotate(total=Sum("achieved_value"))
        .values_list("category_id", "total")
    )
    result = []
    for target in MonthlyTarget.objects.filter(period=period).select_related("category").order_by(
        "category__sort_order", "category__name"
    ):
        done: Decimal = achieved.get(target.category_id) or ZERO
        result.append(
            {
                "category_id": target.category_id,
                "category_name": target.category.name,
                "unit": target.category.unit,
                "target": target.target_value,
                "achieved": done,
                "remaining": max(target.target_value - done, ZERO),
                "achievement_pct": achievement_percentage(done, target.target_value),
            }
        )
    return result
