from datetime import date
from decimal import Decimal

import pytest

from achievements.models import Achievement
from targets import allocation, services
from targets.models import LeaderboardSnapshot, Period, UserWeekTarget
from targets.progress import category_performance, weekly_progress
from targets.tasks import (
    compute_period_leaderboard,
    recompute_period_targets,
    refresh_published_leaderboards,
)


@pytest.mark.django_db
def test_weekly_progress_compares_targets_with_achievements(
    configured_period, shop, category, junior_users, senior_user,
):
    allocation.recompute(configured_period)
    Achievement.objects.create(
        shop=shop, user=junior_users[0], category=category,
        occurred_on=date(2026, 2, 3), achieved_value=Decimal("25.00"),
    )
    Achievement.objects.create(
        shop=shop, user=junior_users[0], category=category,
        occurred_on=date(2026, 2, 9), achieved_value=Decimal("60.00"),
    )

    weeks = weekly_progress(configured_period)

    assert [week["week_index"] for week in weeks] == [1, 2, 3, 4]
    week_one = {row["user_id"]: row for row in weeks[0]["users"]}
    assert set(week_one) == {user.pk for user in junior_users + [senior_user]}
    junior = week_one[junior_users[0].pk]
    assert junior["total_target"] == Decimal("50.00")
    assert junior["total_achieved"] == Decimal("25.00")
    assert junior["achievement_pct"] == Decimal("50.00")
    week_two = {row["user_id"]: row for row in weeks[1]["users"]}
    assert week_two[junior_users[0].pk]["achievement_pct"] == Decimal("120.00")


@pytest.mark.django_db
def test_weekly_progress_is_empty_before_recompute(configured_period):
    weeks = weekly_progress(configured_period)

    assert len(weeks) == 4
    assert all(week["users"] == [] for week in weeks)


@pytest.mark.django_db
def test_category_performance_reports_remaining_amount(configured_period, shop, category, senior_user):
    Achievement.objects.create(
        shop=shop, user=senior_user, category=category,
        occurred_on=date(2026, 2, 20), achieved_value=Decimal("400.00"),
    )

    rows = category_performance(configured_period)

    assert rows == [
        {
            "category_id": category.pk,
            "category_name": "Smartphones",
            "unit": "currency",
            "target": Decimal("1000.00"),
            "achieved": Decimal("400.00"),
            "remaining": Decimal("600.00"),
            "achievement_pct": Decimal("40.00"),
        }
    ]


# ---------------------------------------------------------------------------
# Celery tasks
# ---------------------------------------------------------------------------

@pytest.mark.django_db
def test_recompute_task_writes_targets(configured_period):
    result = recompute_period_targets(period_id=str(configured_period.pk))

    assert result == {"period_id": str(configured_period.pk), "rows_written": 16}
    assert UserWeekTarget.objects.filter(period=configured_period).count() == 16


@pytest.mark.django_db
def test_leaderboard_task_appends_snapshot(configured_period):
    allocation.recompute(configured_period)

    result = compute_period_leaderboard(period_id=str(configured_period.pk), rules_version="v3")

    snapshot = LeaderboardSnapshot.objects.get(pk=result["snapshot_id"])
    assert snapshot.rules_version == "v3"


@pytest.mark.django_db
def test_refresh_only_touches_published_computed_periods(configured_period, shop):
    allocation.recompute(configured_period)
    services.request_status_transition(configured_period, Period.Status.PUBLISHED)
    draft = services.create_period(shop, 2026, 3)

    refreshed = refresh_published_leaderboards()

    assert refreshed == 1
    assert LeaderboardSnapshot.objects.filter(period=configured_period).count() == 1
    assert not LeaderboardSnapshot.objects.filter(period=draft).exists()
