from decimal import Decimal

import pytest
from django.db import DatabaseError
from django.db.models import Sum

from shops.models import ShopMembership
from targets import allocation, recalc, services
from targets.allocation import role_amount, split_evenly, weekly_amount
from targets.exceptions import ConcurrencyError, RecomputeError, ValidationError
from targets.models import Period, UserWeekTarget, WeeklyDistribution


def _snapshot_rows(period):
    return list(
        UserWeekTarget.objects.filter(period=period)
        .order_by("week__week_index", "user_id", "category_id")
        .values_list("week__week_index", "user_id", "category_id", "target_value")
    )


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

def test_two_layer_amounts_keep_full_precision():
    week = weekly_amount(Decimal("1000.00"), Decimal("25.00"))
    assert week == Decimal("250")
    assert role_amount(week, Decimal("60.00")) == Decimal("150")

    # 100 / 3 is not rounded between the two layers.
    third = weekly_amount(Decimal("100.00"), Decimal("33.33"))
    assert role_amount(third, Decimal("50.00")) == Decimal("16.665")


def test_split_evenly_gives_remainder_cents_to_first_members():
    shares = split_evenly(Decimal("100.00"), ["a", "b", "c"])

    assert shares == [
        ("a", Decimal("33.34")),
        ("b", Decimal("33.33")),
        ("c", Decimal("33.33")),
    ]


def test_split_evenly_rounds_role_target_half_up_once():
    shares = split_evenly(Decimal("16.665"), ["a", "b"])

    assert shares == [("a", Decimal("8.34")), ("b", Decimal("8.33"))]


def test_split_evenly_without_members_returns_nothing():
    assert split_evenly(Decimal("10.00"), []) == []


@pytest.mark.parametrize("members", range(1, 51))
@pytest.mark.parametrize("amount", ["100.00", "0.05", "1234.57", "99999.99"])
def test_split_evenly_has_no_drift(amount, members):
    amount = Decimal(amount)
    shares = split_evenly(amount, [f"user-{i:02d}" for i in range(members)])

    assert len(shares) == members
    assert sum((value for _, value in shares), Decimal("0")) == amount
    values = {value for _, value in shares}
    assert max(values) - min(values) <= Decimal("0.01")


# ---------------------------------------------------------------------------
# Recompute
# ---------------------------------------------------------------------------

@pytest.mark.django_db
def test_recompute_splits_monthly_target_down_to_each_junior(
    configured_period, category, junior_users, senior_user,
):
    result = allocation.recompute(configured_period)

    assert result.rows_written == 16  # 4 weeks x (3 juniors + 1 senior)
    assert result.unallocated == []
    week_one = UserWeekTarget.objects.filter(period=configured_period, week__week_index=1)
    for junior in junior_users:
        assert week_one.get(user=junior, category=category).target_value == Decimal("50.00")
    assert week_one.get(user=senior_user).target_value == Decimal("100.00")

    total = UserWeekTarget.objects.filter(period=configured_period).aggregate(total=Sum("target_value"))
    assert total["total"] == Decimal("1000.00")


@pytest.mark.django_db
def test_recompute_gives_no_row_to_unweighted_roles(configured_period, owner_user, manager_user):
    allocation.recompute(configured_period)

    assert not UserWeekTarget.objects.filter(
        period=configured_period, user__in=[owner_user, manager_user]
    ).exists()


@pytest.mark.django_db
def test_recompute_hands_remainder_in_canonical_order(period, team, category, ordered_juniors):
    services.upsert_monthly_targets(period, [(category, Decimal("1000.00"))])
    services.upsert_weekly_distribution(period, [(1, Decimal("10.00"))])
    services.upsert_role_weights(period, 1, [(ShopMembership.Role.SALES_JUNIOR, Decimal("100.00"))])

    allocation.recompute(period)

    values = [
        UserWeekTarget.objects.get(period=period, user=user, week__week_index=1).target_value
        for user in ordered_juniors
    ]
    assert values == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]


@pytest.mark.django_db
def test_recompute_is_idempotent(configured_period):
    allocation.recompute(configured_period)
    first = _snapshot_rows(configured_period)

    allocation.recompute(configured_period)

    assert _snapshot_rows(configured_period) == first


@pytest.mark.django_db
def test_recompute_reports_roles_without_members_as_unallocated(configured_period, team, senior_user):
    team["senior"].delete()

    result = allocation.recompute(configured_period)

    assert [share.role for share in result.unallocated] == [ShopMembership.Role.SALES_SENIOR] * 4
    assert {share.amount for share in result.unallocated} == {Decimal("100.00")}
    assert not UserWeekTarget.objects.filter(period=configured_period, user=senior_user).exists()
    assert result.rows_written == 12


@pytest.mark.django_db
def test_recompute_ignores_inactive_members(configured_period, team, junior_users):
    team["juniors"][0].active = False
    team["juniors"][0].save()

    allocation.recompute(configured_period)

    rows = UserWeekTarget.objects.filter(period=configured_period, week__week_index=1)
    assert not rows.filter(user=junior_users[0]).exists()
    assert rows.get(user=junior_users[1]).target_value == Decimal("75.00")


@pytest.mark.django_db
def test_recompute_clears_recalc_flag(configured_period):
    assert recalc.is_dirty(configured_period)

    allocation.recompute(configured_period)

    state = recalc.get_state(configured_period)
    assert state.is_dirty is False
    assert state.cleared_at is not None


@pytest.mark.django_db
def test_recompute_rolls_back_on_storage_failure(configured_period, monkeypatch):
    allocation.recompute(configured_period)
    before = _snapshot_rows(configured_period)
    recalc.mark_dirty(configured_period, "test")
    services.upsert_monthly_targets(
        configured_period,
        [(configured_period.monthly_targets.first().category, Decimal("2000.00"))],
    )

    def boom(period):
        raise DatabaseError("disk full")

    monkeypatch.setattr(allocation.recalc, "clear", boom)

    with pytest.raises(RecomputeError):
        allocation.recompute(configured_period)

    assert _snapshot_rows(configured_period) == before
    assert recalc.is_dirty(configured_period)


@pytest.mark.django_db
def test_recompute_rejects_over_allocated_configuration(configured_period):
    allocation.recompute(configured_period)
    before = _snapshot_rows(configured_period)
    # Bypass the write-time check to simulate a corrupted row.
    WeeklyDistribution.objects.filter(period=configured_period, week__week_index=1).update(
        percentage=Decimal("60.00")
    )

    with pytest.raises(ValidationError) as excinfo:
        allocation.recompute(configured_period)

    assert excinfo.value.field == "weekly_distribution"
    assert _snapshot_rows(configured_period) == before


@pytest.mark.django_db
def test_recompute_accepts_partial_draft_configuration(period, team, category):
    services.upsert_monthly_targets(period, [(category, Decimal("1000.00"))])
    services.upsert_weekly_distribution(period, [(1, Decimal("40.00"))])

    result = allocation.recompute(period)

    # No role weights yet: everything stays unallocated-by-configuration.
    assert result.rows_written == 0
    assert result.unallocated == []


@pytest.mark.django_db
def test_recompute_fails_for_frozen_period(configured_period):
    Period.objects.filter(pk=configured_period.pk).update(status=Period.Status.LOCKED)

    with pytest.raises(RecomputeError):
        allocation.recompute(configured_period)

    assert not UserWeekTarget.objects.filter(period=configured_period).exists()


@pytest.mark.django_db
def test_recompute_fails_without_weeks(shop):
    period = Period.objects.create(shop=shop, year=2026, month=5)

    with pytest.raises(RecomputeError):
        allocation.recompute(period)


@pytest.mark.django_db
def test_recompute_raises_concurrency_error_when_period_is_busy(configured_period, monkeypatch):
    monkeypatch.setattr(allocation, "acquire_period_lock", lambda period_id, wait: False)

    with pytest.raises(ConcurrencyError) as excinfo:
        allocation.recompute(configured_period)

    assert excinfo.value.retryable is True
    assert recalc.is_dirty(configured_period)
    assert not UserWeekTarget.objects.filter(period=configured_period).exists()


@pytest.mark.django_db
def test_weekly_targets_add_up_to_monthly_target(period, team, category):
    services.upsert_monthly_targets(period, [(category, Decimal("1000.00"))])
    services.upsert_weekly_distribution(
        period,
        [(1, Decimal("33.33")), (2, Decimal("33.33")), (3, Decimal("33.33")), (4, Decimal("0.01"))],
    )
    for index in range(1, 5):
        services.upsert_role_weights(period, index, [(ShopMembership.Role.SALES_SENIOR, Decimal("100.00"))])

    allocation.recompute(period)

    total = UserWeekTarget.objects.filter(period=period).aggregate(total=Sum("target_value"))["total"]
    assert abs(total - Decimal("1000.00")) <= Decimal("0.04")
