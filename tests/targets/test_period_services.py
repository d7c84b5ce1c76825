from datetime import date
from decimal import Decimal

import pytest

from targets import recalc, services
from targets.exceptions import ValidationError
from targets.models import Period, PeriodWeek


def test_month_weeks_cut_month_in_seven_day_slices():
    weeks = services.month_weeks(2026, 3)

    assert [index for index, _, _ in weeks] == [1, 2, 3, 4, 5]
    assert weeks[0] == (1, date(2026, 3, 1), date(2026, 3, 7))
    assert weeks[-1] == (5, date(2026, 3, 29), date(2026, 3, 31))


def test_month_weeks_february_has_four_full_weeks():
    weeks = services.month_weeks(2026, 2)

    assert len(weeks) == 4
    assert all((end - start).days == 6 for _, start, end in weeks)


@pytest.mark.django_db
def test_create_period_builds_weeks_and_dirty_flag(shop):
    period = services.create_period(shop, 2026, 3)

    assert period.status == Period.Status.DRAFT
    assert period.label == "2026-03"
    weeks = list(PeriodWeek.objects.filter(period=period).order_by("week_index"))
    assert [w.day_count for w in weeks] == [7, 7, 7, 7, 3]
    assert recalc.is_dirty(period)


@pytest.mark.django_db
def test_create_period_rejects_duplicate_month(shop, period):
    with pytest.raises(ValidationError) as excinfo:
        services.create_period(shop, 2026, 2)

    assert excinfo.value.field == "month"
    assert Period.objects.filter(shop=shop).count() == 1


@pytest.mark.django_db
def test_monthly_target_rejects_category_of_another_shop(period, category):
    from catalog.models import Category
    from shops.models import Shop

    other = Category.objects.create(shop=Shop.objects.create(name="Autre"), name="Accessoires")

    with pytest.raises(ValidationError) as excinfo:
        services.upsert_monthly_targets(period, [(other, "100.00")])

    assert excinfo.value.field == "category"


@pytest.mark.django_db
@pytest.mark.parametrize("value", ["-5", "10.001", "abc"])
def test_monthly_target_rejects_invalid_amount(period, category, value):
    with pytest.raises(ValidationError) as excinfo:
        services.upsert_monthly_targets(period, [(category, value)])

    assert excinfo.value.field == "target_value"


@pytest.mark.django_db
def test_monthly_target_accepts_category_id(period, category):
    saved = services.upsert_monthly_targets(period, [(category.pk, "750.5")])

    assert saved[0].target_value == Decimal("750.50")


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

@pytest.mark.django_db
def test_publish_requires_complete_configuration(period, team, category):
    services.upsert_monthly_targets(period, [(category, "1000.00")])
    services.upsert_weekly_distribution(period, [(1, "50.00"), (2, "40.00")])

    with pytest.raises(ValidationError) as excinfo:
        services.request_status_transition(period, Period.Status.PUBLISHED)

    assert excinfo.value.field == "weekly_distribution"
    period.refresh_from_db()
    assert period.status == Period.Status.DRAFT


@pytest.mark.django_db
def test_publish_fails_on_incomplete_role_weights(configured_period):
    services.upsert_role_weights(configured_period, 3, [("sales_senior", "30.00")])

    with pytest.raises(ValidationError) as excinfo:
        services.request_status_transition(configured_period, Period.Status.PUBLISHED)

    assert excinfo.value.field == "role_weights"
    assert excinfo.value.week_index == 3


@pytest.mark.django_db
def test_full_lifecycle(configured_period):
    services.recompute(configured_period)

    period = services.request_status_transition(configured_period, Period.Status.PUBLISHED)
    assert period.status == Period.Status.PUBLISHED
    period = services.request_status_transition(period, Period.Status.LOCKED)
    assert period.status == Period.Status.LOCKED
    period = services.request_status_transition(period, Period.Status.ARCHIVED)
    assert period.status == Period.Status.ARCHIVED


@pytest.mark.django_db
def test_published_period_can_return_to_draft(configured_period):
    services.request_status_transition(configured_period, Period.Status.PUBLISHED)

    period = services.request_status_transition(configured_period, Period.Status.DRAFT)

    assert period.status == Period.Status.DRAFT


@pytest.mark.django_db
@pytest.mark.parametrize(
    "target",
    [Period.Status.LOCKED, Period.Status.ARCHIVED],
)
def test_draft_cannot_skip_publication(configured_period, target):
    with pytest.raises(ValidationError) as excinfo:
        services.request_status_transition(configured_period, target)

    assert excinfo.value.field == "status"


@pytest.mark.django_db
def test_unknown_status_is_rejected(period):
    with pytest.raises(ValidationError):
        services.request_status_transition(period, "closed")


@pytest.mark.django_db
def test_dirty_period_publishes_with_warning_by_default(configured_period, caplog):
    assert recalc.is_dirty(configured_period)

    with caplog.at_level("WARNING", logger="salesboard"):
        period = services.request_status_transition(configured_period, Period.Status.PUBLISHED)

    assert period.status == Period.Status.PUBLISHED
    assert "stale derived targets" in caplog.text


@pytest.mark.django_db
def test_dirty_period_is_blocked_when_configured(configured_period, settings):
    settings.TARGETS_BLOCK_TRANSITION_WHEN_DIRTY = True

    with pytest.raises(ValidationError) as excinfo:
        services.request_status_transition(configured_period, Period.Status.PUBLISHED)
    assert excinfo.value.field == "recalc"

    services.recompute(configured_period)
    period = services.request_status_transition(configured_period, Period.Status.PUBLISHED)
    assert period.status == Period.Status.PUBLISHED


@pytest.mark.django_db
def test_locked_period_configuration_is_frozen(configured_period, category):
    services.recompute(configured_period)
    services.request_status_transition(configured_period, Period.Status.PUBLISHED)
    services.request_status_transition(configured_period, Period.Status.LOCKED)

    with pytest.raises(ValidationError) as excinfo:
        services.upsert_monthly_targets(configured_period, [(category, "5000.00")])
    assert excinfo.value.field == "status"

    with pytest.raises(ValidationError):
        services.upsert_weekly_distribution(configured_period, [(1, "10.00")])
