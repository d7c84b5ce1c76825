from decimal import Decimal

import pytest

from shops.models import ShopMembership
from targets import services
from targets.exceptions import ValidationError
from targets.models import WeeklyDistribution, WeeklyRoleWeight
from targets.validators import (
    SCOPE_DISTRIBUTION,
    SCOPE_ROLE_WEIGHTS,
    find_violations,
    parse_percentage,
    validate_config,
)

JUNIOR = ShopMembership.Role.SALES_JUNIOR
SENIOR = ShopMembership.Role.SALES_SENIOR


@pytest.mark.django_db
def test_distribution_write_may_stay_below_100_while_editing(period):
    services.upsert_weekly_distribution(period, [(1, "30.00"), (2, "30.00")])

    assert WeeklyDistribution.objects.filter(period=period).count() == 2
    validate_config(period, SCOPE_DISTRIBUTION)


@pytest.mark.django_db
def test_distribution_write_exceeding_100_is_rejected(configured_period):
    with pytest.raises(ValidationError) as excinfo:
        services.upsert_weekly_distribution(configured_period, [(1, "30.00")])

    error = excinfo.value
    assert error.field == "weekly_distribution"
    assert error.total == Decimal("105.00")
    assert error.period_id == configured_period.pk
    # Nothing was written.
    assert WeeklyDistribution.objects.get(period=configured_period, week__week_index=1).percentage == Decimal("25.00")


@pytest.mark.django_db
def test_distribution_write_replaces_existing_week_value(configured_period):
    services.upsert_weekly_distribution(configured_period, [(1, "20.00"), (2, "30.00")])

    values = dict(
        WeeklyDistribution.objects.filter(period=configured_period).values_list("week__week_index", "percentage")
    )
    assert values == {1: Decimal("20.00"), 2: Decimal("30.00"), 3: Decimal("25.00"), 4: Decimal("25.00")}


@pytest.mark.django_db
def test_role_weight_write_exceeding_100_reports_week_and_roles(configured_period):
    with pytest.raises(ValidationError) as excinfo:
        services.upsert_role_weights(configured_period, 2, [(SENIOR, "41.00")])

    error = excinfo.value
    assert error.field == "role_weights"
    assert error.week_index == 2
    assert error.roles == sorted([JUNIOR, SENIOR])
    assert error.to_dict()["scope"] == {
        "period_id": str(configured_period.pk),
        "week_index": 2,
        "roles": sorted([JUNIOR, SENIOR]),
    }
    assert WeeklyRoleWeight.objects.get(
        period=configured_period, week__week_index=2, role=SENIOR
    ).weight_percentage == Decimal("40.00")


@pytest.mark.django_db
def test_role_weight_write_rejects_unknown_role(period):
    with pytest.raises(ValidationError) as excinfo:
        services.upsert_role_weights(period, 1, [("stagiaire", "10.00")])

    assert excinfo.value.field == "role"


@pytest.mark.django_db
def test_unknown_week_is_rejected(period):
    with pytest.raises(ValidationError) as excinfo:
        services.upsert_weekly_distribution(period, [(9, "10.00")])

    assert excinfo.value.field == "week_index"


@pytest.mark.django_db
@pytest.mark.parametrize("value", ["-1", "100.01", "12.345", "abc", "NaN", None])
def test_parse_percentage_rejects_invalid_values(period, value):
    with pytest.raises(ValidationError):
        parse_percentage(value, field="percentage", period=period)


@pytest.mark.django_db
def test_parse_percentage_normalizes_to_two_decimals(period):
    assert parse_percentage("12.5", field="percentage", period=period) == Decimal("12.50")
    assert str(parse_percentage(100, field="percentage", period=period)) == "100.00"


@pytest.mark.django_db
def test_strict_validation_requires_every_sum_to_equal_100(period, team):
    services.upsert_weekly_distribution(period, [(1, "50.00"), (2, "50.00")])
    services.upsert_role_weights(period, 1, [(JUNIOR, "100.00")])
    services.upsert_role_weights(period, 3, [(JUNIOR, "70.00")])

    assert find_violations(period) == []

    errors = find_violations(period, strict=True)

    # distribution OK, weeks 2 and 4 empty, week 3 at 70.
    assert [(e.field, e.week_index) for e in errors] == [
        ("role_weights", 2),
        ("role_weights", 3),
        ("role_weights", 4),
    ]


@pytest.mark.django_db
def test_strict_validation_allows_rounding_tolerance(configured_period):
    WeeklyDistribution.objects.filter(period=configured_period, week__week_index=4).update(
        percentage=Decimal("24.99")
    )
    validate_config(configured_period, SCOPE_DISTRIBUTION, strict=True)

    WeeklyDistribution.objects.filter(period=configured_period, week__week_index=4).update(
        percentage=Decimal("24.98")
    )
    with pytest.raises(ValidationError) as excinfo:
        validate_config(configured_period, SCOPE_DISTRIBUTION, strict=True)
    assert excinfo.value.total == Decimal("99.98")


@pytest.mark.django_db
def test_validation_can_target_a_single_week(period, team):
    services.upsert_role_weights(period, 2, [(JUNIOR, "100.00")])

    assert find_violations(period, SCOPE_ROLE_WEIGHTS, strict=True, week_index=2) == []
    assert len(find_violations(period, SCOPE_ROLE_WEIGHTS, strict=True, week_index=1)) == 1


@pytest.mark.django_db
def test_unknown_scope_is_a_programming_error(period):
    with pytest.raises(ValueError):
        find_violations(period, "weeks")


@pytest.mark.django_db
def test_roles_without_members_are_still_valid(period, category):
    # No memberships at all: configuration is valid, allocation will be empty.
    services.upsert_weekly_distribution(period, [(index, "25.00") for index in range(1, 5)])
    for index in range(1, 5):
        services.upsert_role_weights(period, index, [(SENIOR, "100.00")])

    assert find_violations(period, strict=True) == []
