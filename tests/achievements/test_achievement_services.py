from datetime import date
from decimal import Decimal

import pytest

from achievements.models import Achievement
from achievements.services import (
    achievements_between,
    correct_achievement,
    delete_achievement,
    record_achievement,
)


@pytest.mark.django_db
def test_member_records_own_achievement(shop, team, category, junior_users):
    entry = record_achievement(shop, junior_users[0], category, date(2026, 2, 3), "12.5")

    assert entry.achieved_value == Decimal("12.50")
    assert entry.recorded_by == junior_users[0]
    assert entry.source == Achievement.Source.MANUAL


@pytest.mark.django_db
def test_ledger_keeps_several_entries_per_day(shop, team, category, junior_users):
    record_achievement(shop, junior_users[0], category, date(2026, 2, 3), "10.00")
    record_achievement(shop, junior_users[0], category, date(2026, 2, 3), "5.00")

    assert Achievement.objects.filter(user=junior_users[0], occurred_on=date(2026, 2, 3)).count() == 2


@pytest.mark.django_db
def test_manager_records_on_behalf_of_member(shop, team, category, junior_users, manager_user):
    entry = record_achievement(
        shop, junior_users[0], category, date(2026, 2, 3), "8.00", actor=manager_user,
    )

    assert entry.recorded_by == manager_user


@pytest.mark.django_db
def test_seller_cannot_record_for_colleague(shop, team, category, junior_users):
    with pytest.raises(PermissionError):
        record_achievement(
            shop, junior_users[0], category, date(2026, 2, 3), "8.00", actor=junior_users[1],
        )


@pytest.mark.django_db
def test_non_member_cannot_be_credited(shop, team, category, outsider_user):
    with pytest.raises(ValueError):
        record_achievement(shop, outsider_user, category, date(2026, 2, 3), "8.00")


@pytest.mark.django_db
@pytest.mark.parametrize("value", ["-1", "abc"])
def test_invalid_values_are_rejected(shop, team, category, junior_users, value):
    with pytest.raises(ValueError):
        record_achievement(shop, junior_users[0], category, date(2026, 2, 3), value)


@pytest.mark.django_db
def test_correction_and_deletion_need_authorization(shop, team, category, junior_users, owner_user):
    entry = record_achievement(shop, junior_users[0], category, date(2026, 2, 3), "10.00")

    with pytest.raises(PermissionError):
        correct_achievement(entry, "99.00", actor=junior_users[1])

    corrected = correct_achievement(entry, "11.00", actor=owner_user)
    assert corrected.achieved_value == Decimal("11.00")
    assert corrected.recorded_by == owner_user

    delete_achievement(corrected, actor=junior_users[0])
    assert not Achievement.objects.filter(pk=entry.pk).exists()


@pytest.mark.django_db
def test_achievements_between_is_inclusive(shop, team, category, junior_users):
    for day in (1, 14, 28):
        record_achievement(shop, junior_users[0], category, date(2026, 2, day), "1.00")
    record_achievement(shop, junior_users[1], category, date(2026, 2, 14), "1.00")

    assert achievements_between(shop, date(2026, 2, 1), date(2026, 2, 14)).count() == 3
    assert achievements_between(
        shop, date(2026, 2, 14), date(2026, 2, 28), user=junior_users[0]
    ).count() == 2
