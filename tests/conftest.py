from decimal import Decimal

import pytest

from accounts.models import User
from catalog.models import Category
from shops.models import Shop, ShopMembership
from targets import services
from targets.allocation import canonical_order


def _make_user(email, first_name, last_name):
    return User.objects.create_user(
        email=email,
        password="testpass123",
        first_name=first_name,
        last_name=last_name,
    )


@pytest.fixture
def owner_user(db):
    return _make_user("owner@test.com", "Owner", "User")


@pytest.fixture
def manager_user(db):
    return _make_user("manager@test.com", "Manager", "User")


@pytest.fixture
def junior_users(db):
    return [
        _make_user(f"junior{i}@test.com", "Junior", f"Vendeur {i}")
        for i in range(1, 4)
    ]


@pytest.fixture
def senior_user(db):
    return _make_user("senior@test.com", "Senior", "Vendeur")


@pytest.fixture
def outsider_user(db):
    return _make_user("outsider@test.com", "Outsider", "User")


@pytest.fixture
def shop(db):
    return Shop.objects.create(name="Boutique Test", timezone="Africa/Douala")


@pytest.fixture
def team(shop, owner_user, manager_user, junior_users, senior_user):
    """Owner, manager, three juniors and one senior, all active."""
    memberships = {
        "owner": ShopMembership.objects.create(
            shop=shop, user=owner_user, role=ShopMembership.Role.OWNER,
        ),
        "manager": ShopMembership.objects.create(
            shop=shop, user=manager_user, role=ShopMembership.Role.MANAGER,
        ),
        "senior": ShopMembership.objects.create(
            shop=shop, user=senior_user, role=ShopMembership.Role.SALES_SENIOR,
        ),
    }
    memberships["juniors"] = [
        ShopMembership.objects.create(shop=shop, user=user, role=ShopMembership.Role.SALES_JUNIOR)
        for user in junior_users
    ]
    return memberships


@pytest.fixture
def ordered_juniors(junior_users):
    """Junior users in the order used to hand out remainder cents."""
    by_id = {user.pk: user for user in junior_users}
    return [by_id[user_id] for user_id in canonical_order(by_id)]


@pytest.fixture
def category(shop):
    return Category.objects.create(
        shop=shop,
        name="Smartphones",
        unit=Category.Unit.CURRENCY,
        sort_order=1,
    )


@pytest.fixture
def period(shop):
    # February 2026: exactly four 7-day weeks.
    return services.create_period(shop, 2026, 2)


@pytest.fixture
def configured_period(period, team, category):
    """1000.00 monthly, 25% per week, juniors 60% / seniors 40% every week."""
    services.upsert_monthly_targets(period, [(category, Decimal("1000.00"))])
    services.upsert_weekly_distribution(
        period, [(index, Decimal("25.00")) for index in range(1, 5)]
    )
    for index in range(1, 5):
        services.upsert_role_weights(
            period,
            index,
            [
                (ShopMembership.Role.SALES_JUNIOR, Decimal("60.00")),
                (ShopMembership.Role.SALES_SENIOR, Decimal("40.00")),
            ],
        )
    period.refresh_from_db()
    return period
