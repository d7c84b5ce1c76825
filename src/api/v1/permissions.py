"""Custom DRF permissions for the sales targets API.

Access is scoped by shop membership: active members may read a shop's
periods, only owners and managers may change them.
"""
from rest_framework.permissions import SAFE_METHODS, BasePermission


def _resolve_shop_id(view):
    """Shop of the request, from the view (period lookups) or the URL."""
    resolver = getattr(view, "get_shop_id", None)
    if callable(resolver):
        return resolver()
    return (getattr(view, "kwargs", {}) or {}).get("shop_id")


def user_membership(user, shop_id):
    if not shop_id or not user.is_authenticated:
        return None
    return user.memberships.filter(shop_id=shop_id, active=True, shop__is_active=True).first()


def can_manage_shop(user, shop_id) -> bool:
    if getattr(user, "is_superuser", False):
        return True
    membership = user_membership(user, shop_id)
    return bool(membership and membership.can_manage_targets)


def is_shop_member(user, shop_id) -> bool:
    if getattr(user, "is_superuser", False):
        return True
    return user_membership(user, shop_id) is not None


class IsShopMember(BasePermission):
    """Any active member of the shop."""

    message = "Vous n'etes pas membre de cette boutique."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        shop_id = _resolve_shop_id(view)
        if shop_id is None:
            return True
        return is_shop_member(request.user, shop_id)



class CanManageTargets(BasePermission):
    """Owners and managers of the shop; read-only for other members."""

    message = "Seuls les proprietaires et gestionnaires peuvent modifier les objectifs."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        shop_id = _resolve_shop_id(view)
        if shop_id is None:
            return True
        if request.method in SAFE_METHODS:
            return is_shop_member(request.user, shop_id)
        return can_manage_shop(request.user, shop_id)
