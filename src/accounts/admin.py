from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from shops.models import ShopMembership

from .models import User


class ShopMembershipInline(admin.TabularInline):
    model = ShopMembership
    fk_name = "user"
    extra = 0
    fields = ("shop", "role", "active", "joined_at")
    readonly_fields = ("joined_at",)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Team members; shop roles are edited through the membership inline."""

    list_display = ("email", "get_full_name", "active_shops", "is_active", "is_staff")
    list_filter = ("is_active", "is_staff", "memberships__role")
    search_fields = ("email", "first_name", "last_name")
    ordering = ("last_name", "first_name")
    inlines = [ShopMembershipInline]
    readonly_fields = ("date_joined", "last_login")

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (_("Identite"), {"fields": ("first_name", "last_name")}),
        (_("Acces"), {"fields": ("is_active", "is_staff", "is_superuser", "groups")}),
        (_("Historique"), {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "password1", "password2")}),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).prefetch_related("memberships__shop")

    @admin.display(description="Boutiques actives")
    def active_shops(self, obj):
        return ", ".join(m.shop.name for m in obj.memberships.all() if m.active) or "-"
