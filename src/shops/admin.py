from django.contrib import admin

from shops.models import Shop, ShopMembership


class ShopMembershipInline(admin.TabularInline):
    model = ShopMembership
    extra = 0
    fields = ("user", "role", "active")
    autocomplete_fields = ("user",)


@admin.register(Shop)
class ShopAdmin(admin.ModelAdmin):
    list_display = ("name", "timezone", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name",)
    inlines = [ShopMembershipInline]


@admin.register(ShopMembership)
class ShopMembershipAdmin(admin.ModelAdmin):
    list_display = ("user", "shop", "role", "active", "joined_at")
    list_filter = ("role", "active", "shop")
    search_fields = ("user__email", "shop__name")
