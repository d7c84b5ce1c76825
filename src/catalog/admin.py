"""Admin configuration for the catalog app."""
from django.contrib import admin

from .models import Category


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "shop", "unit", "parent", "sort_order", "created_at")
    list_filter = ("unit", "shop")
    search_fields = ("name", "shop__name")
    ordering = ("shop", "sort_order", "name")
