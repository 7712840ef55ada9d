from django.contrib import admin
from .models import Product, ProductUOM


class ProductUOMInline(admin.TabularInline):
    model = ProductUOM
    extra = 0
    fields = ['name', 'conversion_factor']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'category', 'base_uom', 'average_cost_price', 'shelf_life_days', 'is_active']
    list_filter = ['is_active', 'category']
    search_fields = ['name', 'sku', 'category']
    ordering = ['name']
    readonly_fields = ['average_cost_price', 'created_at', 'updated_at']
    inlines = [ProductUOMInline]
