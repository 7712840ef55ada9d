from django.contrib import admin
from .models import Branch, Warehouse


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'phone', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'code']
    ordering = ['name']


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'branch', 'location', 'capacity', 'is_active', 'created_at']
    list_filter = ['is_active', 'branch']
    search_fields = ['name', 'code', 'location']
    ordering = ['name']
