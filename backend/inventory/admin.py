from django.contrib import admin
from .models import InventoryBatch, StockMovement


class StockMovementInline(admin.TabularInline):
    model = StockMovement
    extra = 0
    can_delete = False
    readonly_fields = ['movement_type', 'quantity', 'reason', 'reference_type', 'reference_id', 'created_by', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(InventoryBatch)
class InventoryBatchAdmin(admin.ModelAdmin):
    list_display = ['batch_number', 'product', 'warehouse', 'quantity', 'unit_cost', 'received_date', 'expiry_date', 'status']
    list_filter = ['status', 'warehouse', 'expiry_date']
    search_fields = ['batch_number', 'product__name', 'product__sku']
    ordering = ['expiry_date']
    # Quantities change only through stock operations so the movement ledger stays complete
    readonly_fields = ['batch_number', 'product', 'warehouse', 'quantity', 'unit_cost', 'received_date', 'created_at', 'updated_at']
    inlines = [StockMovementInline]


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ['batch', 'movement_type', 'quantity', 'reference_type', 'reference_id', 'created_by', 'created_at']
    list_filter = ['movement_type', 'reference_type', 'created_at']
    search_fields = ['batch__batch_number', 'batch__product__name', 'reference_id', 'reason']
    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
