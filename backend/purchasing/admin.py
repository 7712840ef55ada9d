from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderItem, ReceivingVoucher, ReceivingVoucherItem


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    readonly_fields = ['received_quantity']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['po_number', 'supplier', 'branch', 'warehouse', 'status', 'receiving_status', 'total_amount', 'created_at']
    list_filter = ['status', 'receiving_status', 'branch', 'created_at']
    search_fields = ['po_number', 'supplier__company_name']
    readonly_fields = ['po_number', 'total_amount', 'receiving_status', 'actual_delivery_date', 'created_at', 'updated_at']
    inlines = [PurchaseOrderItemInline]


class ReceivingVoucherItemInline(admin.TabularInline):
    model = ReceivingVoucherItem
    extra = 0
    can_delete = False
    readonly_fields = ['purchase_order_item', 'product', 'batch', 'uom', 'ordered_quantity', 'received_quantity',
                       'variance_quantity', 'variance_percentage', 'variance_reason', 'unit_price', 'line_total']


@admin.register(ReceivingVoucher)
class ReceivingVoucherAdmin(admin.ModelAdmin):
    list_display = ['rv_number', 'purchase_order', 'branch', 'warehouse', 'total_received_amount', 'variance_amount', 'created_at']
    list_filter = ['branch', 'created_at']
    search_fields = ['rv_number', 'purchase_order__po_number', 'receiver_name']
    readonly_fields = ['rv_number', 'purchase_order', 'total_ordered_amount', 'total_received_amount',
                       'variance_amount', 'idempotency_key', 'created_by', 'created_at']
    inlines = [ReceivingVoucherItemInline]
