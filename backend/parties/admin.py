from django.contrib import admin
from .models import Supplier, AccountsPayable, APPayment


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['company_name', 'contact_person', 'phone', 'email', 'payment_terms', 'is_active', 'created_at']
    list_filter = ['is_active', 'payment_terms']
    search_fields = ['company_name', 'contact_person', 'phone', 'email']
    ordering = ['company_name']


class APPaymentInline(admin.TabularInline):
    model = APPayment
    extra = 0
    readonly_fields = ['amount', 'payment_method', 'reference_number', 'payment_date', 'created_by', 'created_at']
    can_delete = False


@admin.register(AccountsPayable)
class AccountsPayableAdmin(admin.ModelAdmin):
    list_display = ['id', 'supplier', 'branch', 'purchase_order', 'total_amount', 'paid_amount', 'balance', 'due_date', 'status']
    list_filter = ['status', 'branch', 'due_date']
    search_fields = ['supplier__company_name', 'purchase_order__po_number']
    ordering = ['due_date']
    readonly_fields = ['total_amount', 'paid_amount', 'balance', 'created_at', 'updated_at']
    inlines = [APPaymentInline]
