import django_filters
from django.db.models import Q
from .models import PurchaseOrder, ReceivingVoucher


class PurchaseOrderFilter(django_filters.FilterSet):
    """Filter purchase orders by status, location, supplier and creation date"""
    status = django_filters.CharFilter(field_name='status')
    receiving_status = django_filters.CharFilter(field_name='receiving_status')
    branch = django_filters.NumberFilter(field_name='branch_id')
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    warehouse = django_filters.NumberFilter(field_name='warehouse_id')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = PurchaseOrder
        fields = ['status', 'receiving_status', 'branch', 'supplier', 'warehouse', 'date_from', 'date_to', 'search']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(po_number__icontains=value) |
            Q(supplier__company_name__icontains=value) |
            Q(notes__icontains=value)
        )


class ReceivingVoucherFilter(django_filters.FilterSet):
    """Filter receiving vouchers by location, supplier, status, date and document numbers"""
    purchase_order = django_filters.NumberFilter(field_name='purchase_order_id')
    branch = django_filters.NumberFilter(field_name='branch_id')
    warehouse = django_filters.NumberFilter(field_name='warehouse_id')
    supplier = django_filters.NumberFilter(field_name='purchase_order__supplier_id')
    status = django_filters.CharFilter(field_name='status')
    rv_number = django_filters.CharFilter(field_name='rv_number', lookup_expr='icontains')
    po_number = django_filters.CharFilter(field_name='purchase_order__po_number', lookup_expr='icontains')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = ReceivingVoucher
        fields = ['purchase_order', 'branch', 'warehouse', 'supplier', 'status', 'rv_number', 'po_number',
                  'date_from', 'date_to']
