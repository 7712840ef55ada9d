import django_filters
from .models import InventoryBatch, StockMovement


class BatchFilter(django_filters.FilterSet):
    """Filter inventory batches by product, location, status and expiry"""
    product = django_filters.NumberFilter(field_name='product_id')
    warehouse = django_filters.NumberFilter(field_name='warehouse_id')
    branch = django_filters.NumberFilter(field_name='warehouse__branch_id')
    status = django_filters.CharFilter(field_name='status')
    batch_number = django_filters.CharFilter(field_name='batch_number', lookup_expr='icontains')
    expiry_from = django_filters.DateFilter(field_name='expiry_date', lookup_expr='gte')
    expiry_to = django_filters.DateFilter(field_name='expiry_date', lookup_expr='lte')
    in_stock = django_filters.BooleanFilter(method='filter_in_stock')

    class Meta:
        model = InventoryBatch
        fields = ['product', 'warehouse', 'branch', 'status', 'batch_number', 'expiry_from', 'expiry_to', 'in_stock']

    def filter_in_stock(self, queryset, name, value):
        if value:
            return queryset.filter(quantity__gt=0)
        return queryset.filter(quantity=0)


class MovementFilter(django_filters.FilterSet):
    """Filter stock movements by batch, product, warehouse, type, reference and date"""
    batch = django_filters.NumberFilter(field_name='batch_id')
    product = django_filters.NumberFilter(field_name='batch__product_id')
    warehouse = django_filters.NumberFilter(field_name='batch__warehouse_id')
    movement_type = django_filters.CharFilter(field_name='movement_type')
    reference_type = django_filters.CharFilter(field_name='reference_type')
    reference_id = django_filters.CharFilter(field_name='reference_id')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = StockMovement
        fields = ['batch', 'product', 'warehouse', 'movement_type', 'reference_type', 'reference_id', 'date_from', 'date_to']
