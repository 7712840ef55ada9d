import django_filters
from .models import AccountsPayable


class PayableFilter(django_filters.FilterSet):
    """Filter accounts payable by branch, supplier, status and due date"""
    branch = django_filters.NumberFilter(field_name='branch_id')
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    status = django_filters.CharFilter(field_name='status')
    due_from = django_filters.DateFilter(field_name='due_date', lookup_expr='gte')
    due_to = django_filters.DateFilter(field_name='due_date', lookup_expr='lte')
    outstanding = django_filters.BooleanFilter(method='filter_outstanding')

    class Meta:
        model = AccountsPayable
        fields = ['branch', 'supplier', 'status', 'due_from', 'due_to', 'outstanding']

    def filter_outstanding(self, queryset, name, value):
        if value:
            return queryset.filter(balance__gt=0)
        return queryset.filter(balance__lte=0)
