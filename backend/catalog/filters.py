import django_filters
from django.db.models import Q
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for Product model using django-filter"""

    # Basic search - searches across name, SKU and category
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    active = django_filters.CharFilter(method='filter_active', label='Active')
    uom = django_filters.CharFilter(method='filter_uom', label='Unit of measure')

    class Meta:
        model = Product
        fields = ['search', 'category', 'active', 'uom']

    def filter_search(self, queryset, name, value):
        """Match products where every word appears in the name, SKU or category"""
        words = [w for w in (value or '').split() if w]
        for word in words:
            queryset = queryset.filter(
                Q(name__icontains=word) | Q(sku__icontains=word) | Q(category__icontains=word)
            )
        return queryset

    def filter_active(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(is_active=value.lower() in ('true', '1', 'yes'))

    def filter_uom(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(base_uom__iexact=value) | Q(alternate_uoms__name__iexact=value)
        ).distinct()
