import django_filters
from django.db.models import Q

from .models import Product

# Inclusive quantity bounds per stock level
STOCK_LEVELS = {
    'low': (None, 10),
    'medium': (11, 50),
    'high': (51, None),
}


class ProductFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    category = django_filters.CharFilter(method='filter_category')
    stock_level = django_filters.CharFilter(method='filter_stock_level')
    ordering = django_filters.OrderingFilter(
        fields=(
            ('name', 'name'),
            ('category', 'category'),
            ('quantity', 'quantity'),
            ('unit_price', 'unit_price'),
            ('created_at', 'created_at'),
        )
    )

    class Meta:
        model = Product
        fields = ['search', 'category', 'stock_level']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) | Q(category__icontains=value) | Q(custom_id__icontains=value)
        )

    def filter_category(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(category=value)

    def filter_stock_level(self, queryset, name, value):
        bounds = STOCK_LEVELS.get(value)
        if bounds is None:
            return queryset
        low, high = bounds
        if low is not None:
            queryset = queryset.filter(quantity__gte=low)
        if high is not None:
            queryset = queryset.filter(quantity__lte=high)
        return queryset
