import django_filters
from django.db.models import Q

from .models import JobCard


class JobCardFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    status = django_filters.CharFilter(method='filter_status')

    class Meta:
        model = JobCard
        fields = ['search', 'status']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(customer_name__icontains=value) | Q(vehicle_number__icontains=value) | Q(custom_id__icontains=value)
        )

    def filter_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(status=value)
