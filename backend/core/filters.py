import django_filters
from datetime import timedelta
from django.db.models import Q
from django.utils import timezone

from .models import AuditLog

DATE_RANGES = {
    '24h': timedelta(hours=24),
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
}


class AuditLogFilter(django_filters.FilterSet):
    """Activity log filters; 'all' disables the action, user and date range filters"""
    search = django_filters.CharFilter(method='filter_search')
    action = django_filters.CharFilter(method='filter_action')
    user = django_filters.CharFilter(method='filter_user')
    date_range = django_filters.CharFilter(method='filter_date_range')
    ordering = django_filters.OrderingFilter(
        fields=(
            ('created_at', 'timestamp'),
            ('user__name', 'user'),
            ('action', 'action'),
        )
    )

    class Meta:
        model = AuditLog
        fields = ['search', 'action', 'user', 'date_range']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(details__icontains=value) | Q(action__icontains=value))

    def filter_action(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(action=value)

    def filter_user(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        if not value.isdigit():
            return queryset.none()
        return queryset.filter(user_id=value)

    def filter_date_range(self, queryset, name, value):
        window = DATE_RANGES.get(value)
        if window is None:
            return queryset
        return queryset.filter(created_at__gte=timezone.now() - window)
