"""
Query filters for pallet tracking list endpoints.
"""

import django_filters

from .models import AuditLog, Comparison, ComparisonSeverity, Pallet


class PalletFilter(django_filters.FilterSet):
    qr_code = django_filters.CharFilter(field_name='qr_tag__code')
    created_after = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_before = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = Pallet
        fields = ['status', 'contract', 'origin_location', 'destination_location', 'requires_manual_review']


class ComparisonFilter(django_filters.FilterSet):
    unresolved = django_filters.BooleanFilter(method='filter_unresolved')

    class Meta:
        model = Comparison
        fields = ['pallet', 'run_id', 'sku', 'severity']

    def filter_unresolved(self, queryset, name, value):
        """Flagged lines still waiting for a reason."""
        flagged = queryset.exclude(severity=ComparisonSeverity.OK)
        if value:
            return flagged.filter(reason='')
        return queryset.exclude(pk__in=flagged.filter(reason='').values('pk'))


class AuditLogFilter(django_filters.FilterSet):
    """Audit trail lookups by entity, actor, action and time window."""

    start = django_filters.IsoDateTimeFilter(field_name='timestamp', lookup_expr='gte')
    end = django_filters.IsoDateTimeFilter(field_name='timestamp', lookup_expr='lte')

    class Meta:
        model = AuditLog
        fields = ['entity_type', 'entity_id', 'action', 'user_id']
