"""
Reporting Service for pallet tracking.

Read-only aggregations behind the KPI dashboard.
"""

from typing import Any, Dict

from django.db.models import Avg, Count, Q

from ..models import Comparison, ComparisonSeverity, Pallet


class ReportingService:
    """Service class for dashboard KPIs."""

    TOP_SKU_LIMIT = 10

    def kpis(self, start=None, end=None, contract_id=None) -> Dict[str, Any]:
        """
        Compute dashboard KPIs over pallets created in [start, end].

        Args:
            start: Lower bound on pallet creation time (inclusive)
            end: Upper bound on pallet creation time (inclusive)
            contract_id: Restrict to one contract

        Returns:
            Dictionary with pallet, review and reconciliation figures
        """
        pallets = Pallet.objects.all()
        if start:
            pallets = pallets.filter(created_at__gte=start)
        if end:
            pallets = pallets.filter(created_at__lte=end)
        if contract_id:
            pallets = pallets.filter(contract_id=contract_id)

        pallet_totals = pallets.aggregate(
            total=Count('id'),
            manual_review=Count('id', filter=Q(requires_manual_review=True)),
        )
        total = pallet_totals['total']
        manual_review = pallet_totals['manual_review']

        comparisons = Comparison.objects.filter(pallet__in=pallets)
        comparison_totals = comparisons.aggregate(
            total=Count('id'),
            average_delta=Avg('delta'),
            alerts=Count('id', filter=Q(severity=ComparisonSeverity.ALERT)),
            critical=Count('id', filter=Q(severity=ComparisonSeverity.CRITICAL)),
        )

        top_skus = (
            comparisons.exclude(severity=ComparisonSeverity.OK)
            .order_by()
            .values('sku_id', 'sku__code', 'sku__name')
            .annotate(flagged=Count('id'), average_delta=Avg('delta'))
            .order_by('-flagged', 'sku__code')[:self.TOP_SKU_LIMIT]
        )

        return {
            'total_pallets': total,
            'manual_review_pallets': manual_review,
            'manual_review_rate': round(manual_review / total * 100, 2) if total else 0,
            'total_comparisons': comparison_totals['total'],
            'average_delta': round(comparison_totals['average_delta'] or 0, 2),
            'alert_count': comparison_totals['alerts'],
            'critical_count': comparison_totals['critical'],
            'top_skus': [
                {
                    'sku_id': str(row['sku_id']),
                    'code': row['sku__code'],
                    'name': row['sku__name'],
                    'flagged_comparisons': row['flagged'],
                    'average_delta': round(row['average_delta'] or 0, 2),
                }
                for row in top_skus
            ],
        }
