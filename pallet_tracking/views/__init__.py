"""
Pallet Tracking Views
"""

from .pallet_views import PalletViewSet
from .manifest_views import ManifestViewSet
from .qr_tag_views import QrTagViewSet
from .receiving_views import ReceiptViewSet, ComparisonViewSet
from .audit_views import AuditLogViewSet
from .dashboard_views import KpiDashboardView

__all__ = [
    'PalletViewSet',
    'ManifestViewSet',
    'QrTagViewSet',
    'ReceiptViewSet',
    'ComparisonViewSet',
    'AuditLogViewSet',
    'KpiDashboardView',
]
