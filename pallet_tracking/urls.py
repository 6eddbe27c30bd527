"""
URL configuration for pallet tracking.

Provides API endpoints for pallets, manifests, the tag pool, receiving,
reconciliation, the audit trail and the KPI dashboard.
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import (
    AuditLogViewSet, ComparisonViewSet, KpiDashboardView, ManifestViewSet,
    PalletViewSet, QrTagViewSet, ReceiptViewSet
)

router = DefaultRouter()
router.register(r'pallets', PalletViewSet, basename='pallet')
router.register(r'manifests', ManifestViewSet, basename='manifest')
router.register(r'qr-tags', QrTagViewSet, basename='qr-tag')
router.register(r'receipts', ReceiptViewSet, basename='receipt')
router.register(r'comparisons', ComparisonViewSet, basename='comparison')
router.register(r'audit-logs', AuditLogViewSet, basename='audit-log')

urlpatterns = [
    path('dashboard/kpis/', KpiDashboardView.as_view(), name='dashboard-kpis'),
] + router.urls
