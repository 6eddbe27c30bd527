"""
URL configuration for palletflow project.
"""
from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path
from django.views.decorators.http import require_http_methods


@require_http_methods(["GET"])
def api_root(request):
    """API root view with available endpoints."""
    return JsonResponse({
        'message': 'Pallet Tracking API',
        'version': '1.0.0',
        'endpoints': {
            'pallets': '/api/pallets/',
            'manifests': '/api/manifests/',
            'qr_tags': '/api/qr-tags/',
            'receipts': '/api/receipts/',
            'receipt_stats': '/api/receipts/stats/',
            'comparisons': '/api/comparisons/',
            'audit_logs': '/api/audit-logs/',
            'dashboard': '/api/dashboard/kpis/',
        }
    })


urlpatterns = [
    path("admin/", admin.site.urls),
    path('api/', api_root, name='api-root'),
    path('api/', include('pallet_tracking.urls')),
]
