"""
Audit trail views for pallet tracking.
"""

from rest_framework import filters, viewsets
from django_filters.rest_framework import DjangoFilterBackend

from ..filters import AuditLogFilter
from ..models import AuditLog
from ..permissions import IsWarehouseStaff
from ..serializers.audit_serializers import AuditLogSerializer


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AuditLog.objects.all()
    serializer_class = AuditLogSerializer
    permission_classes = [IsWarehouseStaff]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = AuditLogFilter
    ordering_fields = ['timestamp']
    ordering = ['-timestamp']
