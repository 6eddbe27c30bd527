"""
Receiving and reconciliation views for pallet tracking.
"""

from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from django_filters.rest_framework import DjangoFilterBackend

from ..filters import ComparisonFilter
from ..models import Comparison, Receipt
from ..permissions import IsWarehouseStaff, actor_id
from ..serializers.receiving_serializers import (
    AnnotateSerializer, ComparisonSerializer, ReceiptCreateSerializer,
    ReceiptSerializer, ReconcileSerializer
)
from ..services import ReceivingService, ReconciliationService
from .base import BusinessErrorMixin, success_response


class ReceiptViewSet(BusinessErrorMixin, viewsets.ReadOnlyModelViewSet):
    queryset = Receipt.objects.select_related('pallet', 'destination_location')
    serializer_class = ReceiptSerializer
    permission_classes = [IsWarehouseStaff]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['pallet', 'destination_location', 'received_by']
    ordering_fields = ['received_at']
    ordering = ['-received_at']

    def create(self, request, *args, **kwargs):
        """Receive an in-transit pallet."""
        serializer = ReceiptCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        receipt = ReceivingService().receive_pallet(
            data['pallet_id'], data['destination_location_id'], actor_id(request),
            photos=data['photos'], notes=data['notes']
        )
        return success_response(ReceiptSerializer(receipt).data, status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return success_response(ReceivingService().get_receipt_stats())


class ComparisonViewSet(BusinessErrorMixin, viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for reconciliation results.

    Comparisons are created by the reconcile action only and are never
    edited beyond their annotation.
    """

    queryset = Comparison.objects.select_related('sku', 'pallet')
    serializer_class = ComparisonSerializer
    permission_classes = [IsWarehouseStaff]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = ComparisonFilter
    ordering_fields = ['created_at', 'delta', 'severity']
    ordering = ['-created_at']

    @action(detail=False, methods=['post'])
    def reconcile(self, request):
        """Compare departure counts with the submitted arrival counts."""
        serializer = ReconcileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        comparisons = ReconciliationService().compare_origin_destination(
            serializer.validated_data['pallet_id'], serializer.arrival_counts(), actor_id(request)
        )
        return success_response(ComparisonSerializer(comparisons, many=True).data, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def annotate(self, request, pk=None):
        serializer = AnnotateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        comparison = ReconciliationService().annotate_comparison(
            pk, actor_id(request), reason=data.get('reason'), evidence=data.get('evidence')
        )
        return success_response(ComparisonSerializer(comparison).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return success_response(ReconciliationService().get_comparison_stats())
