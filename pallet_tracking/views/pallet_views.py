"""
Pallet views for pallet tracking.
"""

from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from ..filters import PalletFilter
from ..models import Pallet
from ..permissions import IsWarehouseStaff, actor_id
from ..serializers.pallet_serializers import (
    PalletCreateSerializer, PalletDetailSerializer, PalletItemInputSerializer,
    PalletItemSerializer, PalletListSerializer, PhotoUploadSerializer, SealSerializer
)
from ..services import PalletService
from .base import BusinessErrorMixin, success_response


class PalletViewSet(BusinessErrorMixin, viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for pallet lifecycle.

    Reads go through the queryset; every mutation is delegated to
    PalletService.
    """

    queryset = Pallet.objects.select_related('contract', 'origin_location', 'destination_location')
    permission_classes = [IsWarehouseStaff]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = PalletFilter
    ordering_fields = ['created_at', 'updated_at', 'status', 'confidence_score']
    ordering = ['-created_at']

    service_class = PalletService

    def get_serializer_class(self):
        if self.action == 'list':
            return PalletListSerializer
        return PalletDetailSerializer

    def get_service(self):
        return self.service_class()

    def detail_response(self, pallet, status=200):
        pallet = Pallet.objects.get(pk=pallet.pk)
        return success_response(PalletDetailSerializer(pallet).data, status)

    def create(self, request, *args, **kwargs):
        serializer = PalletCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        pallet = self.get_service().create_pallet(
            data['contract_id'], data['location_id'], actor_id(request),
            qr_code=data.get('qr_code')
        )
        return self.detail_response(pallet, status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        self.get_service().delete_pallet(pk, actor_id(request))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def items(self, request, pk=None):
        """Add a SKU line to an open pallet."""
        serializer = PalletItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = self.get_service().add_item(pk, serializer.validated_data['sku_id'], actor_id(request))
        return success_response(PalletItemSerializer(item).data, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='remove-item')
    def remove_item(self, request, pk=None):
        serializer = PalletItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        self.get_service().remove_item(pk, serializer.validated_data['sku_id'], actor_id(request))
        return success_response({'pallet_id': pk, 'sku_id': str(serializer.validated_data['sku_id'])})

    @action(detail=True, methods=['post'])
    def photos(self, request, pk=None):
        serializer = PhotoUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        pallet = self.get_service().attach_photos(pk, serializer.validated_data['photo_urls'], actor_id(request))
        return self.detail_response(pallet)

    @action(detail=True, methods=['post'])
    def infer(self, request, pk=None):
        """Run the count estimator and evaluate the manual review rule."""
        result = self.get_service().infer_and_review(pk, actor_id(request))
        return success_response({
            'confidence': result['confidence'],
            'requires_manual_review': result['requires_manual_review'],
            'items': PalletItemSerializer(result['items'], many=True).data,
        })

    @action(detail=True, methods=['post'])
    def seal(self, request, pk=None):
        serializer = SealSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        pallet = self.get_service().seal(pk, actor_id(request), serializer.to_review())
        return self.detail_response(pallet)

    @action(detail=True, methods=['post'])
    def finalize(self, request, pk=None):
        pallet = self.get_service().finalize(pk, actor_id(request))
        return self.detail_response(pallet)
