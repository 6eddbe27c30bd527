"""
Manifest views for pallet tracking.
"""

from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from django_filters.rest_framework import DjangoFilterBackend

from ..models import Manifest
from ..permissions import IsWarehouseStaff, actor_id
from ..serializers.manifest_serializers import (
    ManifestCreateSerializer, ManifestDetailSerializer, ManifestListSerializer,
    ManifestPalletInputSerializer
)
from ..services import ManifestService
from .base import BusinessErrorMixin, success_response


class ManifestViewSet(BusinessErrorMixin, viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for manifest management.

    Provides creation, pallet attachment and the shipment status actions.
    """

    queryset = Manifest.objects.select_related('contract', 'origin_location', 'destination_location')
    permission_classes = [IsWarehouseStaff]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'contract', 'origin_location', 'destination_location']
    search_fields = ['code']
    ordering_fields = ['created_at', 'code', 'status']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action == 'list':
            return ManifestListSerializer
        return ManifestDetailSerializer

    def detail_response(self, manifest, status=200):
        manifest = Manifest.objects.get(pk=manifest.pk)
        return success_response(ManifestDetailSerializer(manifest).data, status)

    def create(self, request, *args, **kwargs):
        serializer = ManifestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        manifest = ManifestService().create_manifest(
            data['contract_id'], data['origin_location_id'], data['destination_location_id'],
            actor_id(request)
        )
        return self.detail_response(manifest, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def pallets(self, request, pk=None):
        """Attach a sealed pallet."""
        serializer = ManifestPalletInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        link = ManifestService().attach_pallet(pk, serializer.validated_data['pallet_id'], actor_id(request))
        return self.detail_response(link.manifest, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='remove-pallet')
    def remove_pallet(self, request, pk=None):
        serializer = ManifestPalletInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ManifestService().detach_pallet(pk, serializer.validated_data['pallet_id'], actor_id(request))
        return self.detail_response(self.get_object())

    @action(detail=True, methods=['post'], url_path='mark-loaded')
    def mark_loaded(self, request, pk=None):
        manifest = ManifestService().mark_loaded(pk, actor_id(request))
        return self.detail_response(manifest)

    @action(detail=True, methods=['post'], url_path='mark-in-transit')
    def mark_in_transit(self, request, pk=None):
        manifest = ManifestService().mark_in_transit(pk, actor_id(request))
        return self.detail_response(manifest)

    @action(detail=True, methods=['post'], url_path='mark-delivered')
    def mark_delivered(self, request, pk=None):
        manifest = ManifestService().mark_delivered(pk, actor_id(request))
        return self.detail_response(manifest)

    @action(detail=True, methods=['get'])
    def document(self, request, pk=None):
        """Manifest document data for printing."""
        return success_response(ManifestService().generate_manifest_document(pk))

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return success_response(ManifestService().get_manifest_stats())
