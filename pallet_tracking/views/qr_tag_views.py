"""
Tag pool views for pallet tracking.
"""

from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from django_filters.rest_framework import DjangoFilterBackend

from ..models import QrTag
from ..permissions import IsAdmin, IsWarehouseStaff, actor_id
from ..serializers.qr_tag_serializers import ProvisionSerializer, QrTagSerializer, TagBindSerializer
from ..services import QrTagService
from .base import BusinessErrorMixin, success_response


class QrTagViewSet(BusinessErrorMixin, viewsets.ReadOnlyModelViewSet):
    queryset = QrTag.objects.all()
    serializer_class = QrTagSerializer
    permission_classes = [IsWarehouseStaff]
    lookup_field = 'code'
    lookup_value_regex = '[^/]+'
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status']
    search_fields = ['code']
    ordering_fields = ['code', 'bound_at']
    ordering = ['code']

    def get_permissions(self):
        if self.action == 'provision':
            return [IsAdmin()]
        return [IsWarehouseStaff()]

    @action(detail=False, methods=['post'])
    def provision(self, request):
        """Bulk-create a batch of free tags."""
        serializer = ProvisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        tags = QrTagService().provision(data['prefix'], data['start_number'], data['count'], actor_id(request))
        return success_response({
            'count': len(tags),
            'first_code': tags[0].code,
            'last_code': tags[-1].code,
        }, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def bind(self, request, code=None):
        serializer = TagBindSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tag = QrTagService().bind(code, serializer.validated_data['pallet_id'], actor_id(request))
        return success_response(QrTagSerializer(tag).data)

    @action(detail=True, methods=['post'])
    def release(self, request, code=None):
        tag = QrTagService().release(code, actor_id(request))
        return success_response(QrTagSerializer(tag).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return success_response(QrTagService().stats())
