"""
Tag pool serializers for pallet tracking.
"""

from rest_framework import serializers

from ..models import QrTag
from ..services.qr_tag_service import QrTagService


class QrTagSerializer(serializers.ModelSerializer):

    class Meta:
        model = QrTag
        fields = ['id', 'code', 'status', 'current_pallet', 'bound_at', 'released_at', 'created_at']
        read_only_fields = fields


class ProvisionSerializer(serializers.Serializer):
    prefix = serializers.CharField(max_length=QrTagService.MAX_PREFIX_LENGTH)
    start_number = serializers.IntegerField(min_value=1)
    count = serializers.IntegerField(min_value=1, max_value=QrTagService.MAX_BATCH_SIZE)


class TagBindSerializer(serializers.Serializer):
    pallet_id = serializers.UUIDField()
