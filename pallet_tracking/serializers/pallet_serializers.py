"""
Pallet serializers for pallet tracking.
"""

from rest_framework import serializers

from ..models import Pallet, PalletItem
from ..services import CountAdjustment, CountReview


class PalletItemSerializer(serializers.ModelSerializer):
    """Serializer for PalletItem model."""

    sku_code = serializers.CharField(source='sku.code', read_only=True)
    sku_name = serializers.CharField(source='sku.name', read_only=True)
    departure_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = PalletItem
        fields = [
            'id', 'sku', 'sku_code', 'sku_name', 'ai_quantity', 'ai_confidence',
            'adjusted_quantity', 'adjusted_by', 'adjusted_at', 'departure_quantity',
            'created_at'
        ]
        read_only_fields = fields


class PalletListSerializer(serializers.ModelSerializer):
    """Serializer for pallet listing."""

    qr_code = serializers.CharField(read_only=True)
    contract_code = serializers.CharField(source='contract.code', read_only=True)
    origin_location_code = serializers.CharField(source='origin_location.code', read_only=True)
    items_count = serializers.SerializerMethodField()

    class Meta:
        model = Pallet
        fields = [
            'id', 'qr_code', 'contract', 'contract_code', 'origin_location',
            'origin_location_code', 'destination_location', 'status',
            'confidence_score', 'requires_manual_review', 'items_count',
            'created_at', 'updated_at'
        ]

    def get_items_count(self, obj):
        return obj.items.count()


class PalletDetailSerializer(PalletListSerializer):
    """Serializer for pallet details."""

    items = PalletItemSerializer(many=True, read_only=True)
    manifest_code = serializers.SerializerMethodField()

    class Meta(PalletListSerializer.Meta):
        fields = PalletListSerializer.Meta.fields + [
            'photos', 'manifest_code', 'created_by', 'sealed_by', 'sealed_at',
            'finalized_by', 'finalized_at', 'items'
        ]

    def get_manifest_code(self, obj):
        manifest = obj.manifest
        return manifest.code if manifest else None


class PalletCreateSerializer(serializers.Serializer):
    """Input for creating a pallet; the tag is optional and drawn from the pool if omitted."""

    contract_id = serializers.UUIDField()
    location_id = serializers.UUIDField()
    qr_code = serializers.CharField(max_length=50, required=False, allow_blank=False)


class PalletItemInputSerializer(serializers.Serializer):
    sku_id = serializers.UUIDField()


class PhotoUploadSerializer(serializers.Serializer):
    photo_urls = serializers.ListField(
        child=serializers.CharField(max_length=500),
        allow_empty=False
    )


class CountAdjustmentSerializer(serializers.Serializer):
    sku_id = serializers.UUIDField()
    adjusted_quantity = serializers.IntegerField(min_value=0)


class SealSerializer(serializers.Serializer):
    """Review submitted with the seal request."""

    items = CountAdjustmentSerializer(many=True, required=False)
    confirmed = serializers.BooleanField(default=False)

    def validate_items(self, value):
        """Reject an SKU adjusted twice."""
        sku_ids = [item['sku_id'] for item in value]
        if len(sku_ids) != len(set(sku_ids)):
            raise serializers.ValidationError("Duplicate SKUs in review")
        return value

    def to_review(self) -> CountReview:
        data = self.validated_data
        return CountReview(
            items=[
                CountAdjustment(sku_id=item['sku_id'], adjusted_quantity=item['adjusted_quantity'])
                for item in data.get('items', [])
            ],
            confirmed=data.get('confirmed', False),
        )
