"""
Manifest serializers for pallet tracking.
"""

from rest_framework import serializers

from ..models import Manifest


class ManifestListSerializer(serializers.ModelSerializer):
    """Serializer for manifest listing."""

    pallet_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Manifest
        fields = [
            'id', 'code', 'contract', 'origin_location', 'destination_location',
            'status', 'pallet_count', 'created_at', 'updated_at'
        ]


class ManifestDetailSerializer(ManifestListSerializer):
    """Serializer for manifest details."""

    pallets = serializers.SerializerMethodField()

    class Meta(ManifestListSerializer.Meta):
        fields = ManifestListSerializer.Meta.fields + [
            'created_by', 'loaded_by', 'loaded_at', 'dispatched_by', 'dispatched_at',
            'delivered_by', 'delivered_at', 'pallets'
        ]

    def get_pallets(self, obj):
        links = obj.manifest_pallets.select_related('pallet').order_by('added_at')
        return [
            {
                'pallet_id': str(link.pallet_id),
                'qr_code': link.pallet.qr_code,
                'status': link.pallet.status,
                'added_at': link.added_at,
            }
            for link in links
        ]


class ManifestCreateSerializer(serializers.Serializer):
    contract_id = serializers.UUIDField()
    origin_location_id = serializers.UUIDField()
    destination_location_id = serializers.UUIDField()


class ManifestPalletInputSerializer(serializers.Serializer):
    pallet_id = serializers.UUIDField()
