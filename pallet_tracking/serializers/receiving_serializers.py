"""
Receiving and reconciliation serializers for pallet tracking.
"""

from rest_framework import serializers

from ..models import Comparison, Receipt
from ..services import ArrivalCount


class ReceiptSerializer(serializers.ModelSerializer):

    destination_location_code = serializers.CharField(source='destination_location.code', read_only=True)

    class Meta:
        model = Receipt
        fields = [
            'id', 'pallet', 'destination_location', 'destination_location_code',
            'received_by', 'received_at', 'photos', 'notes'
        ]
        read_only_fields = fields


class ReceiptCreateSerializer(serializers.Serializer):
    pallet_id = serializers.UUIDField()
    destination_location_id = serializers.UUIDField()
    photos = serializers.ListField(
        child=serializers.CharField(max_length=500),
        required=False,
        default=list
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ComparisonSerializer(serializers.ModelSerializer):
    """Serializer for Comparison model."""

    sku_code = serializers.CharField(source='sku.code', read_only=True)
    is_resolved = serializers.BooleanField(read_only=True)

    class Meta:
        model = Comparison
        fields = [
            'id', 'pallet', 'receipt', 'run_id', 'sku', 'sku_code',
            'departure_quantity', 'arrival_quantity', 'delta', 'severity',
            'reason', 'evidence', 'is_resolved', 'annotated_by', 'annotated_at',
            'created_by', 'created_at'
        ]
        read_only_fields = fields


class ArrivalCountSerializer(serializers.Serializer):
    sku_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=0)


class ReconcileSerializer(serializers.Serializer):
    """Arrival counts submitted for one pallet."""

    pallet_id = serializers.UUIDField()
    items = ArrivalCountSerializer(many=True)

    def validate_items(self, value):
        sku_ids = [item['sku_id'] for item in value]
        if len(sku_ids) != len(set(sku_ids)):
            raise serializers.ValidationError("Duplicate SKUs in arrival counts")
        return value

    def arrival_counts(self):
        return [
            ArrivalCount(sku_id=item['sku_id'], quantity=item['quantity'])
            for item in self.validated_data['items']
        ]


class AnnotateSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    evidence = serializers.ListField(
        child=serializers.CharField(max_length=500),
        required=False
    )
