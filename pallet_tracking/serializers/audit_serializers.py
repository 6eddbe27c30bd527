"""
Audit trail serializers for pallet tracking.
"""

from rest_framework import serializers

from ..models import AuditLog


class AuditLogSerializer(serializers.ModelSerializer):

    class Meta:
        model = AuditLog
        fields = ['id', 'entity_type', 'entity_id', 'action', 'user_id', 'details', 'timestamp']
        read_only_fields = fields
